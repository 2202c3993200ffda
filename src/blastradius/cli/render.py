"""Plain-text and JSON rendering shared by CLI commands."""

import json
from typing import Any

import click

from blastradius.analysis import BlastRadius


def blast_radius_dict(radius: BlastRadius) -> dict[str, Any]:
    return {
        **radius.summary(),
        "impacted_tests": [
            {
                "test": t.test_name,
                "file": t.file_path,
                "service": t.service,
                "step": t.step_index,
                "template": t.template_name,
                "locality": t.locality.label,
                "service_impact": t.service_impact.label,
                "visibility": t.visibility.label,
            }
            for t in radius.impacted_tests
        ],
        "direct_mentions": [
            {
                "template": m.template_name,
                "file": m.file_path,
                "kind": m.kind.label,
                "line": m.line,
                "context": m.context,
            }
            for m in radius.direct_mentions
        ],
        "entry_points": radius.entry_points,
    }


def echo_blast_radius(radius: BlastRadius, as_json: bool = False) -> None:
    if as_json:
        click.echo(json.dumps(blast_radius_dict(radius), indent=2))
        return

    click.echo(f"Resource: {radius.resource}")
    click.echo(f"Owning service: {radius.owning_service or 'unknown'}")
    click.echo(
        f"Impacted: {len(radius.tests)} test(s), {len(radius.files)} file(s), "
        f"{len(radius.services)} service(s)"
    )

    if radius.direct_mentions:
        click.echo("Direct mentions:")
        for m in radius.direct_mentions:
            click.echo(f"  {m.file_path}:{m.line} {m.template_name} [{m.kind.label}]")

    if radius.impacted_tests:
        click.echo("Impacted tests:")
        for t in radius.impacted_tests:
            click.echo(
                f"  {t.test_name} step {t.step_index} via {t.template_name} "
                f"[{t.locality.label}, {t.service_impact.label}] {t.file_path}"
            )

    if radius.entry_points:
        click.echo("Sequential entry points:")
        for entry, tests in sorted(radius.entry_points.items()):
            click.echo(f"  {entry}: {', '.join(tests)}")
