"""blast-radius stats command - row counts of an exported store."""

import json
from pathlib import Path

import click

from blastradius.core.errors import BlastRadiusError
from blastradius.interchange import import_store


@click.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats_command(directory: Path, as_json: bool) -> None:
    """Show per-table row counts of the store exported to DIRECTORY."""
    try:
        store = import_store(directory)
    except BlastRadiusError as e:
        raise click.ClickException(str(e)) from e

    counts = store.statistics()
    if as_json:
        click.echo(json.dumps(counts))
        return
    width = max(len(name) for name in counts)
    for name, count in counts.items():
        click.echo(f"{name:<{width}}  {count}")
