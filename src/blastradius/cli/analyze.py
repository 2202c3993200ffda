"""blast-radius analyze command - run every phase for one resource."""

from pathlib import Path

import click

from blastradius.analysis import BlastRadiusEngine
from blastradius.cli.render import echo_blast_radius
from blastradius.config import load_config
from blastradius.core.errors import BlastRadiusError
from blastradius.core.logging import configure_logging
from blastradius.interchange import export_store


@click.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--resource", "-r", required=True, help="Resource type name, e.g. azurerm_resource_group")
@click.option("--workers", "-w", type=click.IntRange(min=1), help="Extraction worker count")
@click.option(
    "--export",
    "export_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Write the classified store to this directory as CSV",
)
@click.option(
    "--analyzer-json",
    is_flag=True,
    help="ROOT holds analyzer JSON documents instead of Go sources",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def analyze_command(
    ctx: click.Context,
    root: Path,
    resource: str,
    workers: int | None,
    export_dir: Path | None,
    analyzer_json: bool,
    as_json: bool,
) -> None:
    """Compute the blast radius of RESOURCE over the tree at ROOT.

    Config is read from ROOT/.blastradius/config.yaml when present.
    """
    repo_root = root.resolve()
    try:
        config = load_config(repo_root)
    except BlastRadiusError as e:
        raise click.ClickException(str(e)) from e

    if not (ctx.obj or {}).get("verbose"):
        configure_logging(config=config.logging)
    if workers is not None:
        config.ingestion = config.ingestion.model_copy(update={"max_workers": workers})

    engine = BlastRadiusEngine(config)
    try:
        if analyzer_json:
            documents = sorted(repo_root.rglob("*.json"))
            summary = engine.run_documents(documents, resource)
        else:
            summary = engine.run(repo_root, resource)
        if export_dir is not None:
            export_store(engine.store, export_dir, config.interchange)
    except BlastRadiusError as e:
        raise click.ClickException(str(e)) from e

    echo_blast_radius(summary.blast_radius, as_json=as_json)
    if not as_json:
        click.echo(
            f"Files: {summary.ingestion.files_processed} processed, "
            f"{summary.ingestion.files_failed} skipped"
        )
        if export_dir is not None:
            click.echo(f"Exported to {export_dir}")
