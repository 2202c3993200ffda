"""blast-radius report command - query an exported store."""

from pathlib import Path

import click

from blastradius.analysis import compute_blast_radius
from blastradius.cli.render import echo_blast_radius
from blastradius.core.errors import BlastRadiusError
from blastradius.interchange import import_store


@click.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--resource", "-r", required=True, help="Resource type name")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def report_command(directory: Path, resource: str, as_json: bool) -> None:
    """Show the blast radius of RESOURCE from the store exported to DIRECTORY."""
    try:
        store = import_store(directory)
    except BlastRadiusError as e:
        raise click.ClickException(str(e)) from e

    row = store.find_resource(resource)
    if row is None:
        raise click.ClickException(f"Resource '{resource}' is not in the exported store")
    echo_blast_radius(compute_blast_radius(store, row.id), as_json=as_json)
