"""blastradius CLI - blast-radius command."""

import click

from blastradius.cli.analyze import analyze_command
from blastradius.cli.report import report_command
from blastradius.cli.stats import stats_command
from blastradius.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="blast-radius")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """blastradius - which tests break when a resource type changes."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(analyze_command, name="analyze")
cli.add_command(stats_command, name="stats")
cli.add_command(report_command, name="report")


if __name__ == "__main__":
    cli()
