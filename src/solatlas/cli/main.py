"""SolAtlas CLI - solatlas command."""

from pathlib import Path

import click

from solatlas.cli.compare import compare_command, values_command, versions_command
from solatlas.cli.rules import resolve_command, rules_group
from solatlas.cli.scan import scan_command


@click.group()
@click.version_option(version="0.1.0", prog_name="solatlas")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (default: ./solatlas.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None) -> None:
    """SolAtlas - inventory and compare C# classes across many repositories."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path


cli.add_command(scan_command, name="scan")
cli.add_command(resolve_command, name="resolve")
cli.add_command(rules_group, name="rules")
cli.add_command(compare_command, name="compare")
cli.add_command(versions_command, name="versions")
cli.add_command(values_command, name="values")


if __name__ == "__main__":
    cli()
