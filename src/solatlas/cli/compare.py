"""solatlas compare / versions / values commands - read-only inventory views."""

from __future__ import annotations

import click
from rich.markup import escape
from rich.table import Table

from solatlas.cli.utils import cell_text, cli_errors, echo_json, get_config, open_database
from solatlas.core.progress import get_console, pluralize, status
from solatlas.query import ClassQueryService, ClassSelector, ComparisonMatrix, DistinctField


def _matrix_table(matrix: ComparisonMatrix) -> Table:
    table = Table(show_header=True, padding=(0, 1))
    table.add_column("kind", style="dim")
    table.add_column("member", style="cyan")
    for column in matrix.columns:
        table.add_column(f"{column.repository_name}\n{column.project_name}")

    for row in matrix.rows:
        cells: list[str] = []
        for cell in row.cells:
            if cell.is_missing:
                cells.append("[red]---[/red]")
                continue
            text = escape(cell_text(cell.type_display))
            if cell.is_required:
                text += " [yellow]*[/yellow]"
            cells.append(text)
        table.add_row(
            row.member_kind,
            row.member_name,
            *cells,
            style=None if row.is_uniform else "bold",
        )
    return table


@click.command()
@click.option("--key", default=None, help="Exact logical class key")
@click.option("--fuzzy", default=None, help="Substring of the logical class key")
@click.option("--name", default=None, help="Class name")
@click.option("--module", default=None, help="With --name: module filter")
@click.option("--visibility", default=None, help="With --name: visibility filter")
@click.option("--feature", default=None, help="With --name: feature filter")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def compare_command(
    ctx: click.Context,
    key: str | None,
    fuzzy: str | None,
    name: str | None,
    module: str | None,
    visibility: str | None,
    feature: str | None,
    as_json: bool,
) -> None:
    """Compare every location of one logical class member by member."""
    config = get_config(ctx)
    with cli_errors():
        selector = ClassSelector.from_options(
            key=key,
            fuzzy=fuzzy,
            name=name,
            module=module,
            visibility=visibility,
            feature=feature,
        )
        matrix = ClassQueryService(open_database(config)).build_comparison_matrix(selector)

    if matrix is None:
        if as_json:
            echo_json(None)
            return
        raise click.ClickException(f"No class matches '{selector.value}'")

    if as_json:
        echo_json(matrix.to_dict())
        return

    console = get_console()
    status(
        f"{matrix.class_name} ({cell_text(matrix.namespace)}) "
        f"module={cell_text(matrix.module)} visibility={cell_text(matrix.visibility)} "
        f"feature={cell_text(matrix.feature)}",
        style="none",
    )
    status(
        f"{pluralize(len(matrix.columns), 'location')}, {pluralize(len(matrix.rows), 'member')}",
        style="info",
    )
    for mismatch in matrix.header_mismatches:
        status(
            f"column {mismatch.column_index}: {mismatch.field} is "
            f"{cell_text(mismatch.value)}, baseline has {cell_text(mismatch.baseline)}",
            style="warning",
        )
    console.print(_matrix_table(matrix))


@click.command()
@click.argument("key")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def versions_command(ctx: click.Context, key: str, as_json: bool) -> None:
    """List every location of the logical class KEY with its members."""
    config = get_config(ctx)
    with cli_errors():
        versions = ClassQueryService(open_database(config)).get_class_versions(key)

    if as_json:
        echo_json([v.to_dict() for v in versions])
        return
    if not versions:
        raise click.ClickException(f"No class has key '{key}'")

    console = get_console()
    for version in versions:
        a = version.artifact
        status(
            f"{version.repository_name} / {version.solution_name} / {version.project_name}: "
            f"{a.relative_file_path}",
            style="none",
        )
        status(f"sha256 {cell_text(a.file_sha256)}", style="info")
        table = Table(show_header=True, box=None, padding=(0, 2), pad_edge=False)
        for column in ("kind", "name", "type", "required", "max", "storage"):
            table.add_column(column)
        for m in version.members:
            table.add_row(
                m.kind,
                m.name,
                escape(cell_text(m.type_display or m.type_raw)),
                "yes" if m.is_required else "",
                cell_text(m.max_length),
                cell_text(m.sql_type_name),
            )
        console.print(table)


@click.command()
@click.argument("field_name", type=click.Choice([f.value for f in DistinctField]))
@click.pass_context
def values_command(ctx: click.Context, field_name: str) -> None:
    """List distinct class names, modules, visibilities or features."""
    config = get_config(ctx)
    with cli_errors():
        values = ClassQueryService(open_database(config)).distinct_values(field_name)
    for value in values:
        click.echo(value)
