"""solatlas rules / resolve commands - manage grouping rules and apply them."""

from __future__ import annotations

import click
from rich.table import Table

from solatlas.cli.utils import cell_text, cli_errors, echo_json, get_config, open_database
from solatlas.core.progress import get_console, pluralize, status
from solatlas.scan import GroupingOverride, GroupingResolver


def rule_to_dict(rule: GroupingOverride) -> dict[str, object]:
    return rule.model_dump()


@click.command()
@click.pass_context
def resolve_command(ctx: click.Context) -> None:
    """Apply the grouping rules to every stored artifact."""
    config = get_config(ctx)
    with cli_errors():
        result = GroupingResolver(open_database(config)).resolve()
    status(
        f"{pluralize(result.artifacts_changed, 'artifact')} relabelled "
        f"({result.artifacts_cleared} cleared) from {pluralize(result.rules, 'rule')}",
        style="success",
    )


@click.group()
def rules_group() -> None:
    """Manage grouping rules."""


@rules_group.command("add")
@click.option("--module", required=True, help="Module label to assign")
@click.option("--visibility", default=None, help="Visibility label to assign")
@click.option("--feature", default=None, help="Feature label to assign")
@click.option("--repository", "repository_name", default=None, help="Match repository name")
@click.option("--solution", "solution_name", default=None, help="Match solution name")
@click.option("--project", "project_name", default=None, help="Match project name")
@click.option("--class", "class_name", default=None, help="Match class name")
@click.pass_context
def rules_add_command(
    ctx: click.Context,
    module: str,
    visibility: str | None,
    feature: str | None,
    repository_name: str | None,
    solution_name: str | None,
    project_name: str | None,
    class_name: str | None,
) -> None:
    """Add a grouping rule. Omitted selectors match anything."""
    config = get_config(ctx)
    with cli_errors():
        rule, created = GroupingResolver(open_database(config)).add_rule(
            module=module,
            visibility=visibility,
            feature=feature,
            repository_name=repository_name,
            solution_name=solution_name,
            project_name=project_name,
            class_name=class_name,
        )
    if created:
        status(f"Added rule {rule.id}: {rule.override_key}", style="success")
    else:
        status(f"Rule {rule.id} already exists: {rule.override_key}", style="info")
    status("Run 'solatlas resolve' to apply it", style="info")


@rules_group.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def rules_list_command(ctx: click.Context, as_json: bool) -> None:
    """List grouping rules in creation order."""
    config = get_config(ctx)
    with cli_errors():
        rules = GroupingResolver(open_database(config)).list_rules()

    if as_json:
        echo_json([rule_to_dict(r) for r in rules])
        return
    if not rules:
        status("No grouping rules", style="info")
        return

    table = Table(show_header=True, box=None, padding=(0, 2), pad_edge=False)
    for column in ("id", "repository", "solution", "project", "class", "module", "visibility", "feature"):
        table.add_column(column, style="cyan" if column == "module" else None)
    for r in rules:
        table.add_row(
            str(r.id),
            *(
                cell_text(v)
                for v in (
                    r.repository_name,
                    r.solution_name,
                    r.project_name,
                    r.class_name,
                    r.module,
                    r.visibility,
                    r.feature,
                )
            ),
        )
    get_console().print(table)


@rules_group.command("remove")
@click.argument("rule_id", type=int)
@click.pass_context
def rules_remove_command(ctx: click.Context, rule_id: int) -> None:
    """Remove the rule with id RULE_ID."""
    config = get_config(ctx)
    with cli_errors():
        GroupingResolver(open_database(config)).remove_rule(rule_id)
    status(f"Removed rule {rule_id}", style="success")
