"""solatlas scan command - inventory every repository under the git root."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
from rich.table import Table

from solatlas.cli.utils import cli_errors, echo_json, get_config, open_database
from solatlas.core.progress import get_console, pluralize, spinner, status
from solatlas.scan import ReconcileCounts, ScanCoordinator, ScanSummary


def _counts_dict(counts: ReconcileCounts) -> dict[str, int]:
    return {
        "inserted": counts.inserted,
        "updated": counts.updated,
        "deleted": counts.deleted,
        "unchanged": counts.unchanged,
        "duplicates": counts.duplicates,
    }


def summary_to_dict(summary: ScanSummary) -> dict[str, Any]:
    groupings = summary.groupings
    return {
        "scan_id": summary.scan_id,
        "repositories": summary.repositories,
        "solutions": summary.solutions,
        "projects": summary.projects,
        "files_scanned": summary.files_scanned,
        "files_skipped": summary.files_skipped,
        "artifacts": _counts_dict(summary.artifacts),
        "members": _counts_dict(summary.members),
        "datasets": _counts_dict(summary.datasets),
        "actions": _counts_dict(summary.actions),
        "groupings": None
        if groupings is None
        else {"rules": groupings.rules, "changed": groupings.artifacts_changed},
        "errors": summary.errors,
        "cancelled": summary.cancelled,
        "duration_seconds": round(summary.duration_seconds, 3),
    }


def _summary_table(summary: ScanSummary) -> Table:
    table = Table(show_header=True, box=None, padding=(0, 2), pad_edge=False)
    table.add_column("records", style="cyan")
    for name in ("inserted", "updated", "deleted", "unchanged"):
        table.add_column(name, justify="right")
    for label, counts in (
        ("artifacts", summary.artifacts),
        ("members", summary.members),
        ("data sets", summary.datasets),
        ("actions", summary.actions),
    ):
        table.add_row(
            label,
            str(counts.inserted),
            str(counts.updated),
            str(counts.deleted),
            str(counts.unchanged),
        )
    return table


@click.command()
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Git root holding the repositories (overrides scan.git_root_path)",
)
@click.option("--no-resolve", is_flag=True, help="Skip grouping resolution after the scan")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def scan_command(ctx: click.Context, root: Path | None, no_resolve: bool, as_json: bool) -> None:
    """Scan every repository under the git root and update the inventory."""
    config = get_config(ctx)
    scan_config = config.scan
    updates: dict[str, Any] = {}
    if root is not None:
        updates["git_root_path"] = str(root)
    if no_resolve:
        updates["resolve_groupings"] = False
    if updates:
        scan_config = scan_config.model_copy(update=updates)

    with cli_errors():
        coordinator = ScanCoordinator(open_database(config), scan_config)
        if as_json:
            summary = coordinator.scan_all()
        else:
            with spinner(f"Scanning {scan_config.git_root_path}"):
                summary = coordinator.scan_all()

    if as_json:
        echo_json(summary_to_dict(summary))
        return

    console = get_console()
    status(
        f"Scanned {pluralize(summary.repositories, 'repository', 'repositories')}, "
        f"{pluralize(summary.solutions, 'solution')}, "
        f"{pluralize(summary.projects, 'project')}, "
        f"{pluralize(summary.files_scanned, 'file')}",
        style="success",
    )
    if summary.files_skipped:
        status(f"{pluralize(summary.files_skipped, 'file')} skipped", style="warning", indent=2)
    console.print(_summary_table(summary))
    if summary.groupings is not None:
        status(
            f"Groupings: {pluralize(summary.groupings.artifacts_changed, 'artifact')} relabelled "
            f"by {pluralize(summary.groupings.rules, 'rule')}",
            style="info",
        )
    for error in summary.errors:
        status(error, style="error", indent=2)
