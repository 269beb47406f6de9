"""sync / status / readme commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from sqlite_sync.cli.context import build_context, exit_with_error
from sqlite_sync.core.result import Err
from sqlite_sync.services.docs import update_readme
from sqlite_sync.services.manifest import load_manifest
from sqlite_sync.services.reconcile import SyncPlan, plan_sync, run_sync

_ROOT_OPTION = typer.Option(
    None,
    "--root",
    help="Repository holding manifest.json and README.md (default: current directory)",
)


def sync(
    root: Path | None = _ROOT_OPTION,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Validate publishes with npm --dry-run; only echo tag and git commands.",
    ),
) -> None:
    """Publish every unpublished SQLite release and update the tracking files."""
    ctx = build_context(root, dry_run=dry_run)
    result = run_sync(ctx)
    if isinstance(result, Err):
        exit_with_error(result.error)

    report = result.value
    if report.published:
        ctx.console.success(f"Released SQLite {', '.join(report.published)}")


def _plan_table(plan: SyncPlan) -> Table:
    by_version = {a.version: a for a in plan.actions}
    table = Table(title=f"SQLite {plan.latest_version} is the latest upstream release")
    table.add_column("SQLite")
    table.add_column("npm version")
    table.add_column("state")

    for entry in plan.manifest:
        action = by_version.get(entry.upstream_version)
        if action is None:
            table.add_row(
                entry.upstream_version, entry.package_version or "", "[green]published[/green]"
            )
        elif action.kind == "record":
            table.add_row(
                entry.upstream_version,
                action.package_version,
                "[yellow]on registry, not recorded[/yellow]",
            )
        else:
            table.add_row(entry.upstream_version, action.package_version, "[cyan]pending[/cyan]")
    return table


def status(root: Path | None = _ROOT_OPTION) -> None:
    """Show what a sync would do, without changing anything."""
    ctx = build_context(root)
    result = plan_sync(ctx)
    if isinstance(result, Err):
        exit_with_error(result.error)

    plan = result.value
    console = Console()
    console.print(_plan_table(plan))
    if plan.moves_latest_tag:
        console.print(
            f"latest: {plan.latest_tag_current or '(unset)'} -> {plan.latest_tag_target}",
            style="yellow",
        )
    elif not plan.actions:
        console.print("Nothing to publish", style="dim")


def readme(root: Path | None = _ROOT_OPTION) -> None:
    """Regenerate the README tables from manifest.json (no publish, no commit)."""
    ctx = build_context(root)
    manifest = load_manifest(ctx.config.manifest_path)
    if isinstance(manifest, Err):
        exit_with_error(manifest.error)

    result = update_readme(
        ctx.config.readme_path,
        manifest.value,
        package_name=ctx.config.package_name,
        console=ctx.console,
        release_log_base_url=ctx.config.release_log_url,
    )
    if isinstance(result, Err):
        exit_with_error(result.error)
    ctx.console.success(f"Updated {ctx.config.readme_name}")
