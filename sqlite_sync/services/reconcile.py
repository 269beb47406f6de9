"""Release reconciliation: decide what to publish and bring everything in sync.

One run:

1. prepend the latest upstream version to the manifest if it is new;
2. walk unpublished entries oldest-first so registry history follows upstream
   chronology;
3. for each, either record a version the registry already has (recovery after
   a crash between publish and manifest write) or stage and publish it;
4. point ``latest`` at the newest manifest entry, on every run;
5. if anything was recorded, save the manifest, regenerate the README and
   commit/push both files.

Nothing is retried: the registry check in step 3 is what makes re-runs safe.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from sqlite_sync.core.config import SyncConfig
from sqlite_sync.core.result import Err, Ok, Result
from sqlite_sync.output.console import ConsoleProtocol
from sqlite_sync.platform.http import HttpClient
from sqlite_sync.platform.process import Runner
from sqlite_sync.services.docs import commit_and_push, update_readme
from sqlite_sync.services.errors import SyncError
from sqlite_sync.services.manifest import Manifest, load_manifest, save_manifest
from sqlite_sync.services.registry import (
    LATEST_TAG,
    PackageMetadata,
    ensure_dist_tag,
    fetch_package_metadata,
    has_published_version,
    publish,
)
from sqlite_sync.services.staging import stage_package
from sqlite_sync.services.upstream import latest_upstream_version, release_metadata
from sqlite_sync.services.version import parse_version

PlannedActionKind = Literal["publish", "record"]


@dataclass(frozen=True, slots=True)
class SyncContext:
    config: SyncConfig
    http: HttpClient
    runner: Runner
    console: ConsoleProtocol


@dataclass(frozen=True, slots=True)
class PlannedAction:
    version: str
    package_version: str
    dist_tag: str
    kind: PlannedActionKind


@dataclass(frozen=True, slots=True)
class SyncPlan:
    latest_version: str
    manifest: Manifest
    actions: tuple[PlannedAction, ...]
    latest_tag_current: str | None
    latest_tag_target: str | None

    @property
    def moves_latest_tag(self) -> bool:
        return self.latest_tag_target is not None and self.latest_tag_current != self.latest_tag_target


@dataclass(frozen=True, slots=True)
class SyncReport:
    """Outcome of a completed run.

    Attributes:
        published: Versions recorded this run, oldest first (uploaded or recovered).
        recovered: Subset of ``published`` that the registry already had.
        latest_tag_moved: True if ``latest`` was (re)pointed this run.
    """

    latest_version: str
    manifest: Manifest
    published: tuple[str, ...]
    recovered: tuple[str, ...]
    latest_tag_moved: bool
    committed: bool


def reconcile_manifest(manifest: Manifest, latest_version: str) -> Manifest:
    return manifest.with_latest(latest_version)


def pending_versions(manifest: Manifest) -> tuple[str, ...]:
    return tuple(e.upstream_version for e in manifest.oldest_first() if not e.is_published)


def release_commit_message(versions: list[str] | tuple[str, ...]) -> str:
    return f"Release SQLite {', '.join(versions)}"


def _gather(ctx: SyncContext) -> Result[tuple[Manifest, str, PackageMetadata], SyncError]:
    config = ctx.config

    ctx.console.info(f"Reading {config.manifest_name}")
    manifest = load_manifest(config.manifest_path)
    if isinstance(manifest, Err):
        return manifest

    latest = latest_upstream_version(
        ctx.http,
        download_page_url=config.download_page_url,
        console=ctx.console,
    )
    if isinstance(latest, Err):
        return latest
    parsed = parse_version(latest.value)
    if isinstance(parsed, Err):
        return parsed
    ctx.console.info(f"Latest SQLite version: {latest.value}")

    metadata = fetch_package_metadata(
        ctx.http,
        registry_url=config.registry_url,
        package_name=config.package_name,
        console=ctx.console,
    )
    if isinstance(metadata, Err):
        return metadata

    return Ok((reconcile_manifest(manifest.value, latest.value), latest.value, metadata.value))


def _plan_actions(
    manifest: Manifest, metadata: PackageMetadata
) -> Result[tuple[PlannedAction, ...], SyncError]:
    actions: list[PlannedAction] = []
    for version in pending_versions(manifest):
        parsed = parse_version(version)
        if isinstance(parsed, Err):
            return parsed
        upstream = parsed.value
        kind: PlannedActionKind = (
            "record" if has_published_version(metadata, upstream.package_version) else "publish"
        )
        actions.append(
            PlannedAction(
                version=version,
                package_version=upstream.package_version,
                dist_tag=upstream.dist_tag,
                kind=kind,
            )
        )
    return Ok(tuple(actions))


def plan_sync(ctx: SyncContext) -> Result[SyncPlan, SyncError]:
    """Compute what :func:`run_sync` would do, without side effects."""
    gathered = _gather(ctx)
    if isinstance(gathered, Err):
        return gathered
    manifest, latest_version, metadata = gathered.value

    actions = _plan_actions(manifest, metadata)
    if isinstance(actions, Err):
        return actions

    target: str | None = None
    newest = manifest.latest
    if newest is not None:
        if newest.package_version is not None:
            target = newest.package_version
        else:
            target = next(
                a.package_version for a in actions.value if a.version == newest.upstream_version
            )

    return Ok(
        SyncPlan(
            latest_version=latest_version,
            manifest=manifest,
            actions=actions.value,
            latest_tag_current=metadata.dist_tags.get(LATEST_TAG),
            latest_tag_target=target,
        )
    )


def _publish_release(ctx: SyncContext, action: PlannedAction) -> Result[None, SyncError]:
    config = ctx.config
    release = release_metadata(
        ctx.http,
        action.version,
        release_log_base_url=config.release_log_url,
        download_base_url=config.download_base_url,
        console=ctx.console,
    )
    if isinstance(release, Err):
        return release

    with stage_package(
        action.version,
        release.value.download_url,
        http=ctx.http,
        config=config,
        console=ctx.console,
    ) as staged:
        if isinstance(staged, Err):
            return staged
        published = publish(
            staged.value.package_dir,
            action.dist_tag,
            runner=ctx.runner,
            console=ctx.console,
            dry_run=config.dry_run,
            provenance=config.provenance,
        )
        if isinstance(published, Err):
            return published

    ctx.console.success(f"Published {config.package_name}@{action.dist_tag}")
    return Ok(None)


def run_sync(ctx: SyncContext) -> Result[SyncReport, SyncError]:
    config = ctx.config
    console = ctx.console

    console.header("Begin sync")
    if config.dry_run:
        console.warning("DRY_RUN: npm publish runs with --dry-run; tags and git are only echoed")

    gathered = _gather(ctx)
    if isinstance(gathered, Err):
        return gathered
    manifest, latest_version, metadata = gathered.value

    actions = _plan_actions(manifest, metadata)
    if isinstance(actions, Err):
        return actions

    published: list[str] = []
    recovered: list[str] = []
    for action in actions.value:
        if action.kind == "record":
            console.warning(
                f"{config.package_name}@{action.package_version} is already on the registry; "
                "recording it"
            )
            tagged = ensure_dist_tag(
                metadata,
                action.package_version,
                action.dist_tag,
                runner=ctx.runner,
                cwd=config.root,
                console=console,
                dry_run=config.dry_run,
            )
            if isinstance(tagged, Err):
                return tagged
            recovered.append(action.version)
        else:
            result = _publish_release(ctx, action)
            if isinstance(result, Err):
                return result

        manifest = manifest.with_published(action.version, action.package_version)
        published.append(action.version)

    latest_tag_moved = False
    newest = manifest.latest
    if newest is not None and newest.package_version is not None:
        moved = ensure_dist_tag(
            metadata,
            newest.package_version,
            LATEST_TAG,
            runner=ctx.runner,
            cwd=config.root,
            console=console,
            dry_run=config.dry_run,
        )
        if isinstance(moved, Err):
            return moved
        latest_tag_moved = moved.value

    committed = False
    if published:
        console.info(f"Updating {config.manifest_name}")
        saved = save_manifest(config.manifest_path, manifest)
        if isinstance(saved, Err):
            return saved

        readme = update_readme(
            config.readme_path,
            manifest,
            package_name=config.package_name,
            console=console,
            release_log_base_url=config.release_log_url,
        )
        if isinstance(readme, Err):
            return readme

        pushed = commit_and_push(
            repo_root=config.root,
            paths=[config.manifest_path, config.readme_path],
            message=release_commit_message(published),
            runner=ctx.runner,
            console=console,
            dry_run=config.dry_run,
            remote=config.git_remote,
            branch=config.git_branch,
        )
        if isinstance(pushed, Err):
            return pushed
        committed = not config.dry_run
    else:
        console.info("Nothing to publish")

    console.success("Sync complete")
    return Ok(
        SyncReport(
            latest_version=latest_version,
            manifest=manifest,
            published=tuple(published),
            recovered=tuple(recovered),
            latest_tag_moved=latest_tag_moved,
            committed=committed,
        )
    )
