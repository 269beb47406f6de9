"""npm registry access for the mirrored package.

Reads go through the registry's JSON endpoint; publishing and tagging shell
out to ``npm`` so the runner's credentials and provenance support apply.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sqlite_sync.core.result import Err, Ok, Result
from sqlite_sync.core.structured import as_str_dict
from sqlite_sync.output.console import ConsoleProtocol
from sqlite_sync.platform.http import HttpClient
from sqlite_sync.platform.process import Runner
from sqlite_sync.services.commands import run_command
from sqlite_sync.services.errors import SyncError

LATEST_TAG = "latest"


@dataclass(frozen=True, slots=True)
class PackageMetadata:
    """Snapshot of the registry record, taken once per run.

    Attributes:
        name: Package name.
        versions: Every published version string.
        dist_tags: Tag name -> version it points at.
    """

    name: str
    versions: frozenset[str]
    dist_tags: dict[str, str]


def package_url(registry_url: str, package_name: str) -> str:
    return f"{registry_url.rstrip('/')}/{package_name}"


def fetch_package_metadata(
    http: HttpClient,
    *,
    registry_url: str,
    package_name: str,
    console: ConsoleProtocol,
) -> Result[PackageMetadata, SyncError]:
    console.info(f"Fetching registry metadata for {package_name}")
    url = package_url(registry_url, package_name)
    result = http.get_json(url)
    if isinstance(result, Err):
        return Err(
            SyncError(
                kind="registry_unavailable",
                message=f"failed to fetch registry metadata for {package_name}",
                hint=str(result.error),
            )
        )

    data = result.value
    versions = as_str_dict(data.get("versions", {}))
    dist_tags = as_str_dict(data.get("dist-tags", {}))
    if versions is None or dist_tags is None:
        return Err(
            SyncError(
                kind="registry_unavailable",
                message=f"unexpected registry payload for {package_name}",
                hint=url,
            )
        )

    return Ok(
        PackageMetadata(
            name=package_name,
            versions=frozenset(versions),
            dist_tags={tag: v for tag, v in dist_tags.items() if isinstance(v, str)},
        )
    )


def has_published_version(metadata: PackageMetadata, package_version: str) -> bool:
    return package_version in metadata.versions


def ensure_dist_tag(
    metadata: PackageMetadata,
    package_version: str,
    tag: str,
    *,
    runner: Runner,
    cwd: Path,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[bool, SyncError]:
    """Point ``tag`` at ``package_version`` unless it already does.

    Returns:
        Ok(True) if a tag update was issued (or echoed in dry-run), Ok(False)
        if the registry was already correct.
    """
    if metadata.dist_tags.get(tag) == package_version:
        return Ok(False)

    console.info(f"Tagging {metadata.name}@{package_version} as {tag}")
    # npm ignores --dry-run for dist-tag, so a dry run only echoes.
    result = run_command(
        runner=runner,
        cmd=["npm", "dist-tag", "add", f"{metadata.name}@{package_version}", tag],
        cwd=cwd,
        console=console,
        message=f"npm dist-tag add {tag} failed",
        skip=dry_run,
    )
    if isinstance(result, Err):
        return result
    return Ok(True)


def publish(
    package_dir: Path,
    dist_tag: str,
    *,
    runner: Runner,
    console: ConsoleProtocol,
    dry_run: bool,
    provenance: bool = True,
) -> Result[None, SyncError]:
    """Publish the staged directory under ``dist_tag``.

    Not idempotent: callers check :func:`has_published_version` first.
    """
    console.info("Publishing npm package")
    cmd = ["npm", "publish"]
    if dry_run:
        cmd.append("--dry-run")
    if provenance:
        cmd.append("--provenance")
    cmd += ["--tag", dist_tag]

    result = run_command(
        runner=runner,
        cmd=cmd,
        cwd=package_dir,
        console=console,
        message=f"npm publish failed for {dist_tag}",
    )
    if isinstance(result, Err):
        return result
    return Ok(None)
