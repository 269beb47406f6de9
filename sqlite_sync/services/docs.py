"""README regeneration and publishing of the tracking files.

The README carries two regions delimited by HTML comments::

    <!-- installation:start -->
    ...generated...
    <!-- installation:end -->

Only the text strictly between a marker pair is rewritten.
"""

from __future__ import annotations

from pathlib import Path

from sqlite_sync.core.config import DEFAULT_RELEASE_LOG_URL
from sqlite_sync.core.result import Err, Ok, Result
from sqlite_sync.output.console import ConsoleProtocol
from sqlite_sync.platform.files import read_text_file, replace_text_file
from sqlite_sync.platform.process import Runner
from sqlite_sync.services.commands import run_command
from sqlite_sync.services.errors import SyncError
from sqlite_sync.services.manifest import Manifest
from sqlite_sync.services.upstream import release_log_url
from sqlite_sync.services.version import dist_tag

INSTALLATION_MARKER = "installation"
RELEASES_MARKER = "releases"

NPM_PACKAGE_PAGE_URL = "https://www.npmjs.com/package"


def _empty_manifest() -> Err[SyncError]:
    return Err(
        SyncError(
            kind="corrupt_manifest",
            message="manifest is empty; cannot update README",
        )
    )


def render_installation_block(
    manifest: Manifest, *, package_name: str
) -> Result[str, SyncError]:
    latest = manifest.latest
    if latest is None:
        return _empty_manifest()
    return Ok(
        "\n".join(
            [
                "```bash",
                f"npm install {package_name}@{dist_tag(latest.upstream_version)}",
                "```",
            ]
        )
    )


def render_release_table(
    manifest: Manifest,
    *,
    package_name: str,
    release_log_base_url: str = DEFAULT_RELEASE_LOG_URL,
) -> Result[str, SyncError]:
    if manifest.latest is None:
        return _empty_manifest()

    rows = ["| SQLite | npm |", "| ------ | --- |"]
    for entry in manifest:
        version = entry.upstream_version
        tag = dist_tag(version)
        npm_url = f"{NPM_PACKAGE_PAGE_URL}/{package_name}/v/{tag}"
        rows.append(
            f"| [{version}]({release_log_url(release_log_base_url, version)}) | [{tag}]({npm_url}) |"
        )
    return Ok("\n".join(rows))


def replace_marked_region(document: str, marker: str, content: str) -> Result[str, SyncError]:
    start_marker = f"<!-- {marker}:start -->"
    end_marker = f"<!-- {marker}:end -->"

    start = document.find(start_marker)
    if start == -1:
        return Err(
            SyncError(
                kind="marker_not_found",
                message=f"README marker not found: {start_marker}",
            )
        )
    body_start = start + len(start_marker)

    end = document.find(end_marker, body_start)
    if end == -1:
        return Err(
            SyncError(
                kind="marker_not_found",
                message=f"README marker not found after {start_marker}: {end_marker}",
            )
        )

    return Ok(f"{document[:body_start]}\n{content}\n{document[end:]}")


def render_readme(
    document: str,
    manifest: Manifest,
    *,
    package_name: str,
    release_log_base_url: str = DEFAULT_RELEASE_LOG_URL,
) -> Result[str, SyncError]:
    """Rewrite both generated regions of a README document."""
    installation = render_installation_block(manifest, package_name=package_name)
    if isinstance(installation, Err):
        return installation
    releases = render_release_table(
        manifest, package_name=package_name, release_log_base_url=release_log_base_url
    )
    if isinstance(releases, Err):
        return releases

    updated = replace_marked_region(document, INSTALLATION_MARKER, installation.value)
    if isinstance(updated, Err):
        return updated
    return replace_marked_region(updated.value, RELEASES_MARKER, releases.value)


def update_readme(
    path: Path,
    manifest: Manifest,
    *,
    package_name: str,
    console: ConsoleProtocol,
    release_log_base_url: str = DEFAULT_RELEASE_LOG_URL,
) -> Result[None, SyncError]:
    console.info(f"Updating {path.name}")
    document = read_text_file(path)
    if isinstance(document, Err):
        return Err(
            SyncError(
                kind="write_failed",
                message=f"failed to read README: {document.error.message}",
                hint=str(path),
            )
        )

    rendered = render_readme(
        document.value,
        manifest,
        package_name=package_name,
        release_log_base_url=release_log_base_url,
    )
    if isinstance(rendered, Err):
        return rendered

    written = replace_text_file(path, rendered.value)
    if isinstance(written, Err):
        return Err(
            SyncError(
                kind="write_failed",
                message=f"failed to write README: {written.error.message}",
                hint=str(path),
            )
        )
    return Ok(None)


def commit_and_push(
    *,
    repo_root: Path,
    paths: list[Path],
    message: str,
    runner: Runner,
    console: ConsoleProtocol,
    dry_run: bool,
    remote: str = "origin",
    branch: str = "main",
) -> Result[None, SyncError]:
    """Stage exactly ``paths``, commit and push to ``remote``/``branch``.

    In dry-run every git command still runs, with ``--dry-run``.
    """
    console.info("Preparing commit")
    rels: list[str] = []
    for p in paths:
        if not p.is_relative_to(repo_root):
            return Err(
                SyncError(
                    kind="subprocess_failed",
                    message=f"cannot commit {p}: outside repository {repo_root}",
                )
            )
        rels.append(p.relative_to(repo_root).as_posix())

    # git validates without changing the index, HEAD or the remote
    flags = ["--dry-run"] if dry_run else []
    steps: list[tuple[list[str], str]] = [
        (["git", "add", *flags, "--", *rels], "git add failed"),
        (["git", "commit", *flags, "-m", message], "git commit failed"),
        (["git", "push", *flags, remote, f"HEAD:{branch}"], "git push failed"),
    ]
    for cmd, failure in steps:
        result = run_command(
            runner=runner,
            cmd=cmd,
            cwd=repo_root,
            console=console,
            message=failure,
        )
        if isinstance(result, Err):
            return result

    return Ok(None)
