"""Assemble a publishable npm package from an upstream amalgamation zip.

Layout of a staging workspace::

    sqlite-sync-XXXX/
    ├── sqlite-amalgamation-3460000.zip
    ├── extract/sqlite-amalgamation-3460000/...
    └── package/
        ├── package.json
        ├── README.md
        └── sqlite3.c, sqlite3.h, ...

The workspace is removed when the ``with`` block exits, whatever the outcome.
"""

from __future__ import annotations

import json
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from sqlite_sync.core.config import SyncConfig
from sqlite_sync.core.result import Err, Ok, Result
from sqlite_sync.output.console import ConsoleProtocol
from sqlite_sync.platform.archive import extract_zip
from sqlite_sync.platform.http import HttpClient
from sqlite_sync.services.errors import SyncError
from sqlite_sync.services.version import dist_tag, parse_version

WORKSPACE_PREFIX = "sqlite-sync-"
PACKAGE_DESCRIPTION = "SQLite amalgamation sources published to npm"
PACKAGE_LICENSE = "blessing"


@dataclass(frozen=True, slots=True)
class StagedPackage:
    """A package directory ready for ``npm publish``.

    Only valid inside the ``stage_package`` block that produced it.
    """

    package_dir: Path
    files: tuple[str, ...]


def _staging_error(message: str, hint: str | None = None) -> Err[SyncError]:
    return Err(SyncError(kind="staging_failed", message=message, hint=hint))


def _payload_root(extract_dir: Path) -> Path:
    entries = list(extract_dir.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return extract_dir


def render_package_readme(*, package_name: str, version: str, files: tuple[str, ...]) -> str:
    tag = dist_tag(version)
    lines = [
        f"# {package_name}",
        "",
        f"SQLite {version} amalgamation sources.",
        "",
        "## Installation",
        "",
        "```bash",
        f"npm install {package_name}@{tag}",
        "```",
        "",
        "## Files",
        "",
        *[f"- `{name}`" for name in files],
        "",
    ]
    return "\n".join(lines)


def render_package_json(
    *,
    package_name: str,
    package_version: str,
    files: tuple[str, ...],
    repository_url: str,
) -> str:
    payload: dict[str, object] = {
        "name": package_name,
        "version": package_version,
        "description": PACKAGE_DESCRIPTION,
        "license": PACKAGE_LICENSE,
        "keywords": ["sqlite"],
        "files": list(files),
        "repository": {"type": "git", "url": repository_url},
    }
    return json.dumps(payload, indent=2) + "\n"


def _assemble(
    *,
    work_root: Path,
    version: str,
    download_url: str,
    http: HttpClient,
    config: SyncConfig,
    console: ConsoleProtocol,
) -> Result[StagedPackage, SyncError]:
    parsed = parse_version(version)
    if isinstance(parsed, Err):
        return parsed
    upstream = parsed.value

    archive_name = download_url.rsplit("/", 1)[-1] or f"sqlite-amalgamation-{upstream.code}.zip"
    archive_path = work_root / archive_name
    extract_dir = work_root / "extract"
    package_dir = work_root / "package"

    console.info(f"Downloading {download_url}")
    downloaded = http.download(download_url, archive_path)
    if isinstance(downloaded, Err):
        return _staging_error(f"failed to download SQLite {version}", str(downloaded.error))

    console.info("Unzipping archive")
    extracted = extract_zip(archive_path, extract_dir)
    if isinstance(extracted, Err):
        return _staging_error(f"failed to extract SQLite {version}", str(extracted.error))
    if not extracted.value:
        return _staging_error(f"archive for SQLite {version} is empty", download_url)

    console.info("Preparing npm package")
    try:
        package_dir.mkdir(parents=True, exist_ok=True)
        source = _payload_root(extract_dir)
        files = tuple(sorted(p.name for p in source.iterdir()))
        for name in files:
            shutil.move(str(source / name), str(package_dir / name))

        (package_dir / "package.json").write_text(
            render_package_json(
                package_name=config.package_name,
                package_version=upstream.package_version,
                files=files,
                repository_url=config.repository_url,
            ),
            encoding="utf-8",
        )
        (package_dir / "README.md").write_text(
            render_package_readme(
                package_name=config.package_name,
                version=version,
                files=files,
            ),
            encoding="utf-8",
        )
    except OSError as e:
        return _staging_error(f"failed to assemble package for SQLite {version}", str(e))

    return Ok(StagedPackage(package_dir=package_dir, files=files))


@contextmanager
def stage_package(
    version: str,
    download_url: str,
    *,
    http: HttpClient,
    config: SyncConfig,
    console: ConsoleProtocol,
) -> Iterator[Result[StagedPackage, SyncError]]:
    """Stage one release in a temporary workspace.

    Usage:
        with stage_package("3.46.0", url, http=http, config=config, console=console) as staged:
            if isinstance(staged, Ok):
                publish(staged.value.package_dir, ...)
    """
    try:
        if config.tmp_root is not None:
            config.tmp_root.mkdir(parents=True, exist_ok=True)
        work_root = Path(
            tempfile.mkdtemp(
                prefix=WORKSPACE_PREFIX,
                dir=str(config.tmp_root) if config.tmp_root else None,
            )
        )
    except OSError as e:
        yield _staging_error(f"failed to create staging workspace for SQLite {version}", str(e))
        return

    try:
        yield _assemble(
            work_root=work_root,
            version=version,
            download_url=download_url,
            http=http,
            config=config,
            console=console,
        )
    finally:
        shutil.rmtree(work_root, ignore_errors=True)
