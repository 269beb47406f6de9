"""Upstream release discovery on sqlite.org.

The download page embeds a machine-readable product table as HTML comments::

    PRODUCT,3.46.0,2024/sqlite-amalgamation-3460000.zip,2721283,...

Each release has a changelog page (``releaselog/3_46_0.html``) whose body
contains the release date, which determines the archive's year directory.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sqlite_sync.core.result import Err, Ok, Result
from sqlite_sync.output.console import ConsoleProtocol
from sqlite_sync.platform.http import HttpClient
from sqlite_sync.services.errors import SyncError
from sqlite_sync.services.version import parse_version, release_slug

PRODUCT_PREFIX = "PRODUCT,"
PRODUCT_MARKER = "sqlite-amalgamation-"

_RELEASE_DATE_RE = re.compile(r"On (\d{4})-\d{2}-\d{2}", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class ReleaseMetadata:
    version: str
    version_code: str
    year: str
    download_url: str


def release_log_url(base_url: str, version: str) -> str:
    return f"{base_url.rstrip('/')}/{release_slug(version)}.html"


def latest_upstream_version(
    http: HttpClient,
    *,
    download_page_url: str,
    console: ConsoleProtocol,
) -> Result[str, SyncError]:
    """Return the newest amalgamation version listed on the download page."""
    console.info("Fetching latest SQLite version")
    page = http.get_text(download_page_url)
    if isinstance(page, Err):
        return Err(
            SyncError(
                kind="upstream_unavailable",
                message="failed to fetch SQLite download page",
                hint=str(page.error),
            )
        )

    for line in page.value.splitlines():
        if not line.startswith(PRODUCT_PREFIX) or PRODUCT_MARKER not in line:
            continue
        fields = line.split(",")
        if len(fields) < 2 or not fields[1].strip():
            break
        return Ok(fields[1].strip())

    return Err(
        SyncError(
            kind="upstream_format_changed",
            message="no amalgamation PRODUCT line on the download page",
            hint=download_page_url,
        )
    )


def release_metadata(
    http: HttpClient,
    version: str,
    *,
    release_log_base_url: str,
    download_base_url: str,
    console: ConsoleProtocol,
) -> Result[ReleaseMetadata, SyncError]:
    """Resolve the archive download URL for one upstream release."""
    parsed = parse_version(version)
    if isinstance(parsed, Err):
        return parsed
    code = str(parsed.value.code)

    console.info(f"Fetching release metadata for SQLite {version}")
    url = release_log_url(release_log_base_url, version)
    page = http.get_text(url)
    if isinstance(page, Err):
        return Err(
            SyncError(
                kind="upstream_unavailable",
                message=f"failed to fetch release log for SQLite {version}",
                hint=str(page.error),
            )
        )

    m = _RELEASE_DATE_RE.search(page.value)
    if m is None:
        return Err(
            SyncError(
                kind="upstream_format_changed",
                message=f"no release date found in release log for SQLite {version}",
                hint=url,
            )
        )

    year = m.group(1)
    download_url = f"{download_base_url.rstrip('/')}/{year}/{PRODUCT_MARKER}{code}.zip"
    return Ok(
        ReleaseMetadata(
            version=version,
            version_code=code,
            year=year,
            download_url=download_url,
        )
    )
