from __future__ import annotations

from sqlite_sync.core.result import Err, Ok
from sqlite_sync.output.console import MockConsole
from sqlite_sync.platform.http import HttpError, MockHttpClient
from sqlite_sync.services.upstream import (
    ReleaseMetadata,
    latest_upstream_version,
    release_log_url,
    release_metadata,
)

PAGE_URL = "https://sqlite.org/download.html"
LOG_BASE = "https://sqlite.org/releaselog"
DOWNLOAD_BASE = "https://www.sqlite.org"


def _latest(http: MockHttpClient):
    return latest_upstream_version(http, download_page_url=PAGE_URL, console=MockConsole())


def _metadata(http: MockHttpClient, version: str):
    return release_metadata(
        http,
        version,
        release_log_base_url=LOG_BASE,
        download_base_url=DOWNLOAD_BASE,
        console=MockConsole(),
    )


def test_latest_picks_first_amalgamation_product_line() -> None:
    http = MockHttpClient()
    http.set_text(
        PAGE_URL,
        "\n".join(
            [
                "<!--",
                "PRODUCT,3.46.1,2024/sqlite-src-3460100.zip,1,a",
                "PRODUCT,3.46.1,2024/sqlite-amalgamation-3460100.zip,2,b",
                "PRODUCT,3.46.0,2024/sqlite-amalgamation-3460000.zip,3,c",
                "-->",
            ]
        ),
    )
    assert _latest(http) == Ok("3.46.1")


def test_latest_handles_crlf() -> None:
    http = MockHttpClient()
    http.set_text(PAGE_URL, "x\r\nPRODUCT,3.47.0,2024/sqlite-amalgamation-3470000.zip,1,a\r\n")
    assert _latest(http) == Ok("3.47.0")


def test_latest_ignores_marker_without_prefix() -> None:
    http = MockHttpClient()
    http.set_text(PAGE_URL, "<a href='2024/sqlite-amalgamation-3460000.zip'>zip</a>\n")
    result = _latest(http)
    assert isinstance(result, Err)
    assert result.error.kind == "upstream_format_changed"


def test_latest_fetch_failure_is_reported() -> None:
    http = MockHttpClient()
    http.set_text(PAGE_URL, HttpError(url=PAGE_URL, status=503, message="Service Unavailable"))
    result = _latest(http)
    assert isinstance(result, Err)
    assert result.error.kind == "upstream_unavailable"
    assert result.error.hint is not None and "503" in result.error.hint


def test_release_log_url_uses_underscores() -> None:
    assert release_log_url(LOG_BASE + "/", "3.46.0") == "https://sqlite.org/releaselog/3_46_0.html"


def test_release_metadata_builds_download_url() -> None:
    http = MockHttpClient()
    http.set_text(f"{LOG_BASE}/3_46_1.html", "<h2>SQLite Release 3.46.1 On 2024-08-13</h2>")

    assert _metadata(http, "3.46.1") == Ok(
        ReleaseMetadata(
            version="3.46.1",
            version_code="3460100",
            year="2024",
            download_url="https://www.sqlite.org/2024/sqlite-amalgamation-3460100.zip",
        )
    )


def test_release_metadata_date_match_is_case_insensitive() -> None:
    http = MockHttpClient()
    http.set_text(f"{LOG_BASE}/3_44_0.html", "released on 2023-11-01")
    result = _metadata(http, "3.44.0")
    assert isinstance(result, Ok)
    assert result.value.year == "2023"


def test_release_metadata_missing_date() -> None:
    http = MockHttpClient()
    http.set_text(f"{LOG_BASE}/3_46_1.html", "<h2>SQLite Release 3.46.1</h2>")
    result = _metadata(http, "3.46.1")
    assert isinstance(result, Err)
    assert result.error.kind == "upstream_format_changed"


def test_release_metadata_rejects_malformed_version_before_fetching() -> None:
    http = MockHttpClient()
    result = _metadata(http, "3.46")
    assert isinstance(result, Err)
    assert result.error.kind == "malformed_version"
    assert http.calls == []
