"""The three fetches a sync performs: a page, the registry packument, a zip.

Services take an :class:`HttpClient`; the CLI wires :class:`RealHttpClient`
and tests use :class:`MockHttpClient`.
"""

from __future__ import annotations

import json
import shutil
import ssl
import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Protocol, runtime_checkable

from sqlite_sync import __version__
from sqlite_sync.core.result import Err, Ok, Result
from sqlite_sync.core.structured import StrDict, as_str_dict

__all__ = [
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """A failed fetch. ``status`` is 0 when no HTTP response was received."""

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations."""

    def get_json(self, url: str) -> Result[StrDict, HttpError]:
        """Fetch URL and parse the body as a JSON object."""
        ...

    def get_text(self, url: str) -> Result[str, HttpError]:
        """Fetch URL and decode the body as UTF-8."""
        ...

    def download(self, url: str, dest: Path) -> Result[Path, HttpError]:
        """Stream URL into dest and return dest."""
        ...


class RealHttpClient:
    """urllib client. Requests block indefinitely unless ``timeout`` is set."""

    def __init__(
        self,
        timeout: float | None = None,
        user_agent: str = f"sqlite-sync/{__version__}",
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def _fetch(self, url: str, consume: Callable[[BinaryIO], T]) -> Result[T, HttpError]:
        req = urllib.request.Request(url, headers={"User-Agent": self.user_agent})
        kwargs: dict[str, Any] = {"context": self._ssl_context}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        try:
            with urllib.request.urlopen(req, **kwargs) as response:
                return Ok(consume(response))
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except (ValueError, OSError) as e:
            # TimeoutError is an OSError
            return Err(HttpError(url=url, status=0, message=str(e) or type(e).__name__))

    def get_text(self, url: str) -> Result[str, HttpError]:
        body = self._fetch(url, lambda response: response.read())
        if isinstance(body, Err):
            return body
        try:
            return Ok(body.value.decode("utf-8"))
        except UnicodeDecodeError as e:
            return Err(HttpError(url=url, status=0, message=f"body is not UTF-8: {e.reason}"))

    def get_json(self, url: str) -> Result[StrDict, HttpError]:
        text = self.get_text(url)
        if isinstance(text, Err):
            return text
        try:
            data = as_str_dict(json.loads(text.value))
        except json.JSONDecodeError as e:
            return Err(HttpError(url=url, status=0, message=f"invalid JSON: {e}"))
        if data is None:
            return Err(HttpError(url=url, status=0, message="JSON body is not an object"))
        return Ok(data)

    def download(self, url: str, dest: Path) -> Result[Path, HttpError]:
        def save(response: BinaryIO) -> Path:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with open(dest, "wb") as f:
                shutil.copyfileobj(response, f)
            return dest

        return self._fetch(url, save)


class MockHttpClient:
    """Mock HTTP client for testing.

    Usage:
        client = MockHttpClient()
        client.set_text("https://sqlite.org/download.html", "PRODUCT,3.46.0,...")
        result = client.get_text("https://sqlite.org/download.html")
    """

    def __init__(self) -> None:
        self._json_responses: dict[str, StrDict | HttpError] = {}
        self._text_responses: dict[str, str | HttpError] = {}
        self._download_responses: dict[str, bytes | HttpError] = {}
        self.calls: list[tuple[str, str]] = []

    def set_json(self, url: str, response: StrDict | HttpError) -> None:
        self._json_responses[url] = response

    def set_text(self, url: str, response: str | HttpError) -> None:
        self._text_responses[url] = response

    def set_download(self, url: str, response: bytes | HttpError) -> None:
        self._download_responses[url] = response

    def get_json(self, url: str) -> Result[StrDict, HttpError]:
        self.calls.append(("get_json", url))
        response = self._json_responses.get(url)
        if response is None:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def get_text(self, url: str) -> Result[str, HttpError]:
        self.calls.append(("get_text", url))
        response = self._text_responses.get(url)
        if response is None:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def download(self, url: str, dest: Path) -> Result[Path, HttpError]:
        self.calls.append(("download", url))
        response = self._download_responses.get(url)
        if response is None:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))
        if isinstance(response, HttpError):
            return Err(response)

        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(response)
        return Ok(dest)
