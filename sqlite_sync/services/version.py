from __future__ import annotations

import re
from dataclasses import dataclass

from sqlite_sync.core.result import Err, Ok, Result
from sqlite_sync.services.errors import SyncError

DIST_TAG_PREFIX = "sqlite-amalgamation-"
PRERELEASE_LABEL = "sqlite-amalgamation"

_VERSION_RE = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")


@dataclass(frozen=True, slots=True, order=True)
class UpstreamVersion:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @property
    def code(self) -> int:
        # SQLite's download naming: 3.46.1 -> 3460100
        return self.major * 1_000_000 + self.minor * 10_000 + self.patch * 100

    @property
    def package_version(self) -> str:
        return f"0.{self.code}.0-{PRERELEASE_LABEL}"

    @property
    def dist_tag(self) -> str:
        return dist_tag(str(self))


def parse_version(version: str) -> Result[UpstreamVersion, SyncError]:
    m = _VERSION_RE.fullmatch(version)
    if m is None:
        return Err(
            SyncError(
                kind="malformed_version",
                message=f"invalid upstream version: {version!r}",
                hint="expected MAJOR.MINOR.PATCH",
            )
        )
    return Ok(UpstreamVersion(int(m.group(1)), int(m.group(2)), int(m.group(3))))


def version_code(version: str) -> Result[str, SyncError]:
    return parse_version(version).map(lambda v: str(v.code))


def package_version(version: str) -> Result[str, SyncError]:
    return parse_version(version).map(lambda v: v.package_version)


def dist_tag(version: str) -> str:
    return f"{DIST_TAG_PREFIX}{version}"


def release_slug(version: str) -> str:
    return version.replace(".", "_")
