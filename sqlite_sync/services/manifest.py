"""The tracking manifest: upstream version -> published npm version.

On disk it is a JSON object whose key order is meaningful (newest first)::

    {
      "3.46.0": "0.3460000.0-sqlite-amalgamation",
      "3.45.3": null
    }

``null`` marks a release that is known but not yet published.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, replace
from pathlib import Path

from sqlite_sync.core.result import Err, Ok, Result
from sqlite_sync.core.structured import as_str_dict
from sqlite_sync.platform.files import read_text_file, replace_text_file
from sqlite_sync.services.errors import SyncError


@dataclass(frozen=True, slots=True)
class ReleaseEntry:
    upstream_version: str
    package_version: str | None = None

    @property
    def is_published(self) -> bool:
        return self.package_version is not None


@dataclass(frozen=True, slots=True)
class Manifest:
    """Newest-first sequence of release entries.

    Updates return a new manifest; existing entries are never reordered.
    """

    entries: tuple[ReleaseEntry, ...] = ()

    def __contains__(self, version: object) -> bool:
        return any(e.upstream_version == version for e in self.entries)

    def __iter__(self) -> Iterator[ReleaseEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def latest(self) -> ReleaseEntry | None:
        return self.entries[0] if self.entries else None

    def get(self, version: str) -> ReleaseEntry | None:
        for entry in self.entries:
            if entry.upstream_version == version:
                return entry
        return None

    def oldest_first(self) -> tuple[ReleaseEntry, ...]:
        return tuple(reversed(self.entries))

    def with_latest(self, version: str) -> Manifest:
        """Prepend an unpublished entry for ``version`` if it is new."""
        if version in self:
            return self
        return Manifest(entries=(ReleaseEntry(version), *self.entries))

    def with_published(self, version: str, package_version: str) -> Manifest:
        """Record ``package_version`` for an existing entry, keeping its position."""
        return Manifest(
            entries=tuple(
                replace(e, package_version=package_version)
                if e.upstream_version == version
                else e
                for e in self.entries
            )
        )


def _corrupt(message: str, path: Path) -> Err[SyncError]:
    return Err(SyncError(kind="corrupt_manifest", message=message, hint=str(path)))


def manifest_from_json(text: str, *, path: Path) -> Result[Manifest, SyncError]:
    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return _corrupt(f"invalid JSON in manifest: {e}", path)

    data = as_str_dict(obj)
    if data is None:
        return _corrupt("manifest root must be a JSON object", path)

    entries: list[ReleaseEntry] = []
    for version, value in data.items():
        if value is not None and not isinstance(value, str):
            return _corrupt(f"manifest entry {version!r} must be a string or null", path)
        entries.append(ReleaseEntry(upstream_version=version, package_version=value))
    return Ok(Manifest(entries=tuple(entries)))


def manifest_to_json(manifest: Manifest) -> str:
    payload = {e.upstream_version: e.package_version for e in manifest}
    return json.dumps(payload, indent=2) + "\n"


def load_manifest(path: Path) -> Result[Manifest, SyncError]:
    text = read_text_file(path)
    if isinstance(text, Err):
        return _corrupt(f"failed to read manifest: {text.error.message}", path)
    return manifest_from_json(text.value, path=path)


def save_manifest(path: Path, manifest: Manifest) -> Result[None, SyncError]:
    written = replace_text_file(path, manifest_to_json(manifest))
    if isinstance(written, Err):
        return Err(
            SyncError(
                kind="write_failed",
                message=f"failed to write manifest: {written.error.message}",
                hint=str(path),
            )
        )
    return Ok(None)
