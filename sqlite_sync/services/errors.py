"""Error payload shared by every sync service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

SyncErrorKind = Literal[
    "malformed_version",
    "upstream_unavailable",
    "upstream_format_changed",
    "registry_unavailable",
    "staging_failed",
    "corrupt_manifest",
    "marker_not_found",
    "subprocess_failed",
    "write_failed",
]


@dataclass(frozen=True, slots=True)
class SyncError:
    """Canonical sync error.

    Every failure aborts the run; the CLI renders it with :meth:`pretty`.
    """

    kind: SyncErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
