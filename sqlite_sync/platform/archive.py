"""Zip extraction for release archives.

Entries are sanitised before extraction: absolute paths, ``..`` components,
drive prefixes and symlinks are skipped, and nothing is written outside the
destination directory.
"""

from __future__ import annotations

import shutil
import stat
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from sqlite_sync.core.result import Err, Ok, Result

__all__ = ["ArchiveError", "extract_zip"]


@dataclass(frozen=True, slots=True)
class ArchiveError:
    """Extraction error details.

    Attributes:
        archive: Path to the archive that failed
        message: Human-readable error message
    """

    archive: Path
    message: str

    def __str__(self) -> str:
        return f"{self.message}: {self.archive}"


def _safe_relative_path(member_name: str) -> Path | None:
    normalized = member_name.replace("\\", "/")
    if normalized.startswith("/"):
        return None

    parts = PurePosixPath(normalized).parts
    if not parts:
        return None
    if any(part in {"", ".", ".."} for part in parts):
        return None
    if parts[0].endswith(":"):
        return None
    return Path(*parts)


def _is_within_root(root: Path, target: Path) -> bool:
    try:
        return target.resolve().is_relative_to(root.resolve())
    except OSError:
        return False


def extract_zip(archive: Path, dest: Path) -> Result[list[Path], ArchiveError]:
    """Extract a zip archive into dest.

    Args:
        archive: Path to the .zip file
        dest: Directory to extract into (created if missing)

    Returns:
        Ok with the extracted file paths (archive order), or Err(ArchiveError)
    """
    if not archive.exists():
        return Err(ArchiveError(archive=archive, message="Archive not found"))

    extracted: list[Path] = []
    try:
        dest.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive, "r") as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue

                rel_path = _safe_relative_path(info.filename)
                if rel_path is None:
                    continue

                file_type_bits = (info.external_attr >> 16) & 0o170000
                if file_type_bits == stat.S_IFLNK:
                    continue

                full_path = dest / rel_path
                if not _is_within_root(dest, full_path):
                    continue

                full_path.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(full_path, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                extracted.append(full_path)
    except zipfile.BadZipFile as e:
        return Err(ArchiveError(archive=archive, message=f"Invalid zip file: {e}"))
    except OSError as e:
        return Err(ArchiveError(archive=archive, message=f"IO error: {e}"))

    return Ok(extracted)
