"""Reading and replacing the tracking files (manifest, README).

Both helpers return a Result so services can map I/O failures onto their own
error kinds.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from sqlite_sync.core.result import Err, Ok, Result

__all__ = ["FileError", "read_text_file", "replace_text_file"]


@dataclass(frozen=True, slots=True)
class FileError:
    path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.message}: {self.path}"


def read_text_file(path: Path) -> Result[str, FileError]:
    try:
        return Ok(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(FileError(path=path, message="File not found"))
    except UnicodeDecodeError as e:
        return Err(FileError(path=path, message=f"Not valid UTF-8 ({e.reason})"))
    except OSError as e:
        return Err(FileError(path=path, message=e.strerror or str(e)))


def replace_text_file(path: Path, content: str) -> Result[None, FileError]:
    """Swap in new content via a sibling temp file and ``os.replace``.

    Readers see either the old file or the new one, never a partial write.
    """
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        return Err(FileError(path=path, message=e.strerror or str(e)))
    finally:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
    return Ok(None)
