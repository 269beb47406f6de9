from __future__ import annotations

from pathlib import Path

from sqlite_sync.core.result import Err, Ok, Result
from sqlite_sync.output.console import ConsoleProtocol, Style
from sqlite_sync.platform.process import Runner, format_command
from sqlite_sync.services.errors import SyncError


def run_command(
    *,
    runner: Runner,
    cmd: list[str],
    cwd: Path,
    console: ConsoleProtocol,
    message: str,
    skip: bool = False,
) -> Result[str, SyncError]:
    """Echo and run an external command.

    With ``skip`` the command is only echoed; used for mutations that have no
    native dry-run mode.
    """
    console.print(format_command(cmd), Style.DIM)
    if skip:
        return Ok("")

    result = runner(cmd, cwd)
    if isinstance(result, Err):
        e = result.error
        return Err(
            SyncError(
                kind="subprocess_failed",
                message=f"{message} (exit {e.returncode})",
                hint=e.stderr.strip() or e.stdout.strip() or None,
            )
        )
    return result
