from __future__ import annotations

import os
from pathlib import Path
from typing import NoReturn

import typer

from sqlite_sync.core.config import load_config
from sqlite_sync.core.result import Err
from sqlite_sync.output.console import RichConsole
from sqlite_sync.platform.http import RealHttpClient
from sqlite_sync.platform.process import run as run_process
from sqlite_sync.services.errors import SyncError
from sqlite_sync.services.reconcile import SyncContext

EXIT_FAILURE = 1


def exit_with(message: str) -> NoReturn:
    typer.echo(f"error: {message}", err=True)
    raise typer.Exit(code=EXIT_FAILURE)


def exit_with_error(error: SyncError) -> NoReturn:
    exit_with(error.pretty())


def build_context(root: Path | None, *, dry_run: bool = False) -> SyncContext:
    try:
        resolved = (root or Path.cwd()).expanduser().resolve()
    except OSError as e:
        exit_with(f"invalid --root: {e}")

    if not resolved.is_dir():
        exit_with(f"--root '{resolved}' is not a directory")

    config = load_config(resolved, os.environ, dry_run=dry_run)
    if isinstance(config, Err):
        exit_with(config.error.message)

    return SyncContext(
        config=config.value,
        http=RealHttpClient(timeout=config.value.http_timeout),
        runner=run_process,
        console=RichConsole(),
    )
