from __future__ import annotations

import json
from pathlib import Path

import pytest

from sqlite_sync.core.config import SyncConfig
from sqlite_sync.output.console import MockConsole
from sqlite_sync.platform.http import MockHttpClient
from sqlite_sync.test.fakes import (
    README_TEMPLATE,
    RecordingRunner,
    SyncFixture,
    SyncFixtureFactory,
)


@pytest.fixture
def sync_fixture(tmp_path: Path) -> SyncFixtureFactory:
    """Build a tracking repository with a manifest, a README and fake collaborators."""

    def factory(
        manifest: dict[str, str | None],
        *,
        dry_run: bool = False,
        readme: str = README_TEMPLATE,
    ) -> SyncFixture:
        root = tmp_path / "repo"
        root.mkdir()
        (root / "manifest.json").write_text(json.dumps(manifest, indent=2) + "\n", "utf-8")
        (root / "README.md").write_text(readme, "utf-8")
        config = SyncConfig(root=root, dry_run=dry_run, tmp_root=tmp_path / "staging")
        return SyncFixture(
            root=root,
            http=MockHttpClient(),
            runner=RecordingRunner(),
            console=MockConsole(),
            config=config,
        )

    return factory
