from __future__ import annotations

from pathlib import Path

import pytest

from sqlite_sync.core.result import Err, Ok
from sqlite_sync.output.console import MockConsole
from sqlite_sync.platform.process import ProcessError
from sqlite_sync.services.docs import (
    commit_and_push,
    render_installation_block,
    render_readme,
    render_release_table,
    replace_marked_region,
    update_readme,
)
from sqlite_sync.services.manifest import Manifest, ReleaseEntry
from sqlite_sync.test.fakes import README_TEMPLATE, RecordingRunner

MANIFEST = Manifest(
    (
        ReleaseEntry("3.46.0", "0.3460000.0-sqlite-amalgamation"),
        ReleaseEntry("3.45.0", "0.3450000.0-sqlite-amalgamation"),
    )
)


def test_render_installation_block() -> None:
    assert render_installation_block(MANIFEST, package_name="sqlite-source") == Ok(
        "```bash\nnpm install sqlite-source@sqlite-amalgamation-3.46.0\n```"
    )


def test_render_release_table_newest_first() -> None:
    result = render_release_table(MANIFEST, package_name="sqlite-source")
    assert isinstance(result, Ok)
    assert result.value.splitlines() == [
        "| SQLite | npm |",
        "| ------ | --- |",
        "| [3.46.0](https://sqlite.org/releaselog/3_46_0.html) | "
        "[sqlite-amalgamation-3.46.0]"
        "(https://www.npmjs.com/package/sqlite-source/v/sqlite-amalgamation-3.46.0) |",
        "| [3.45.0](https://sqlite.org/releaselog/3_45_0.html) | "
        "[sqlite-amalgamation-3.45.0]"
        "(https://www.npmjs.com/package/sqlite-source/v/sqlite-amalgamation-3.45.0) |",
    ]


def test_render_on_empty_manifest_fails() -> None:
    assert isinstance(render_installation_block(Manifest(), package_name="x"), Err)
    assert isinstance(render_release_table(Manifest(), package_name="x"), Err)


def test_replace_marked_region_preserves_outside_content() -> None:
    doc = "head\n<!-- a:start -->\nold\n<!-- a:end -->\ntail <!-- b:start -->x<!-- b:end -->"
    result = replace_marked_region(doc, "a", "new")
    assert result == Ok(
        "head\n<!-- a:start -->\nnew\n<!-- a:end -->\ntail <!-- b:start -->x<!-- b:end -->"
    )


def test_replace_marked_region_is_stable_on_repeat() -> None:
    once = replace_marked_region(README_TEMPLATE, "releases", "table").unwrap()
    twice = replace_marked_region(once, "releases", "table").unwrap()
    assert once == twice


@pytest.mark.parametrize(
    "doc",
    [
        "no markers",
        "<!-- a:start --> only start",
        "only end <!-- a:end -->",
        "<!-- a:end --> reversed <!-- a:start -->",
        "<!-- b:start --><!-- b:end -->",
    ],
)
def test_replace_marked_region_missing_marker(doc: str) -> None:
    result = replace_marked_region(doc, "a", "new")
    assert isinstance(result, Err)
    assert result.error.kind == "marker_not_found"


def test_render_readme_rewrites_both_regions() -> None:
    result = render_readme(README_TEMPLATE, MANIFEST, package_name="sqlite-source")
    assert isinstance(result, Ok)
    text = result.value
    assert "old install" not in text and "old table" not in text
    assert text.startswith("# sqlite-source\n\n## Installation\n\n<!-- installation:start -->\n```bash")
    assert text.endswith("<!-- releases:end -->\n\nFooter stays.\n")


def test_update_readme_writes_file(tmp_path: Path) -> None:
    path = tmp_path / "README.md"
    path.write_text(README_TEMPLATE, encoding="utf-8")

    result = update_readme(path, MANIFEST, package_name="sqlite-source", console=MockConsole())

    assert result == Ok(None)
    assert "sqlite-amalgamation-3.45.0" in path.read_text("utf-8")


def test_update_readme_missing_marker_leaves_file(tmp_path: Path) -> None:
    path = tmp_path / "README.md"
    path.write_text("<!-- installation:start --><!-- installation:end -->\n", encoding="utf-8")

    result = update_readme(path, MANIFEST, package_name="sqlite-source", console=MockConsole())

    assert isinstance(result, Err)
    assert result.error.kind == "marker_not_found"
    assert path.read_text("utf-8") == "<!-- installation:start --><!-- installation:end -->\n"


def test_commit_and_push_stages_named_files(tmp_path: Path) -> None:
    runner = RecordingRunner()
    result = commit_and_push(
        repo_root=tmp_path,
        paths=[tmp_path / "manifest.json", tmp_path / "README.md"],
        message="Release SQLite 3.46.0",
        runner=runner,
        console=MockConsole(),
        dry_run=False,
        branch="trunk",
    )
    assert result == Ok(None)
    assert [cmd for cmd, _ in runner.calls] == [
        ["git", "add", "--", "manifest.json", "README.md"],
        ["git", "commit", "-m", "Release SQLite 3.46.0"],
        ["git", "push", "origin", "HEAD:trunk"],
    ]
    assert all(cwd == tmp_path for _, cwd in runner.calls)


def test_commit_and_push_stops_on_failure(tmp_path: Path) -> None:
    runner = RecordingRunner(
        failures={
            "git commit": ProcessError(
                command=("git", "commit"), returncode=1, stdout="nothing to commit", stderr=""
            )
        }
    )
    result = commit_and_push(
        repo_root=tmp_path,
        paths=[tmp_path / "manifest.json"],
        message="m",
        runner=runner,
        console=MockConsole(),
        dry_run=False,
    )
    assert isinstance(result, Err)
    assert result.error.kind == "subprocess_failed"
    assert result.error.hint == "nothing to commit"
    assert [cmd[1] for cmd, _ in runner.calls] == ["add", "commit"]


def test_commit_and_push_dry_run(tmp_path: Path) -> None:
    runner = RecordingRunner()
    console = MockConsole()
    result = commit_and_push(
        repo_root=tmp_path,
        paths=[tmp_path / "manifest.json"],
        message="m",
        runner=runner,
        console=console,
        dry_run=True,
    )
    assert result == Ok(None)
    assert [cmd for cmd, _ in runner.calls] == [
        ["git", "add", "--dry-run", "--", "manifest.json"],
        ["git", "commit", "--dry-run", "-m", "m"],
        ["git", "push", "--dry-run", "origin", "HEAD:main"],
    ]
    assert console.find("git push --dry-run origin HEAD:main")


def test_commit_and_push_rejects_paths_outside_repo(tmp_path: Path) -> None:
    runner = RecordingRunner()
    result = commit_and_push(
        repo_root=tmp_path / "repo",
        paths=[tmp_path / "elsewhere" / "README.md"],
        message="m",
        runner=runner,
        console=MockConsole(),
        dry_run=False,
    )
    assert isinstance(result, Err)
    assert result.error.kind == "subprocess_failed"
    assert runner.calls == []


def test_release_table_uses_configured_release_log() -> None:
    result = render_release_table(
        MANIFEST,
        package_name="sqlite-source",
        release_log_base_url="https://mirror.example/releaselog/",
    )
    assert isinstance(result, Ok)
    assert "[3.46.0](https://mirror.example/releaselog/3_46_0.html)" in result.value
    assert "sqlite.org/releaselog" not in result.value


def test_update_readme_uses_configured_release_log(tmp_path: Path) -> None:
    path = tmp_path / "README.md"
    path.write_text(README_TEMPLATE, encoding="utf-8")

    update_readme(
        path,
        MANIFEST,
        package_name="sqlite-source",
        console=MockConsole(),
        release_log_base_url="https://mirror.example/releaselog",
    ).unwrap()

    assert "https://mirror.example/releaselog/3_45_0.html" in path.read_text("utf-8")
