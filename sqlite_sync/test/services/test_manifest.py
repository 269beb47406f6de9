from __future__ import annotations

from pathlib import Path

from sqlite_sync.core.result import Err, Ok
from sqlite_sync.services.manifest import (
    Manifest,
    ReleaseEntry,
    load_manifest,
    manifest_to_json,
    save_manifest,
)

V345 = "0.3450000.0-sqlite-amalgamation"
V346 = "0.3460000.0-sqlite-amalgamation"


def test_load_manifest_preserves_order(tmp_path: Path) -> None:
    path = tmp_path / "manifest.json"
    path.write_text('{"3.46.0": null, "3.44.0": "x", "3.45.0": "y"}', encoding="utf-8")

    result = load_manifest(path)

    assert isinstance(result, Ok)
    assert [e.upstream_version for e in result.value] == ["3.46.0", "3.44.0", "3.45.0"]
    assert result.value.latest == ReleaseEntry("3.46.0", None)
    assert not result.value.entries[0].is_published
    assert result.value.entries[1].is_published


def test_load_manifest_empty_object(tmp_path: Path) -> None:
    path = tmp_path / "manifest.json"
    path.write_text("{}\n", encoding="utf-8")
    result = load_manifest(path)
    assert result == Ok(Manifest())


def test_load_manifest_missing_file(tmp_path: Path) -> None:
    result = load_manifest(tmp_path / "manifest.json")
    assert isinstance(result, Err)
    assert result.error.kind == "corrupt_manifest"


def test_load_manifest_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "manifest.json"
    path.write_text("{", encoding="utf-8")
    result = load_manifest(path)
    assert isinstance(result, Err)
    assert result.error.kind == "corrupt_manifest"


def test_load_manifest_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / "manifest.json"
    path.write_text('["3.46.0"]', encoding="utf-8")
    result = load_manifest(path)
    assert isinstance(result, Err)
    assert result.error.kind == "corrupt_manifest"


def test_load_manifest_rejects_non_string_value(tmp_path: Path) -> None:
    path = tmp_path / "manifest.json"
    path.write_text('{"3.46.0": 3460000}', encoding="utf-8")
    result = load_manifest(path)
    assert isinstance(result, Err)
    assert "3.46.0" in result.error.message


def test_save_manifest_format(tmp_path: Path) -> None:
    path = tmp_path / "manifest.json"
    manifest = Manifest((ReleaseEntry("3.46.0", V346), ReleaseEntry("3.45.0", None)))

    assert save_manifest(path, manifest) == Ok(None)
    assert path.read_text("utf-8") == (
        "{\n"
        f'  "3.46.0": "{V346}",\n'
        '  "3.45.0": null\n'
        "}\n"
    )
    assert load_manifest(path) == Ok(manifest)


def test_manifest_to_json_empty() -> None:
    assert manifest_to_json(Manifest()) == "{}\n"


def test_with_published_keeps_position() -> None:
    manifest = Manifest(
        (ReleaseEntry("3.46.0", None), ReleaseEntry("3.45.3", None), ReleaseEntry("3.45.0", V345))
    )
    updated = manifest.with_published("3.45.3", "pkg")
    assert [e.upstream_version for e in updated] == ["3.46.0", "3.45.3", "3.45.0"]
    assert updated.get("3.45.3") == ReleaseEntry("3.45.3", "pkg")
    assert manifest.get("3.45.3") == ReleaseEntry("3.45.3", None)


def test_with_latest_never_removes_entries() -> None:
    manifest = Manifest((ReleaseEntry("3.45.0", V345),))
    updated = manifest.with_latest("3.46.0").with_latest("3.46.0")
    assert len(updated) == 2
    assert "3.45.0" in updated
    assert updated.oldest_first()[0] == ReleaseEntry("3.45.0", V345)
