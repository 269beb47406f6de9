"""Typed configuration for a sync run.

Defaults describe the published ``sqlite-source`` package. A repository may
override them with an optional ``sqlite-sync.toml`` at its root; the ``DRY_RUN``
environment variable switches every mutating command to dry-run mode.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path, PurePath

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_float, get_str, get_table

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "SyncConfig",
    "dry_run_from_env",
    "load_config",
]

CONFIG_FILENAME = "sqlite-sync.toml"

DEFAULT_PACKAGE_NAME = "sqlite-source"
DEFAULT_REPOSITORY_URL = "git+https://github.com/tensionlabs/sqlite-source.git"
DEFAULT_DOWNLOAD_PAGE_URL = "https://sqlite.org/download.html"
DEFAULT_RELEASE_LOG_URL = "https://sqlite.org/releaselog"
DEFAULT_DOWNLOAD_BASE_URL = "https://www.sqlite.org"
DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"

@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """Everything a sync run needs besides its collaborators.

    Attributes:
        root: Repository holding the tracking files.
        manifest_name: Manifest file name, relative to root.
        readme_name: Documentation file name, relative to root.
        tmp_root: Parent directory for staging workspaces (system temp if None).
        http_timeout: Seconds per request; None waits indefinitely.
    """

    root: Path
    manifest_name: str = "manifest.json"
    readme_name: str = "README.md"
    package_name: str = DEFAULT_PACKAGE_NAME
    repository_url: str = DEFAULT_REPOSITORY_URL
    download_page_url: str = DEFAULT_DOWNLOAD_PAGE_URL
    release_log_url: str = DEFAULT_RELEASE_LOG_URL
    download_base_url: str = DEFAULT_DOWNLOAD_BASE_URL
    registry_url: str = DEFAULT_REGISTRY_URL
    git_remote: str = "origin"
    git_branch: str = "main"
    provenance: bool = True
    dry_run: bool = False
    tmp_root: Path | None = None
    http_timeout: float | None = None

    @property
    def manifest_path(self) -> Path:
        return self.root / self.manifest_name

    @property
    def readme_path(self) -> Path:
        return self.root / self.readme_name

    @classmethod
    def from_dict(cls, root: Path, data: Mapping[str, object], *, dry_run: bool) -> SyncConfig:
        """Create a config from a parsed TOML mapping."""
        files: StrDict = get_table(data, "files") or {}
        package: StrDict = get_table(data, "package") or {}
        upstream: StrDict = get_table(data, "upstream") or {}
        registry: StrDict = get_table(data, "registry") or {}
        git: StrDict = get_table(data, "git") or {}
        staging: StrDict = get_table(data, "staging") or {}

        tmp_root = get_str(staging, "tmp_root")
        provenance = get_bool(registry, "provenance")

        return cls(
            root=root,
            manifest_name=get_str(files, "manifest") or "manifest.json",
            readme_name=get_str(files, "readme") or "README.md",
            package_name=get_str(package, "name") or DEFAULT_PACKAGE_NAME,
            repository_url=get_str(package, "repository") or DEFAULT_REPOSITORY_URL,
            download_page_url=get_str(upstream, "download_page") or DEFAULT_DOWNLOAD_PAGE_URL,
            release_log_url=get_str(upstream, "release_log") or DEFAULT_RELEASE_LOG_URL,
            download_base_url=get_str(upstream, "download_base") or DEFAULT_DOWNLOAD_BASE_URL,
            registry_url=get_str(registry, "url") or DEFAULT_REGISTRY_URL,
            git_remote=get_str(git, "remote") or "origin",
            git_branch=get_str(git, "branch") or "main",
            provenance=True if provenance is None else provenance,
            dry_run=dry_run,
            tmp_root=Path(tmp_root).expanduser() if tmp_root else None,
            http_timeout=get_float(upstream, "timeout"),
        )


def dry_run_from_env(environ: Mapping[str, str]) -> bool:
    """Return True when DRY_RUN is set to any non-empty value.

    ``DRY_RUN=0`` and ``DRY_RUN=false`` also enable dry-run.
    """
    return bool(environ.get("DRY_RUN"))


def _check_tracked_name(key: str, name: str, path: Path) -> ConfigError | None:
    rel = PurePath(name)
    if rel.is_absolute() or ".." in rel.parts:
        return ConfigError(f"[files] {key} must be a path inside the repository: {name}", path=path)
    return None


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except (OSError, UnicodeDecodeError) as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(
    root: Path,
    environ: Mapping[str, str],
    *,
    dry_run: bool = False,
) -> Result[SyncConfig, ConfigError]:
    """Build the run configuration for a repository.

    Args:
        root: Repository root containing the tracking files.
        environ: Process environment (only DRY_RUN is read).
        dry_run: Force dry-run regardless of the environment.

    Returns:
        Ok(SyncConfig), or Err(ConfigError) if sqlite-sync.toml is invalid.
    """
    effective_dry_run = dry_run or dry_run_from_env(environ)
    path = root / CONFIG_FILENAME
    if not path.exists():
        return Ok(SyncConfig(root=root, dry_run=effective_dry_run))

    parsed = _parse_toml(path)
    if isinstance(parsed, Err):
        return parsed

    config = SyncConfig.from_dict(root, parsed.value, dry_run=effective_dry_run)
    for key, name in (("manifest", config.manifest_name), ("readme", config.readme_name)):
        error = _check_tracked_name(key, name, path)
        if error is not None:
            return Err(error)
    return Ok(config)
