"""Configuration loading helpers for plaza-events builds."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import BuildConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
BUILD_CONFIG_FILENAME = "config.yaml"
HOME_ENV_VAR = "PLAZA_EVENTS_HOME"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    cache_dir: Path | None = None
    outputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV_VAR)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.cache_dir = (self.data_dir / "cache").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.cache_dir, self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def build_config_path(self) -> Path:
        return self.project_root / BUILD_CONFIG_FILENAME

    def resolve(self, path: Path) -> Path:
        """Anchor relative config paths at the project root."""

        return path if path.is_absolute() else (self.project_root / path)


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: BuildConfig | None = None

    def load(self, path: Path | None = None) -> BuildConfig:
        """Load and validate the build configuration.

        An explicit ``path`` must exist. Without one, the project-level file is
        used and a default one is written on first use.
        """

        if path is not None:
            if path.suffix not in CONFIG_EXTENSIONS:
                raise ValueError(f"Unsupported configuration format: {path.suffix}")
            if not path.exists():
                raise FileNotFoundError(f"Configuration not found: {path}")
            return self._absolutise(BuildConfig.model_validate(_read_file(path)))

        if self._cache is not None:
            return self._cache
        default_path = self.locator.build_config_path()
        if default_path.exists():
            config = BuildConfig.model_validate(_read_file(default_path))
        else:
            config = BuildConfig()
            self.save(config)
        self._cache = self._absolutise(config)
        return self._cache

    def save(self, config: BuildConfig, path: Path | None = None) -> Path:
        target = path or self.locator.build_config_path()
        _write_file(target, config.model_dump(mode="json"))
        if path is None:
            self._cache = self._absolutise(config)
        return target

    def _absolutise(self, config: BuildConfig) -> BuildConfig:
        fetch = config.fetch.model_copy(
            update={"cache_dir": self.locator.resolve(config.fetch.cache_dir)}
        )
        output = config.output.model_copy(
            update={
                "build_audit_path": self.locator.resolve(config.output.build_audit_path),
                "request_audit_path": self.locator.resolve(config.output.request_audit_path),
            }
        )
        return config.model_copy(update={"fetch": fetch, "output": output})


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_EXTENSIONS", "HOME_ENV_VAR"]
