"""Configuration loading helpers for adg-rules."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .models import AppConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "application.yaml"
TEMPLATE_NAME = "application.yaml"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")
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
    """Resolve important paths from the project home."""

    project_root: Path | None = None
    config_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("ADG_RULES_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.config_dir = (root / "config").resolve()
        self.logs_dir = (root / "logs").resolve()

    def ensure_directories(self) -> None:
        for directory in (self.config_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.config_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None, path: Path | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._explicit_path = path
        self._cache: AppConfig | None = None

    @property
    def path(self) -> Path:
        return self._explicit_path or self.locator.config_path()

    @property
    def base_dir(self) -> Path:
        """Directory relative rule and output paths are resolved against."""

        return self.locator.project_root

    def load(self) -> AppConfig:
        if self._cache is not None:
            return self._cache
        path = self.path
        if path.exists():
            try:
                payload = _read_file(path)
            except (OSError, yaml.YAMLError, json.JSONDecodeError) as exc:
                raise ConfigError(f"Cannot read configuration {path}: {exc}") from exc
        elif self._explicit_path is not None:
            raise ConfigError(f"Configuration file not found: {path}")
        else:
            payload = _read_file(self.template_path())
            _write_file(path, payload)
        try:
            config = AppConfig.model_validate(payload)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration {path}:\n{exc}") from exc
        self._cache = config
        return config

    def save(self, config: AppConfig) -> Path:
        path = self.path
        if path.suffix not in CONFIG_EXTENSIONS:
            raise ConfigError(f"Unsupported configuration extension: {path.suffix}")
        _write_file(path, config.model_dump(mode="json"))
        self._cache = config
        return path

    @staticmethod
    def template_path() -> Path:
        template = Path(__file__).resolve().parent / "templates" / TEMPLATE_NAME
        if not template.exists():
            raise FileNotFoundError(f"Template not found: {template}")
        return template


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_EXTENSIONS"]
