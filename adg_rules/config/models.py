"""Pydantic models describing an adg-rules run."""

from __future__ import annotations

from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class RuleCategory(str, Enum):
    """Rule kinds a filter line can be classified into."""

    DOMAIN = "domain"
    REGEX = "regex"
    MODIFY = "modify"
    HOSTS = "hosts"


class SourceKind(str, Enum):
    """Where a rule source is read from."""

    LOCAL = "local"
    REMOTE = "remote"


class RuleConfig(BaseModel):
    """Upstream rule lists to merge."""

    remote: list[str] = Field(default_factory=list)
    local: list[str] = Field(default_factory=list)
    local_dir: Path = Field(default=Path("rule"))

    @field_validator("remote", "local", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(item) if item is not None else "" for item in value]

    @field_validator("local_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)

    def resolved_local_dir(self, base_dir: Path) -> Path:
        if self.local_dir.is_absolute():
            return self.local_dir
        return (base_dir / self.local_dir).resolve()


class OutputConfig(BaseModel):
    """Output directory and the categories each output file accepts."""

    path: Path = Field(default=Path("release"))
    provenance: str = "https://github.com/fordes123/ad-filters-subscriber"
    files: dict[str, list[RuleCategory]] = Field(default_factory=dict)

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("files", mode="before")
    @classmethod
    def _coerce_files(cls, value: Any) -> dict[str, list[Any]]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("output.files expects a mapping of file name to categories")
        coerced: dict[str, list[Any]] = {}
        for name, categories in value.items():
            if categories is None:
                categories = []
            elif isinstance(categories, str):
                categories = [categories]
            coerced[str(name)] = [
                item.lower() if isinstance(item, str) else item for item in categories
            ]
        return coerced

    @model_validator(mode="after")
    def _validate_file_names(self) -> "OutputConfig":
        for name in self.files:
            stripped = name.strip()
            if not stripped:
                raise ValueError("Output file name cannot be blank")
            candidate = PurePosixPath(stripped.replace("\\", "/"))
            if candidate.is_absolute() or Path(stripped).is_absolute():
                raise ValueError(f"Output file name must be relative: {name}")
            if ".." in candidate.parts:
                raise ValueError(f"Output file name escapes the output directory: {name}")
        return self

    def resolved_path(self, base_dir: Path) -> Path:
        if self.path.is_absolute():
            return self.path
        return (base_dir / self.path).resolve()


class PipelineConfig(BaseModel):
    """Worker pool, fetch and deduplication tuning."""

    max_workers: int = 8
    queue_size: int = 4
    fetch_timeout: float = 30.0
    expected_lines: int = 1_000_000
    false_positive_rate: float = 0.03
    user_agent: str | None = None

    @model_validator(mode="after")
    def _validate_bounds(self) -> "PipelineConfig":
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if self.queue_size < 0:
            raise ValueError("queue_size must be >= 0")
        if self.fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be > 0")
        if self.expected_lines < 1:
            raise ValueError("expected_lines must be >= 1")
        if not 0.0 < self.false_positive_rate < 1.0:
            raise ValueError("false_positive_rate must be between 0 and 1 (exclusive)")
        return self


class AppConfig(BaseModel):
    """Root configuration document."""

    rule: RuleConfig = Field(default_factory=RuleConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)


__all__ = [
    "AppConfig",
    "OutputConfig",
    "PipelineConfig",
    "RuleCategory",
    "RuleConfig",
    "SourceKind",
]
