"""Shared fixtures: fake collaborators and configuration builders."""

from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Any, Callable, Mapping

import pytest

from adg_rules.config import AppConfig, ConfigLocator, ConfigRepository, RuleCategory
from adg_rules.errors import FetchError


class FakeClassifier:
    """Classify by prefix: ``{"rule": {DOMAIN}}`` maps every ``rule*`` line to DOMAIN."""

    def __init__(self, prefixes: Mapping[str, set[RuleCategory]]) -> None:
        self.prefixes = dict(prefixes)

    def classify(self, line: str) -> frozenset[RuleCategory]:
        categories: set[RuleCategory] = set()
        for prefix, mapped in self.prefixes.items():
            if line.startswith(prefix):
                categories.update(mapped)
        return frozenset(categories)


class FakeTransport:
    """In-memory transport. Exceptions in the mapping are raised as fetch errors."""

    def __init__(self, remote: Mapping[str, Any] | None = None, local: Mapping[str, Any] | None = None) -> None:
        self.remote = dict(remote or {})
        self.local = dict(local or {})
        self.calls: list[str] = []
        self._lock = Lock()
        self.closed = False

    def fetch_remote(self, url: str) -> str:
        return self._lookup(self.remote, url)

    def read_local(self, path: str) -> str:
        return self._lookup(self.local, path)

    def _lookup(self, table: Mapping[str, Any], location: str) -> str:
        with self._lock:
            self.calls.append(location)
        if location not in table:
            raise FetchError(location, "not found")
        value = table[location]
        if isinstance(value, Exception):
            raise FetchError(location, str(value))
        if isinstance(value, (list, tuple)):
            return "\n".join(value)
        return value

    def close(self) -> None:
        self.closed = True


def _read_rules(path: Path) -> list[str]:
    """Rule lines of an output file, header excluded."""

    lines = path.read_text(encoding="utf-8").splitlines()
    return [line for line in lines if not line.startswith("! ")]


@pytest.fixture
def fake_classifier() -> Callable[..., FakeClassifier]:
    def _builder(prefixes: Mapping[str, set[RuleCategory]] | None = None) -> FakeClassifier:
        return FakeClassifier(prefixes or {"rule": {RuleCategory.DOMAIN}})

    return _builder


@pytest.fixture
def app_config(tmp_path: Path) -> Callable[..., AppConfig]:
    def _builder(**sections: Any) -> AppConfig:
        payload: dict[str, Any] = {
            "rule": {"remote": [], "local": [], "local_dir": str(tmp_path / "rule")},
            "output": {
                "path": str(tmp_path / "release"),
                "provenance": "https://example.org/filters",
                "files": {"out.txt": ["domain"]},
            },
            "pipeline": {
                "max_workers": 4,
                "queue_size": 2,
                "fetch_timeout": 5,
                "expected_lines": 200_000,
                "false_positive_rate": 0.0001,
            },
        }
        for key, value in sections.items():
            payload[key] = {**payload[key], **value}
        return AppConfig.model_validate(payload)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.setenv("ADG_RULES_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    return ConfigRepository(locator)


@pytest.fixture
def read_rules() -> Callable[[Path], list[str]]:
    return _read_rules


@pytest.fixture
def fake_transport() -> Callable[..., FakeTransport]:
    return FakeTransport
