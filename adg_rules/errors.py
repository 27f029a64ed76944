"""Exception hierarchy shared across adg-rules."""

from __future__ import annotations


class AdgRulesError(Exception):
    """Base class for every error raised by adg-rules."""


class ConfigError(AdgRulesError):
    """Configuration could not be read or failed validation."""


class OutputSetupError(AdgRulesError):
    """An output destination could not be created. Fatal for the run."""

    def __init__(self, path, reason: str) -> None:
        super().__init__(f"Cannot create output file {path}: {reason}")
        self.path = path
        self.reason = reason


class OutputSinkError(AdgRulesError):
    """The output sink was used out of order (e.g. append before header)."""


class FetchError(AdgRulesError):
    """A single rule source could not be fetched or decoded."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"{location}: {reason}")
        self.location = location
        self.reason = reason


__all__ = [
    "AdgRulesError",
    "ConfigError",
    "FetchError",
    "OutputSetupError",
    "OutputSinkError",
]
