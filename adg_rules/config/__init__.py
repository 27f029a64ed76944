"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    AppConfig,
    OutputConfig,
    PipelineConfig,
    RuleCategory,
    RuleConfig,
    SourceKind,
)

__all__ = [
    "AppConfig",
    "ConfigLocator",
    "ConfigRepository",
    "OutputConfig",
    "PipelineConfig",
    "RuleCategory",
    "RuleConfig",
    "SourceKind",
]
