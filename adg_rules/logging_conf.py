"""Logging setup: structlog events rendered as JSON lines by stdlib handlers.

Every pipeline component logs through :func:`get_logger`, which names the
stdlib logger ``adg_rules.<component>`` and binds the ``component`` key. The
orchestrator additionally binds the ``run_id`` of the merge in progress and
hands bound loggers to its workers, since pool threads do not inherit the
submitting thread's context variables.
"""

from __future__ import annotations

import logging
import logging.config
import uuid
from pathlib import Path
from typing import Any

import structlog

RUN_LOG = "adg-rules.log"
ERROR_LOG = "error.log"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(threadName)s %(message)s"
# chatty per-request loggers of the HTTP stack
QUIET_LIBRARIES = ("httpx", "httpcore")

_LOGGING_INITIALISED = False


def _default_log_dir() -> Path:
    return Path(__file__).resolve().parents[1] / "logs"


def _file_handler(path: Path, level: str) -> dict[str, Any]:
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "formatter": "json",
        "encoding": "utf-8",
    }


def _dict_config(level: str, log_dir: Path) -> dict[str, Any]:
    loggers: dict[str, Any] = {name: {"level": "WARNING"} for name in QUIET_LIBRARIES}
    loggers["adg_rules"] = {
        "handlers": ["console", "run_file", "error_file"],
        "level": level,
        "propagate": False,
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": "pythonjsonlogger.jsonlogger.JsonFormatter", "fmt": JSON_FORMAT},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
            "run_file": _file_handler(log_dir / RUN_LOG, "INFO"),
            "error_file": _file_handler(log_dir / ERROR_LOG, "ERROR"),
        },
        "loggers": loggers,
    }


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.stdlib.BoundLogger:
    """Install handlers once per process and return the CLI's logger.

    The console follows ``verbose``; ``adg-rules.log`` always records INFO and
    up, ``error.log`` only failed sources and crashes.
    """

    global _LOGGING_INITIALISED
    log_dir = log_dir or _default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    if not _LOGGING_INITIALISED:
        logging.config.dictConfig(_dict_config("DEBUG" if verbose else "INFO", log_dir))
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso", utc=True),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return get_logger("app")


def get_logger(component: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Logger named ``adg_rules.<component>`` with ``component`` and ``context`` bound."""

    return structlog.get_logger(f"adg_rules.{component}").bind(component=component, **context)


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


__all__ = ["configure_logging", "get_logger", "new_run_id"]
