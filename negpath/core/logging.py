"""Structured logging configuration.

Records emitted while a mutation is being applied carry the selected
failure mode and its target. Records emitted by the execution hand-off
carry the entry point and the outcome status. Both formatters render
those fields as a group:

  - JSON output nests them under ``mutation`` and ``execution``
  - Dev output prefixes the message with ``[failure@target]``
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

MUTATION_FIELDS = ("failure", "order_index", "resolver_index")
EXECUTION_FIELDS = ("entry_point", "status")


def _collect(record: logging.LogRecord, keys: tuple[str, ...]) -> dict[str, Any]:
    return {key: getattr(record, key) for key in keys if getattr(record, key, None) is not None}


def mutation_target(record: logging.LogRecord) -> str:
    """Short ``failure@target`` tag, or an empty string outside a mutation."""
    failure = getattr(record, "failure", None)
    if not failure:
        return ""
    resolver_index = getattr(record, "resolver_index", None)
    order_index = getattr(record, "order_index", None)
    if resolver_index is not None:
        return f"{failure}@resolver:{resolver_index}"
    if order_index is not None:
        return f"{failure}@order:{order_index}"
    return failure


class JSONFormatter(logging.Formatter):
    """One JSON object per record, mutation and execution fields grouped."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        mutation = _collect(record, MUTATION_FIELDS)
        if mutation:
            entry["mutation"] = mutation
        execution = _collect(record, EXECUTION_FIELDS)
        if execution:
            entry["execution"] = execution

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else "Unknown",
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Coloured single-line output for local runs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        line = f"{color}{ts} {record.levelname[0]}{self.RESET} {record.name}: "

        tag = mutation_target(record)
        if tag:
            line += f"[{tag}] "
        line += record.getMessage()

        status = getattr(record, "status", None)
        if status:
            line += f" ({status})"

        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(env: str = "development", log_level: str = "INFO") -> None:
    """Install a single stdout handler on the root logger.

    Args:
        env: ``staging`` and ``production`` get JSON, anything else the dev format
        log_level: Minimum log level name
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if env in ("staging", "production") else DevFormatter())
    root.addHandler(handler)


class MutationLogFilter(logging.Filter):
    """Stamps the mutation being applied onto every record that passes."""

    def __init__(
        self,
        failure: str = "",
        order_index: int | None = None,
        resolver_index: int | None = None,
    ) -> None:
        super().__init__()
        self.failure = failure
        self.order_index = order_index
        self.resolver_index = resolver_index

    def filter(self, record: logging.LogRecord) -> bool:
        record.failure = self.failure  # type: ignore[attr-defined]
        record.order_index = self.order_index  # type: ignore[attr-defined]
        record.resolver_index = self.resolver_index  # type: ignore[attr-defined]
        return True
