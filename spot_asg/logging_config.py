"""Structured logging configuration (JSON or text format).

Failures carry their context as attributes (DiscoveryError.stage and
.batch_index, TransportError.error_code, UpdateError.group_name, ...).
error_context() lifts those into log fields so a failed discovery reads as
``{"stage": "batch describe", "batch_index": 3, "error_code": "Throttling"}``
rather than only a message string.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from .config import LoggingConfig

_CONTEXT_KEYS = ("command", "group", "status", "candidates", "matched", "events")
_ERROR_KEYS = ("error_type", "stage", "batch_index", "operation", "error_code", "failed_entries")

# exception attribute -> log field
_ERROR_ATTRS = {
    "stage": "stage",
    "batch_index": "batch_index",
    "operation": "operation",
    "error_code": "error_code",
    "group_name": "group",
}


def error_context(exc: BaseException) -> dict:
    """Collect log fields from exc and its __cause__ chain; the outermost value wins."""
    fields: dict = {"error_type": type(exc).__name__}
    seen = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        for attr, key in _ERROR_ATTRS.items():
            value = getattr(current, attr, None)
            if value is not None and key not in fields:
                fields[key] = value
        failed = getattr(current, "failed_entries", None)
        if failed and "failed_entries" not in fields:
            fields["failed_entries"] = len(failed)
        current = current.__cause__
    return fields


def _record_fields(record: logging.LogRecord) -> dict:
    fields = {}
    for key in _CONTEXT_KEYS + _ERROR_KEYS:
        val = getattr(record, key, None)
        if val is not None:
            fields[key] = val
    if record.exc_info and record.exc_info[1]:
        for key, val in error_context(record.exc_info[1]).items():
            fields.setdefault(key, val)
    return fields


class JSONFormatter(logging.Formatter):
    """Emits log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_fields(record))

        if record.exc_info and record.exc_info[1]:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for terminals; structured fields trail the message as key=value."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _record_fields(record)
        if not fields:
            return line
        head, sep, rest = line.partition("\n")
        suffix = " ".join(f"{k}={v}" for k, v in fields.items())
        return f"{head} [{suffix}]{sep}{rest}"


def configure_logging(config: LoggingConfig) -> None:
    """Set up the root logger based on configuration."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if config.format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root.addHandler(handler)

    # boto3's own loggers are chatty at INFO
    for noisy in ("boto3", "botocore", "urllib3", "s3transfer"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
