"""Structured logging configuration (JSON or text format)."""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone

from .config import LoggingConfig

# Structured fields passed through ``extra=`` that are copied into JSON output
EXTRA_FIELDS = (
    "controller", "backends", "fingerprint", "config_path",
    "action", "command", "elapsed_seconds",
)

# Controller credentials travel as a query parameter; never let them reach a log line
_SECRET_PARAM = re.compile(r"""(api_key=)[^&\s'"]+""")


class RedactSecretsFilter(logging.Filter):
    """Masks ``api_key=`` values in the rendered message and exception text."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _SECRET_PARAM.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        if record.exc_info and record.exc_info[1]:
            record.exc_text = _SECRET_PARAM.sub(r"\1***", logging.Formatter().formatException(record.exc_info))
        return True


class JSONFormatter(logging.Formatter):
    """Emits log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                payload[key] = val

        if record.exc_info and record.exc_info[1]:
            payload["exception"] = record.exc_text or self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for development."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


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

    handler.addFilter(RedactSecretsFilter())
    root.addHandler(handler)

    for noisy in ("urllib3", "requests"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
