"""
Logging setup for the protolock-gate CLI.
"""

import json
import logging
import sys
import time

from rich.console import Console
from rich.logging import RichHandler


class JsonFormatter(logging.Formatter):
    """Custom formatter that outputs logs as structured JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""

        payload = {
            "ts": int(time.time() * 1000),  # Unix timestamp in milliseconds
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "funcName": record.funcName,
            "lineno": record.lineno,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Context attached by callers through ``extra=``
        for attr in ["command", "classifier", "plugin"]:
            if hasattr(record, attr):
                payload[attr] = getattr(record, attr)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_json_logging(level: int = logging.INFO) -> None:
    """Configure the root logger to use JSON formatting on stderr."""

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)


def configure_console_logging(level: int = logging.INFO) -> None:
    """Configure the root logger to render through rich on stderr."""

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)
