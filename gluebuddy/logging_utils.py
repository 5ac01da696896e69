"""Logging utilities for gluebuddy."""

from __future__ import annotations

import json
import logging
import sys


class StructuredFormatter(logging.Formatter):
    """Formatter that can emit JSON lines when configured."""

    def __init__(self, json_mode: bool = False):
        super().__init__()
        self.json_mode = json_mode

    def format(self, record: logging.LogRecord) -> str:
        if self.json_mode and hasattr(record, "operation_result"):
            return json.dumps(record.operation_result.to_dict())
        if self.json_mode:
            return json.dumps({"level": record.levelname, "logger": record.name, "message": record.getMessage()})
        return f"[{record.levelname:<7}] {record.getMessage()}"


def setup_logging(verbosity: int = 0, json_mode: bool = False) -> logging.Logger:
    """
    Configure logging to stderr.

    A verbosity of 1 enables debug output for gluebuddy; 2 or more enables it for every library.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter(json_mode=json_mode))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbosity >= 2 else logging.INFO)

    logger = logging.getLogger("gluebuddy")
    logger.setLevel(logging.DEBUG if verbosity >= 1 else logging.INFO)
    return logger
