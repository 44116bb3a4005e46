"""Structured Logging — JSON formatter and setup for streaming observability.

Invariants:
    - Every record carries timestamp, level, logger name and message
    - Turn/stream fields (turn_id, step_index, provider, tool_name, ...) surfaced when passed via extra=
    - setup_logging() is idempotent: re-running it replaces its own handler, never stacks

Design Decisions:
    - Stdlib logging + small JSONFormatter: every module logs through logging.getLogger(__name__)
    - setup_logging called once on startup via the FastAPI lifespan
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "turn_id", "step_index", "provider", "tool_name", "tool_call_id",
    "error_code", "status_code", "attempt", "input_tokens", "output_tokens",
    "history_id", "path",
)

_HANDLER_NAME = "notecritic"


class JSONFormatter(logging.Formatter):
    """Format logs as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the notecritic handler on the root logger."""
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    for existing in list(logging.root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
