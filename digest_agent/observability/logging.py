"""
Structured logging for the Digest Agent.

Log lines are emitted as JSON objects. Values bound with `log_context`
(the worker binds `job_id`, the collector binds `source_id`) travel with
every line logged inside that scope, including lines from the repositories
and the inference client underneath.
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

if TYPE_CHECKING:
    from digest_agent.types import CollectionResult

_bound_context: ContextVar[Dict[str, Any]] = ContextVar("digest_log_context", default={})

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("asyncio", "httpx", "apscheduler", "asyncpg")

PLAIN_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s:%(lineno)s] %(message)s"


# ============================================================================
# Formatting
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    Render a record as one JSON line.

    Keys: timestamp, level, logger, message, module, function, line, plus
    `context` when values are bound, `exception` when exc_info is set, and
    any `extra_fields` merged at the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        bound = _bound_context.get()
        if bound:
            entry["context"] = dict(bound)

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        entry.update(getattr(record, "extra_fields", {}))
        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = True,
) -> None:
    """
    Configure the root logger for the CLI and long-running services.

    Args:
        level: Log level name
        log_file: Also write to this file when set
        json_format: JSON lines (True) or a plain text layout (False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers = []
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# ============================================================================
# Context
# ============================================================================

@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """
    Bind values to every log line emitted inside the block.

    Nested blocks add to the outer values; each block restores what was
    bound before it on exit.
    """
    token = _bound_context.set({**_bound_context.get(), **values})
    try:
        yield
    finally:
        _bound_context.reset(token)


def current_log_context() -> Dict[str, Any]:
    """Return a copy of the currently bound values."""
    return dict(_bound_context.get())


# ============================================================================
# Structured events
# ============================================================================

def log_error(logger: logging.Logger, message: str, error: BaseException, **fields: Any) -> None:
    """Log `message` at ERROR with the exception attached and its type as a field."""
    logger.error(
        message,
        extra={"extra_fields": {"error_type": type(error).__name__, "error_message": str(error), **fields}},
        exc_info=error,
    )


def log_collection(logger: logging.Logger, result: "CollectionResult") -> None:
    """Log the outcome of one source collection with its counts as fields."""
    logger.info(
        f"Collected {result.new_articles} new articles from '{result.source_name}' "
        f"({len(result.errors)} errors, {result.duration:.2f}s)",
        extra={
            "extra_fields": {
                "new_articles": result.new_articles,
                "pending_topic_extraction": result.pending_topic_extraction,
                "error_count": len(result.errors),
                "duration_seconds": round(result.duration, 3),
            }
        },
    )


def log_job_finished(logger: logging.Logger, job_id: Any, status: str, duration: float, **fields: Any) -> None:
    """Log the end of a summary job with its final status and duration as fields."""
    logger.info(
        f"Summary job {job_id} {status.lower()} in {duration:.2f}s",
        extra={"extra_fields": {"job_status": status, "duration_seconds": round(duration, 3), **fields}},
    )
