"""Logging and observability for the timeline engine.

Everything logs under the ``timeline`` logger tree: ``timeline.engine`` for the
pipeline, ``timeline.service`` for the payload layer, ``timeline.timings`` for
operation durations, ``timeline.events`` for engine events and
``timeline.errors`` for failures reported back to clients. ``setup_logging``
is called once by the server; library users can attach their own handlers.
"""

from __future__ import annotations

import json
import time
import logging as std_logging
from collections import deque
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional, Union

# Durations kept per operation for the metrics summary
TIMING_WINDOW = 100


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def setup_logging(log_level: Union[str, int] = std_logging.INFO, log_file: Optional[Path] = None) -> None:
    """Send ``timeline`` logs to stderr, and as JSON lines to ``log_file`` if given."""
    logger = std_logging.getLogger("timeline")
    logger.setLevel(log_level)
    logger.handlers.clear()

    # stdout carries the MCP stdio transport, so the console handler uses stderr
    console_handler = std_logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(std_logging.Formatter(
        fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = std_logging.FileHandler(log_file)
        file_handler.setLevel(std_logging.DEBUG)
        file_handler.setFormatter(JsonFormatter())
        logger.addHandler(file_handler)

    logger.debug("Timeline logging configured", extra={"extra_fields": {
        "log_level": std_logging.getLevelName(logger.level),
        "log_file": log_file,
    }})


class JsonFormatter(std_logging.Formatter):
    """One JSON object per record; ``extra_fields`` are merged in at top level."""

    def format(self, record: std_logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(getattr(record, "extra_fields", {}))
        return json.dumps(entry, default=str)


class OperationTimings:
    """Recent durations of timed operations, keyed by operation name."""

    def __init__(self, window: int = TIMING_WINDOW):
        self.window = window
        self.durations: Dict[str, Deque[float]] = {}
        self.failures: Dict[str, int] = {}

    def record(self, operation: str, seconds: float, failed: bool = False) -> None:
        self.durations.setdefault(operation, deque(maxlen=self.window)).append(seconds)
        if failed:
            self.failures[operation] = self.failures.get(operation, 0) + 1

    def summary(self) -> Dict[str, Dict[str, Any]]:
        """Count, failures, last and mean duration (seconds) per operation."""
        report = {}
        for operation, samples in sorted(self.durations.items()):
            report[operation] = {
                "count": len(samples),
                "failures": self.failures.get(operation, 0),
                "last": round(samples[-1], 6),
                "mean": round(sum(samples) / len(samples), 6),
            }
        return report


operation_timings = OperationTimings()


def log_performance(operation_name: str):
    """Time the decorated call, record it, and log the outcome."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = std_logging.getLogger("timeline.timings")
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = time.perf_counter() - started
                operation_timings.record(operation_name, elapsed, failed=True)
                logger.error(f"{operation_name} failed after {elapsed:.3f}s: {e}", extra={"extra_fields": {
                    "operation": operation_name,
                    "duration": elapsed,
                    "status": "error",
                    "error_type": type(e).__name__,
                }})
                raise

            elapsed = time.perf_counter() - started
            operation_timings.record(operation_name, elapsed)
            logger.info(f"{operation_name} completed in {elapsed:.3f}s", extra={"extra_fields": {
                "operation": operation_name,
                "duration": elapsed,
                "status": "success",
            }})
            return result

        return wrapper
    return decorator


@contextmanager
def log_operation(operation_name: str, **extra_fields):
    """Log the start and end of one pipeline step at debug level."""
    logger = std_logging.getLogger("timeline.engine")
    started = time.perf_counter()
    logger.debug(f"{operation_name} started", extra={"extra_fields": {
        "operation": operation_name, **extra_fields,
    }})
    try:
        yield
    except Exception as e:
        logger.error(f"{operation_name} failed: {e}", extra={"extra_fields": {
            "operation": operation_name,
            "duration": time.perf_counter() - started,
            "error_type": type(e).__name__,
            **extra_fields,
        }})
        raise
    logger.debug(f"{operation_name} finished", extra={"extra_fields": {
        "operation": operation_name,
        "duration": time.perf_counter() - started,
        **extra_fields,
    }})


class ObservabilityHooks:
    """Callbacks for engine events (``timeline_computed``, ``cycle_broken``)."""

    def __init__(self):
        self.hooks: Dict[str, List[Callable[..., Any]]] = {}
        self.logger = std_logging.getLogger("timeline.events")

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        self.hooks.setdefault(event_type, []).append(callback)

    def log_timeline_event(self, event_type: str, **data) -> None:
        """Log the event, then call its hooks with ``timestamp`` and ``data``.

        A failing hook is logged and does not stop the others.
        """
        payload = {"timestamp": _utcnow(), **data}
        self.logger.info(f"Timeline event: {event_type}", extra={"extra_fields": {
            "event_type": event_type, **payload,
        }})
        for hook in self.hooks.get(event_type, []):
            try:
                hook(**payload)
            except Exception as e:
                self.logger.error(f"Hook failed for event {event_type}: {e}")


observability_hooks = ObservabilityHooks()


def log_error_with_context(error: Exception, context: Dict[str, Any], **extra_fields):
    """Log a failure that is being reported back to a client as an error payload."""
    logger = std_logging.getLogger("timeline.errors")
    logger.error(
        f"Error in {context.get('operation', 'unknown operation')}: {error}",
        extra={"extra_fields": {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context,
            **extra_fields,
        }},
        exc_info=True,
    )
