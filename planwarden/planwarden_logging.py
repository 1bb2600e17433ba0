"""Logging and observability utilities for planwarden.

Everything logs under the ``planwarden`` logger hierarchy. Console output
goes to stderr so command output on stdout stays valid JSON; an optional
log file receives one JSON object per record. Timed operations feed a
process-wide :class:`PerformanceMonitor`, and planning events (audits,
repairs, config writes) are published to :class:`ObservabilityHooks`
subscribers.
"""

from __future__ import annotations

import json
import os
import time
import logging as std_logging
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any, Callable, DefaultDict, Dict, Iterator, List, Optional, Union

LOG_LEVEL_ENV = "PLANWARDEN_LOG_LEVEL"
LOG_FILE_ENV = "PLANWARDEN_LOG_FILE"

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# JSON key -> LogRecord attribute
_RECORD_FIELDS = (
    ("logger", "name"),
    ("level", "levelname"),
    ("module", "module"),
    ("function", "funcName"),
    ("line", "lineno"),
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def setup_logging(log_level: Union[str, int] = std_logging.INFO, log_file: Optional[Path] = None) -> None:
    """Install the console handler and, with ``log_file``, a JSON file handler.

    Calling this again replaces the handlers from the previous call.
    """
    root_logger = std_logging.getLogger("planwarden")
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console = std_logging.StreamHandler()
    console.setLevel(log_level)
    console.setFormatter(std_logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    root_logger.addHandler(console)
    root_logger.setLevel(log_level)

    if log_file:
        json_file = std_logging.FileHandler(log_file, encoding="utf-8")
        json_file.setLevel(std_logging.DEBUG)
        json_file.setFormatter(JsonFormatter())
        root_logger.addHandler(json_file)
        # The file records everything even when the console is quiet.
        root_logger.setLevel(std_logging.DEBUG)

    root_logger.debug(f"Logging configured (console={std_logging.getLevelName(console.level)}, file={log_file})")


def setup_logging_from_env(default_level: Union[str, int] = std_logging.WARNING) -> None:
    """Configure logging from ``PLANWARDEN_LOG_LEVEL`` and ``PLANWARDEN_LOG_FILE``."""
    level: Union[str, int] = os.getenv(LOG_LEVEL_ENV, "").strip().upper() or default_level
    if isinstance(level, str) and not isinstance(std_logging.getLevelName(level), int):
        level = default_level
    log_file = os.getenv(LOG_FILE_ENV)
    setup_logging(level, Path(log_file) if log_file else None)


class JsonFormatter(std_logging.Formatter):
    """Render a record as a single JSON object, merged with its ``extra_fields``."""

    def format(self, record: std_logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "message": record.getMessage(),
        }
        for key, attribute in _RECORD_FIELDS:
            entry[key] = getattr(record, attribute)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(getattr(record, "extra_fields", None) or {})
        return json.dumps(entry, default=str)


class PerformanceMonitor:
    """In-memory store of timing metrics, keyed by metric name."""

    def __init__(self):
        self.metrics: DefaultDict[str, List[Dict[str, Any]]] = defaultdict(list)

    def record_metric(self, name: str, value: Any, tags: Optional[Dict[str, str]] = None) -> None:
        metric = {"name": name, "value": value, "tags": dict(tags or {}), "timestamp": _utc_now()}
        self.metrics[name].append(metric)
        std_logging.getLogger("planwarden.performance").debug(
            f"Metric recorded: {name}={value}", extra={"extra_fields": metric}
        )

    def get_metrics(self, name: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        """All metrics, or only those named ``name``."""
        if name:
            return {name: list(self.metrics.get(name, []))}
        return {key: list(values) for key, values in self.metrics.items()}

    def clear(self) -> None:
        self.metrics.clear()


performance_monitor = PerformanceMonitor()


@contextmanager
def _timed(logger_name: str, operation_name: str, record: bool, fields: Dict[str, Any]) -> Iterator[None]:
    logger = std_logging.getLogger(logger_name)
    base = {"operation": operation_name, **fields}
    logger.debug(f"Starting operation: {operation_name}", extra={"extra_fields": {**base, "status": "started"}})
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        elapsed = time.perf_counter() - started
        if record:
            performance_monitor.record_metric(
                f"{operation_name}_duration", elapsed, {"status": "error", "error_type": type(e).__name__}
            )
        logger.error(
            f"Operation {operation_name} failed after {elapsed:.3f}s: {e}",
            extra={
                "extra_fields": {
                    **base,
                    "status": "failed",
                    "duration": elapsed,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                }
            },
        )
        raise
    elapsed = time.perf_counter() - started
    if record:
        performance_monitor.record_metric(f"{operation_name}_duration", elapsed, {"status": "success"})
    logger.debug(
        f"Finished operation: {operation_name} ({elapsed:.3f}s)",
        extra={"extra_fields": {**base, "status": "completed", "duration": elapsed}},
    )


def log_performance(operation_name: str):
    """Decorator timing every call into ``<operation_name>_duration`` metrics."""

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            with _timed("planwarden.performance", operation_name, True, {}):
                return func(*args, **kwargs)

        return wrapper

    return decorator


def log_operation(operation_name: str, **extra_fields):
    """Context manager logging the start, end and failure of a block."""
    return _timed("planwarden.operations", operation_name, False, extra_fields)


class ObservabilityHooks:
    """Publish planning events to registered callbacks."""

    def __init__(self):
        self.hooks: DefaultDict[str, List[Callable[..., None]]] = defaultdict(list)
        self.logger = std_logging.getLogger("planwarden.observability")

    def register_hook(self, event_type: str, callback: Callable[..., None]) -> None:
        self.hooks[event_type].append(callback)
        self.logger.debug(f"Hook registered for {event_type}")

    def unregister_hook(self, event_type: str, callback: Callable[..., None]) -> None:
        callbacks = self.hooks.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def trigger_hooks(self, event_type: str, **data) -> None:
        """Call every hook for ``event_type``; a failing hook is logged and skipped."""
        for callback in list(self.hooks.get(event_type, [])):
            try:
                callback(**data)
            except Exception as e:
                self.logger.error(f"Hook {getattr(callback, '__name__', callback)!s} failed on {event_type}: {e}")

    def log_planning_event(self, event_type: str, root: Optional[str] = None, **data) -> None:
        payload = {"timestamp": _utc_now(), "root": root, **data}
        self.logger.info(
            f"Planning event: {event_type}",
            extra={"extra_fields": {"event_type": event_type, **payload}},
        )
        self.trigger_hooks(event_type, **payload)


observability_hooks = ObservabilityHooks()


def log_error_with_context(error: Exception, context: Dict[str, Any], **extra_fields):
    """Log an unexpected exception together with the operation it interrupted."""
    operation = context.get("operation", "unknown operation")
    fields = {
        "timestamp": _utc_now(),
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context,
        **extra_fields,
    }
    std_logging.getLogger("planwarden.errors").error(
        f"{operation} raised {type(error).__name__}: {error}",
        extra={"extra_fields": fields},
        exc_info=True,
    )


def log_repair_action(root: str, action: str, success: bool, **extra_fields):
    observability_hooks.log_planning_event(
        "repair_performed", root=root, action=action, success=success, **extra_fields
    )
