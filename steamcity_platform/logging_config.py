"""
Logging configuration for the SteamCity platform.

This module provides structured logging with performance metrics, contextual
information and configurable output formats for the API server, CLI and
data generator.
"""

import logging
import logging.handlers
import json
import sys
import time
from collections import Counter
from datetime import datetime
from typing import Dict, Any, Optional
from pathlib import Path
import psutil
import os

from .config import LoggingConfig


_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {
    'message', 'taskName', 'cpu_percent', 'memory_mb', 'uptime_seconds',
    'process_id', 'thread_id', 'iso_timestamp'
}

_PERFORMANCE_FIELDS = ("cpu_percent", "memory_mb", "uptime_seconds", "process_id", "thread_id")

# Third-party loggers that are too chatty at DEBUG
LIBRARY_LOG_LEVELS = {
    'httpx': logging.WARNING,
    'multipart': logging.WARNING,
    'python_multipart': logging.WARNING,
    'uvicorn': logging.INFO,
    'uvicorn.access': logging.WARNING,
    'fastapi': logging.INFO,
}


def _iso(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created).isoformat()


def _duration_fields(duration: Optional[float]) -> Dict[str, float]:
    if duration is None:
        return {}
    return {"duration_seconds": duration, "duration_ms": duration * 1000}


class PerformanceFilter(logging.Filter):
    """Attaches process CPU, memory and uptime figures to every record."""

    def __init__(self):
        super().__init__()
        self.process = psutil.Process()
        self.started = time.time()

    def filter(self, record):
        try:
            with self.process.oneshot():
                record.cpu_percent = self.process.cpu_percent()
                record.memory_mb = self.process.memory_info().rss / (1024 * 1024)
        except psutil.Error:
            # Metrics are best effort; never drop the record
            record.cpu_percent = record.memory_mb = 0.0

        record.uptime_seconds = time.time() - self.started
        record.process_id = os.getpid()
        record.thread_id = record.thread
        record.iso_timestamp = _iso(record)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with extras and performance data nested."""

    def __init__(self, include_performance=True):
        super().__init__()
        self.include_performance = include_performance

    def format(self, record):
        entry = {
            "timestamp": _iso(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}
        if extra:
            entry["extra"] = extra

        if self.include_performance and hasattr(record, 'cpu_percent'):
            entry["performance"] = {name: getattr(record, name, 0) for name in _PERFORMANCE_FIELDS}

        return json.dumps(entry, default=str)


class ContextualFormatter(logging.Formatter):
    """Single-line text format for terminals."""

    BASE_FORMAT = "%(iso_timestamp)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d - %(message)s"
    PERFORMANCE_SUFFIX = " [CPU: %(cpu_percent).1f%% MEM: %(memory_mb).1fMB]"

    def __init__(self, include_performance=True):
        fmt = self.BASE_FORMAT + (self.PERFORMANCE_SUFFIX if include_performance else "")
        super().__init__(fmt)
        self.include_performance = include_performance

    def format(self, record):
        # Records that bypassed PerformanceFilter still need every placeholder
        for name, default in (("iso_timestamp", None), ("cpu_percent", 0.0), ("memory_mb", 0.0)):
            if not hasattr(record, name):
                setattr(record, name, _iso(record) if default is None else default)
        return super().format(record)


class MetricsHandler(logging.Handler):
    """Counts records per level and remembers the latest warning and error."""

    def __init__(self):
        super().__init__()
        self.counts = Counter()
        self.last = {"error": None, "warning": None}
        self.started = time.time()

    @staticmethod
    def _bucket(levelno: int) -> str:
        if levelno >= logging.ERROR:
            return "error"
        if levelno >= logging.WARNING:
            return "warning"
        if levelno >= logging.INFO:
            return "info"
        return "debug"

    def emit(self, record):
        bucket = self._bucket(record.levelno)
        self.counts[bucket] += 1
        if bucket in self.last:
            self.last[bucket] = {
                "timestamp": _iso(record),
                "message": record.getMessage(),
                "logger": record.name,
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            }

    def get_metrics(self) -> Dict[str, Any]:
        total = sum(self.counts.values())
        uptime = time.time() - self.started
        metrics = {f"{bucket}_count": self.counts[bucket] for bucket in ("error", "warning", "info", "debug")}
        metrics.update({
            "total_logs": total,
            "last_error": self.last["error"],
            "last_warning": self.last["warning"],
            "uptime_seconds": uptime,
            "logs_per_second": total / uptime if uptime > 0 else 0,
            "error_rate": self.counts["error"] / total if total else 0,
        })
        return metrics


_metrics_handler: Optional[MetricsHandler] = None


def get_logging_metrics() -> Dict[str, Any]:
    """Level counters collected since the last setup_logging call."""
    return _metrics_handler.get_metrics() if _metrics_handler else {}


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format.lower() == 'json' and config.structured:
        return JSONFormatter()
    return ContextualFormatter()


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure the root logger.

    Installs a MetricsHandler, a console handler on stdout and, when
    config.log_file is set, a size-rotated file handler. Existing root
    handlers are removed.
    """
    global _metrics_handler

    level = getattr(logging, config.level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    _metrics_handler = MetricsHandler()
    root_logger.addHandler(_metrics_handler)

    outputs = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
        outputs.append(logging.handlers.RotatingFileHandler(
            filename=config.log_file,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding='utf-8'
        ))

    perf_filter = PerformanceFilter()
    for handler in outputs:
        handler.setLevel(level)
        handler.addFilter(perf_filter)
        handler.setFormatter(_build_formatter(config))
        root_logger.addHandler(handler)

    for name, library_level in LIBRARY_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)

    logging.getLogger(__name__).info(
        "Logging system initialized",
        extra={
            "log_level": config.level,
            "log_format": config.format,
            "file_logging": bool(config.log_file)
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_performance_metrics(logger: logging.Logger, operation: str, duration: float, **kwargs):
    """Log how long an operation took, plus any extra figures."""
    logger.info(
        f"Performance: {operation} completed",
        extra={"operation": operation, **_duration_fields(duration), **kwargs}
    )


def log_request(logger: logging.Logger, method: str, path: str,
                status_code: int, duration: float, **kwargs):
    """
    Log an HTTP request handled by the API.

    Server errors are logged at ERROR, client errors at WARNING and
    everything else at INFO.
    """
    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger.log(
        level,
        f"Request: {method} {path} -> {status_code}",
        extra={
            "http_method": method,
            "path": path,
            "status_code": status_code,
            "success": status_code < 400,
            **_duration_fields(duration),
            **kwargs
        }
    )


def log_generation_progress(logger: logging.Logger, phase: str, progress: Dict[str, Any]):
    logger.info(f"Generation progress: {phase}", extra={"generation_phase": phase, "progress": progress})


def log_storage_operation(logger: logging.Logger, operation: str, collection: str,
                          count: Optional[int] = None, duration: Optional[float] = None,
                          error: Optional[str] = None, **kwargs):
    """
    Log a storage operation on a collection file.

    Args:
        logger: Logger instance
        operation: Storage operation (LOAD, APPEND, REPLACE)
        collection: Collection kind
        count: Number of records read or written
        duration: Operation duration in seconds
        error: Failure message; switches the record to ERROR level
    """
    extra = {"operation": operation, "collection": collection, "storage_operation": True, **kwargs}
    extra.update(_duration_fields(duration))
    if count is not None:
        extra["record_count"] = count

    if error:
        extra["error"] = error
        logger.error(f"Storage {operation} on {collection} failed: {error}", extra=extra)
    elif count is not None:
        logger.debug(f"Storage {operation} on {collection} ({count} records)", extra=extra)
    else:
        logger.debug(f"Storage {operation} on {collection}", extra=extra)


def log_error_with_context(logger: logging.Logger, error: Exception,
                           operation: str, **context):
    """Log an exception with its traceback and the given context fields."""
    logger.error(
        f"Error in {operation}: {error}",
        exc_info=True,
        extra={
            "operation": operation,
            "error_type": type(error).__name__,
            "error_message": str(error),
            **context
        }
    )
