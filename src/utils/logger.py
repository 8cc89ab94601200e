import logging
import logging.handlers
import os
import sys
import time
from contextlib import contextmanager
from typing import Optional, Dict, Any, Iterator
from pathlib import Path


class LogFormatter(logging.Formatter):
    """Level-dependent layout with optional cache context.

    Records logged with ``extra={"traffic_class": ..., "namespace": ...}`` get a
    ``[<class> <namespace>]`` suffix so policy messages name the cache they hit.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
        "RESET": "\033[0m",
    }

    LAYOUTS = (
        (logging.ERROR, "%(asctime)s - %(name)s - %(levelname)s - %(message)s%(cache_context)s (%(filename)s:%(lineno)d)"),
        (logging.WARNING, "%(asctime)s - %(name)s - %(levelname)s - %(message)s%(cache_context)s"),
        (logging.NOTSET, "%(asctime)s - %(levelname)s - cache: %(message)s%(cache_context)s"),
    )

    CONTEXT_FIELDS = ("traffic_class", "namespace")

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()
        self._formatters = {
            level: logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S") for level, fmt in self.LAYOUTS
        }

    def _formatter_for(self, levelno: int) -> logging.Formatter:
        for level, _ in self.LAYOUTS:
            if levelno >= level:
                return self._formatters[level]
        return self._formatters[logging.NOTSET]

    @classmethod
    def cache_context(cls, record: logging.LogRecord) -> str:
        parts = [str(getattr(record, f)) for f in cls.CONTEXT_FIELDS if getattr(record, f, None)]
        return f" [{' '.join(parts)}]" if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        original_levelname = record.levelname
        original_msg = record.msg
        record.cache_context = self.cache_context(record)

        try:
            if self.use_colors and original_levelname in self.COLORS:
                color = self.COLORS[original_levelname]
                reset = self.COLORS["RESET"]
                record.levelname = f"{color}{original_levelname}{reset}"
                record.msg = f"{color}{original_msg}{reset}"
            return self._formatter_for(record.levelno).format(record)
        finally:
            record.levelname = original_levelname
            record.msg = original_msg


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    enable_console: bool = True,
) -> logging.Logger:

    level = level or os.getenv("SWCACHE_LOG_LEVEL", "INFO")
    log_file = log_file or os.getenv("SWCACHE_LOG_FILE") or None
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger("swcache")
    logger.setLevel(log_level)

    for h in list(logger.handlers):
        logger.removeHandler(h)

    handlers = []

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(LogFormatter())
        handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(LogFormatter(use_colors=False))
        handlers.append(file_handler)

    for h in handlers:
        logger.addHandler(h)

    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(f"swcache.{name}" if name else "swcache")


class PerformanceLogger:
    """Wall-clock timers for lifecycle phases and resolve batches."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("performance")
        self.timers: Dict[str, Dict[str, Any]] = {}

    def start_timer(self, operation: str):
        self.timers[operation] = {"start": time.perf_counter(), "end": None, "duration": None}
        self.logger.debug(f"Started: {operation}")

    def stop_timer(self, operation: str) -> float:
        t = self.timers.get(operation)
        if not t:
            self.logger.warning(f"No timer found for operation: {operation}")
            return 0.0
        t["end"] = time.perf_counter()
        t["duration"] = t["end"] - t["start"]
        self.logger.debug(f"Completed: {operation} in {t['duration']:.3f}s")
        return float(t["duration"])

    def duration(self, operation: str) -> float:
        t = self.timers.get(operation) or {}
        return float(t.get("duration") or 0.0)

    @contextmanager
    def track(self, operation: str, details: Optional[Dict[str, Any]] = None) -> Iterator[None]:
        self.start_timer(operation)
        try:
            yield
        finally:
            self.log_operation(operation, details)

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None):
        duration = self.stop_timer(operation)
        payload = {
            "operation": operation,
            "duration_seconds": round(duration, 3),
            "timestamp": time.time(),
        }
        if details:
            payload.update(details)
        self.logger.info(f"Performance - {operation}: {duration:.3f}s", extra=payload)
