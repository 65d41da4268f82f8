"""
Structured logging for the job data layer.

Provides centralized logging with console and optional file output, plus
session metrics (cache hit rate, remote calls, retries, error codes) used by
the service health report.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring cache and remote store behavior.
    """

    def __init__(
        self,
        name: str = "jobboard",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = False,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()  # Remove existing handlers

        # Metrics tracking
        self.metrics = {
            "remote_calls": 0,
            "cache_hits": 0,
            "cache_misses": 0,
            "retries": 0,
            "stale_fallbacks": 0,
            "errors_by_code": {},
        }

        # Console handler
        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        # File handler
        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"jobboard_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        """Internal logging method with context."""
        if context:
            # default=str keeps timestamps and exceptions from breaking the line
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_remote_call(self):
        """Increment remote store call counter."""
        self.metrics["remote_calls"] += 1

    def record_cache_hit(self):
        self.metrics["cache_hits"] += 1

    def record_cache_miss(self):
        self.metrics["cache_misses"] += 1

    def record_retry(self):
        self.metrics["retries"] += 1

    def record_stale_fallback(self):
        self.metrics["stale_fallbacks"] += 1

    def record_error(self, code: str):
        """Record a reported failure by its error code."""
        if code not in self.metrics["errors_by_code"]:
            self.metrics["errors_by_code"][code] = 0
        self.metrics["errors_by_code"][code] += 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        metrics_copy = self.metrics.copy()
        metrics_copy["errors_by_code"] = dict(self.metrics["errors_by_code"])

        lookups = metrics_copy["cache_hits"] + metrics_copy["cache_misses"]
        metrics_copy["cache_hit_rate"] = (
            round(metrics_copy["cache_hits"] / lookups, 3) if lookups > 0 else 0.0
        )

        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Job Data Session Metrics ===")
        self.info(f"Remote calls: {metrics['remote_calls']} ({metrics['retries']} retries)")
        self.info(
            f"Cache: {metrics['cache_hits']} hits / {metrics['cache_misses']} misses "
            f"({metrics['cache_hit_rate'] * 100:.1f}% hit rate)"
        )
        self.info(f"Stale fallbacks: {metrics['stale_fallbacks']}")

        if metrics["errors_by_code"]:
            self.info("Error codes:")
            for code, count in metrics["errors_by_code"].items():
                self.info(f"  {code}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "jobboard",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
