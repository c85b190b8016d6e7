"""
Structured logging system for contactlink.

Provides centralized logging with console and file outputs, keyword
context rendered as JSON, and counters for monitoring reconciliation
outcomes (merges, created rows, conflict retries, failures).
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


def _empty_metrics() -> dict:
    return {
        "reconciliations": 0,
        "primaries_created": 0,
        "secondaries_created": 0,
        "primaries_demoted": 0,
        "conflict_retries": 0,
        "errors_by_type": {},
    }


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring reconciliation health.
    """

    def __init__(
        self,
        name: str = "contactlink",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for daily log files (no file output if None)
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.metrics = _empty_metrics()
        self.configure(level=level, log_dir=log_dir, enable_console=enable_console)

    def configure(
        self,
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_console: bool = True,
    ):
        """Replace handlers in place so module-level references stay valid."""
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()
        self.logger.propagate = False

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if log_dir is not None:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"contactlink_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)
            # File gets DEBUG even when the console is quieter.
            self.logger.setLevel(logging.DEBUG)

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
        if not self.logger.isEnabledFor(level):
            return
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_reconciliation(self):
        """Increment the reconciliation counter."""
        self.metrics["reconciliations"] += 1

    def record_primary_created(self):
        self.metrics["primaries_created"] += 1

    def record_secondary_created(self):
        self.metrics["secondaries_created"] += 1

    def record_demotions(self, count: int):
        """Record primaries demoted by a merge."""
        self.metrics["primaries_demoted"] += count

    def record_conflict_retry(self):
        self.metrics["conflict_retries"] += 1

    def record_error(self, error_type: str):
        """Record a surfaced failure by exception type."""
        if error_type not in self.metrics["errors_by_type"]:
            self.metrics["errors_by_type"][error_type] = 0
        self.metrics["errors_by_type"][error_type] += 1

    def get_metrics(self) -> dict:
        """Return a copy of current metrics."""
        metrics_copy = self.metrics.copy()
        metrics_copy["errors_by_type"] = dict(self.metrics["errors_by_type"])
        return metrics_copy

    def reset_metrics(self):
        self.metrics = _empty_metrics()

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Reconciliation Metrics ===")
        self.info(f"Reconciliations: {metrics['reconciliations']}")
        self.info(
            f"Created: {metrics['primaries_created']} primaries, "
            f"{metrics['secondaries_created']} secondaries"
        )
        self.info(f"Primaries demoted: {metrics['primaries_demoted']}")
        self.info(f"Conflict retries: {metrics['conflict_retries']}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "contactlink",
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
