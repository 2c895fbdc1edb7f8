"""
Structured logging system for votorank.

Provides centralized logging with console and file outputs, keyword
context on every line, and metrics tracking for reconciliation runs.
"""

import logging
import os
import sys
import threading
from pathlib import Path
from typing import Optional
from datetime import datetime
import copy
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks probe and repair metrics for monitoring media reconciliation.
    """

    def __init__(
        self,
        name: str = "votorank",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: $VOTORANK_LOG_DIR or logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()  # Remove existing handlers

        self.metrics = self._empty_metrics()
        self._metrics_lock = threading.Lock()  # probes report from worker threads

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path(os.environ.get("VOTORANK_LOG_DIR", "logs"))
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"votorank_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    @staticmethod
    def _empty_metrics() -> dict:
        return {
            "probes_attempted": 0,
            "probes_reachable": 0,
            "probes_failed": 0,
            "errors_by_type": {},
            "repairs_by_strategy": {},
        }

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

    def set_level(self, level: str):
        """Change the log threshold after construction (e.g. from CLI settings)."""
        numeric = getattr(logging, level.upper())
        self.logger.setLevel(numeric)
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(numeric)

    def _log(self, level: int, message: str, context: dict):
        """Internal logging method with context."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str, ensure_ascii=False)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_probe(self, reachable: bool, error_type: Optional[str] = None):
        """Record one liveness probe and its outcome."""
        with self._metrics_lock:
            self.metrics["probes_attempted"] += 1
            if reachable:
                self.metrics["probes_reachable"] += 1
                return
            self.metrics["probes_failed"] += 1
            if error_type:
                self._bump_error(error_type)

    def record_error(self, error_type: str):
        """Increment the counter for an error type."""
        with self._metrics_lock:
            self._bump_error(error_type)

    def _bump_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def record_repair_attempt(self, strategy: str):
        """Record that a repair strategy produced a candidate URL."""
        with self._metrics_lock:
            stats = self.metrics["repairs_by_strategy"].setdefault(
                strategy, {"attempts": 0, "successes": 0}
            )
            stats["attempts"] += 1

    def record_repair_success(self, strategy: str):
        """Record that a strategy's candidate URL probed as reachable."""
        with self._metrics_lock:
            if strategy in self.metrics["repairs_by_strategy"]:
                self.metrics["repairs_by_strategy"][strategy]["successes"] += 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        with self._metrics_lock:
            metrics_copy = copy.deepcopy(self.metrics)
        for strategy, stats in metrics_copy["repairs_by_strategy"].items():
            if stats["attempts"] > 0:
                stats["success_rate"] = round(
                    stats["successes"] / stats["attempts"], 3
                )

        return metrics_copy

    def reset_metrics(self):
        """Clear counters between runs."""
        with self._metrics_lock:
            self.metrics = self._empty_metrics()

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        total = metrics["probes_attempted"]
        reachable = metrics["probes_reachable"]
        rate = 0
        if total > 0:
            rate = round(reachable / total * 100, 1)

        self.info("=== Media Probe Metrics ===")
        self.info(f"Probes: {reachable}/{total} reachable ({rate}%)")

        if metrics["repairs_by_strategy"]:
            self.info("Repair Strategies:")
            for strategy, stats in metrics["repairs_by_strategy"].items():
                pct = stats.get("success_rate", 0) * 100
                self.info(f"  {strategy}: {stats['successes']}/{stats['attempts']} ({pct:.1f}%)")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "votorank",
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
