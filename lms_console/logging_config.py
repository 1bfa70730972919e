r"""
Logging configuration module for the LMS console API client.

Provides a colorlog-based logging setup, bearer-token redaction and a
per-category error tally that flags bursts of auth or network failures.
"""

import atexit
import logging
import os
import re
import sys
import threading
from collections import Counter
from typing import Any

import colorlog

from .constants import ERROR_ALERT_THRESHOLD

_BEARER_RE = re.compile(r"Bearer (\S+)")


class TokenRedactionFilter(logging.Filter):
    """Mask every bearer credential that ends up in a log line."""

    def filter(self, record):
        message = record.getMessage()
        if "Bearer " not in message:
            return True
        record.msg = _BEARER_RE.sub(lambda m: f"Bearer {m.group(1)[:4]}…", message)
        record.args = None
        return True


class ErrorAggregator:
    """Tallies logged errors per category for the current session.

    Categories come from ``errors.handling.categorize_error`` (auth, network,
    parsing, api, internal). Crossing ``alert_threshold`` in one category is
    reported once, e.g. a backend outage or a refresh credential revoked
    server side.
    """

    def __init__(self, alert_threshold: int = ERROR_ALERT_THRESHOLD):
        self.alert_threshold = alert_threshold
        self.counts: Counter[str] = Counter()
        self.last_message: dict[str, str] = {}
        self._alerted: set[str] = set()
        self.lock = threading.Lock()

    def record_error(self, category: str, message: str) -> bool:
        """Count one error.

        Returns:
            True only for the occurrence that first crosses the threshold.
        """
        with self.lock:
            self.counts[category] += 1
            self.last_message[category] = message
            if self.counts[category] >= self.alert_threshold and category not in self._alerted:
                self._alerted.add(category)
                return True
            return False

    def snapshot(self) -> dict[str, dict[str, Any]]:
        with self.lock:
            return {
                category: {"count": count, "last": self.last_message.get(category)}
                for category, count in self.counts.items()
            }

    def reset(self) -> None:
        with self.lock:
            self.counts.clear()
            self.last_message.clear()
            self._alerted.clear()

    def log_summary_report(self) -> None:
        summary = self.snapshot()
        if not summary:
            logging.debug("No errors recorded in current session")
            return
        logging.warning("🚨 Error summary for this session")
        for category, stats in sorted(summary.items()):
            logging.warning(f"  {category}: {stats['count']} (last: {stats['last']})")


# Global error aggregator instance
error_aggregator = ErrorAggregator()


def log_structured_error(
    error_type: str,
    message: str,
    exception: Exception = None,
    context: dict[str, Any] = None,
    level: int = logging.ERROR
) -> None:
    """Log an error with structured context and count it per category.

    Args:
        error_type: Category of the error (e.g., 'network', 'auth', 'parsing')
        message: Descriptive error message
        exception: The exception that occurred (optional)
        context: Additional context data for debugging
        level: Logging level (default: ERROR)
    """
    structured_message = f"[{error_type.upper()}] {message}"
    if exception:
        structured_message += f" | Exception: {type(exception).__name__}: {str(exception)}"
    if context:
        context_str = " | ".join(f"{k}={v}" for k, v in context.items())
        structured_message += f" | Context: {context_str}"
    logging.log(level, structured_message)

    if error_aggregator.record_error(error_type, message):
        hint = (
            "sessions are being rejected; check the refresh endpoint"
            if error_type == "auth"
            else "check that the backend is reachable"
            if error_type == "network"
            else "see the log above"
        )
        logging.critical(
            f"🚨 {error_aggregator.alert_threshold} {error_type} errors this session: {hint}"
        )


class LoggerConfigurator:
    """Configures root logging with colored output using colorlog.

    The ``DEBUG`` environment variable ('true', '1' or 'yes') selects DEBUG
    level, otherwise INFO is used.
    """

    def __init__(self, config=None):
        self.config = config or {}
        self._configured = False

    def configure(self):
        """Install the colored handler on the root logger (idempotent)."""
        if self._configured:
            return
        debug_env = os.environ.get("DEBUG", "").lower()
        log_level = logging.DEBUG if debug_env in ("true", "1", "yes") else logging.INFO

        formatter = colorlog.ColoredFormatter(
            "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "magenta",
            },
            secondary_log_colors={
                "message": {
                    "ERROR": "red",
                    "CRITICAL": "magenta",
                }
            },
            reset=True,
        )

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        handler.addFilter(TokenRedactionFilter())

        logging.basicConfig(
            level=log_level,
            handlers=[handler],
            format="%(message)s",
        )
        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        # aiohttp access/client chatter is noise at DEBUG for a console client
        logging.getLogger("aiohttp").setLevel(logging.WARNING)

        for h in root_logger.handlers:
            h.setFormatter(formatter)
            h.addFilter(TokenRedactionFilter())

        atexit.register(self._log_final_error_summary)
        self._configured = True

    def _log_final_error_summary(self):
        """Log final error summary on application exit."""
        try:
            logging.debug("📊 Final error summary before shutdown:")
            error_aggregator.log_summary_report()
        except Exception as e:
            logging.error(f"Failed to log final error summary: {e}")
