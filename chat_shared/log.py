#!/usr/bin/env python3
"""
sockchat Logging Configuration

Centralized logging setup so the session, transport and CLI share one
format. Console output always; file output only when SOCKCHAT_LOG_FILE is set.

Usage:
    from chat_shared.log import get_logger

    logger = get_logger(__name__)
    logger.info("Connecting to server...")
    logger.warning("Bad payload", extra={"username": "alice", "event": "message"})
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional, Any
import os


# ========================================
#           LOGGING FORMATTERS
# ========================================

class ChatContextFormatter(logging.Formatter):
    """Prefixes records with the chat context passed through ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        context = []

        if getattr(record, 'username', None):
            context.append(f"user={record.username}")
        if getattr(record, 'event', None):
            context.append(f"event={record.event}")

        if not context:
            return super().format(record)

        original = record.msg
        record.msg = f"[{' '.join(context)}] {original}"
        try:
            return super().format(record)
        finally:
            record.msg = original


class ColoredFormatter(ChatContextFormatter):
    """Colored formatter for interactive terminals, keeps the chat context prefix"""

    # ANSI Color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


# ========================================
#           LOGGING CONFIGURATION
# ========================================

_loggers_configured = set()

CONSOLE_FORMAT = '[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
FILE_FORMAT = '%(asctime)s | %(name)-30s | %(levelname)-8s | %(message)s'


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger for the given module.

    Args:
        name: Usually __name__ from the calling module
        level: Override log level ("DEBUG", "INFO", "WARNING", "ERROR")

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure each logger once
    if name not in _loggers_configured:
        _configure_logger(logger, level)
        _loggers_configured.add(name)

    return logger


def _configure_logger(logger: logging.Logger, level: Optional[str] = None) -> None:
    """Configure a logger with appropriate handlers and formatters"""

    logger.setLevel(_get_log_level(level))

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    _add_console_handler(logger, colored=_is_development())
    if _file_logging_enabled():
        _add_file_handler(logger)

    # Prevent duplicate messages from parent loggers
    logger.propagate = False


def _get_log_level(level: Optional[str] = None) -> int:
    """Determine appropriate log level"""

    level = level or os.getenv('SOCKCHAT_LOG_LEVEL')
    if level:
        return getattr(logging, level.upper(), logging.INFO)

    return logging.DEBUG if _is_development() else logging.INFO


def _is_development() -> bool:
    """Detect if we're in development mode"""
    return (
        os.getenv('PYTHON_ENV', '').lower() in ['dev', 'development'] or
        'pytest' in sys.modules
    )


def _file_logging_enabled() -> bool:
    return os.getenv('SOCKCHAT_LOG_FILE', '').lower() in ['1', 'true', 'yes']


def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    """Add console handler with appropriate formatter"""

    handler = logging.StreamHandler(sys.stdout)

    if colored and _supports_color():
        formatter: logging.Formatter = ColoredFormatter(fmt=CONSOLE_FORMAT, datefmt='%H:%M:%S')
    else:
        formatter = ChatContextFormatter(fmt=CONSOLE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _add_file_handler(logger: logging.Logger) -> None:
    """Add file handler under ./logs"""

    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    handler = logging.FileHandler(log_dir / "sockchat.log")
    handler.setFormatter(ChatContextFormatter(fmt=FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(handler)


def _supports_color() -> bool:
    """Check if terminal supports color output"""

    # stdout must be a terminal
    if not (hasattr(sys.stdout, "isatty") and sys.stdout.isatty()):
        return False

    # TERM should not be dumb
    if os.getenv("TERM", "") == "dumb":
        return False

    if sys.platform == "win32":
        # On modern Windows terminals, ANSI colors are supported
        return os.getenv("ANSICON") is not None or os.getenv("WT_SESSION") is not None or os.getenv("TERM_PROGRAM") == "vscode"

    return True

# ========================================
#           CONVENIENCE FUNCTIONS
# ========================================

def configure_root_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the entire application.
    Call this once at application startup.
    """
    root_logger = logging.getLogger()
    _configure_logger(root_logger, level)


def set_level(level: str) -> None:
    """Apply ``level`` to every logger handed out by get_logger so far."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    for name in _loggers_configured:
        logging.getLogger(name).setLevel(numeric)


def log_chat_event(logger: logging.Logger, level: str, message: str,
                   event: Optional[str] = None,
                   payload: Any = None,
                   **context: Any) -> None:
    """
    Log a line of chat traffic with structured context.

    Args:
        logger: Logger instance
        level: Log level ("debug", "info", "warning", "error")
        message: Log message
        event: Socket.IO event name, if the line is about one
        payload: Raw payload, appended verbatim when given
        **context: Additional context fields (e.g. username)

    Example:
        log_chat_event(logger, "debug", "RECEIVED", event="message",
                       payload=data, username="alice")
    """
    extra_context = dict(context)
    if event is not None:
        extra_context['event'] = event

    if payload is not None:
        message = f"{message} raw: {payload!r}"

    log_func = getattr(logger, level.lower())
    log_func(message, extra=extra_context)
