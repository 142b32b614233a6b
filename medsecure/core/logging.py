"""
Secure Logging Module
=====================

Security-aware logging for the sharing service.

Security Features:
- PEM blocks, signatures and other long base64/hex blobs are redacted
- Password/token style key=value pairs are redacted
- Rotating log files with size limits
- Optional JSON output for log aggregation
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Final, Optional, Pattern

if TYPE_CHECKING:
    from medsecure.core.config import SecureConfig


_SENSITIVE_PATTERNS: Final[list[tuple[str, Pattern[str]]]] = [
    ("pem", re.compile(r"-----BEGIN [A-Z0-9 ]+-----.*?(?:-----END [A-Z0-9 ]+-----|$)", re.DOTALL)),
    ("password", re.compile(r'(?i)(password|passwd|pwd)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("token", re.compile(r'(?i)(token|bearer)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("secret", re.compile(r'(?i)(secret|private[_-]?key)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    # Base64 blobs: signatures, wrapped keys, ciphertext
    ("base64_secret", re.compile(r'[A-Za-z0-9+/]{40,}={0,2}')),
    ("hex_secret", re.compile(r'(?i)(?:0x)?[a-f0-9]{32,}')),
]

_REDACTED_TEXT: Final[str] = "[REDACTED]"
_CONSOLE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_FILE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


class SecureLogFilter(logging.Filter):
    """
    Log filter that removes sensitive information from log messages.

    Matches are replaced with ``<kind>=[REDACTED]``.
    """

    def __init__(self, name: str = "", additional_patterns: Optional[list[Pattern[str]]] = None) -> None:
        super().__init__(name)
        self._additional_patterns = additional_patterns or []

    def filter(self, record: logging.LogRecord) -> bool:
        """Sanitize the record in place; the record is always kept."""
        if record.msg and isinstance(record.msg, str):
            record.msg = self._sanitize(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._sanitize(v) if isinstance(v, str) else v
                               for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self._sanitize(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True

    def _sanitize(self, text: str) -> str:
        result = text
        for name, pattern in _SENSITIVE_PATTERNS:
            result = pattern.sub(f"{name}={_REDACTED_TEXT}", result)
        for pattern in self._additional_patterns:
            result = pattern.sub(_REDACTED_TEXT, result)
        return result


class StructuredLogFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class SecureRotatingFileHandler(RotatingFileHandler):
    """Rotating file handler that creates its directory and refuses traversal."""

    def __init__(
        self,
        filename: str | Path,
        mode: str = "a",
        maxBytes: int = 10 * 1024 * 1024,
        backupCount: int = 5,
        encoding: str = "utf-8",
    ) -> None:
        if ".." in Path(filename).parts:
            raise ValueError("Log path cannot contain path traversal sequences")

        log_path = Path(filename).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            str(log_path),
            mode=mode,
            maxBytes=maxBytes,
            backupCount=backupCount,
            encoding=encoding,
        )


def _build_handlers(
    log_file: Optional[Path],
    enable_console: bool,
    enable_json: bool,
    max_file_size: int,
    backup_count: int,
) -> list[logging.Handler]:
    secure_filter = SecureLogFilter()
    handlers: list[logging.Handler] = []

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        console_handler.addFilter(secure_filter)
        handlers.append(console_handler)

    if log_file is not None:
        file_handler = SecureRotatingFileHandler(
            filename=log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        if enable_json:
            file_handler.setFormatter(StructuredLogFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.addFilter(secure_filter)
        handlers.append(file_handler)

    return handlers


def get_secure_logger(
    name: str,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = True,
    enable_json: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Create a standalone logger with automatic secret filtering.

    Args:
        name: Logger name (typically __name__)
        log_dir: Directory for log files (no file output without it)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_console: Whether to output to console
        enable_file: Whether to output to file
        enable_json: Whether to use JSON format for file output

    Returns:
        Configured logger that does not propagate to the root logger
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper()))

    log_file = log_dir / f"{name.replace('.', '_')}.log" if enable_file and log_dir else None
    for handler in _build_handlers(log_file, enable_console, enable_json, max_file_size, backup_count):
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def configure_root_logger(
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = True,
    enable_json: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger with secure defaults.

    Called once at application startup so every ``medsecure.*`` logger
    inherits the redacting handlers.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    log_file = log_dir / "medsecure.log" if enable_file and log_dir else None
    for handler in _build_handlers(log_file, enable_console, enable_json, max_file_size, backup_count):
        root_logger.addHandler(handler)


def configure_from(config: "SecureConfig") -> None:
    """Apply a SecureConfig's logging section to the root logger."""
    settings = config.logging
    configure_root_logger(
        log_dir=config.paths.log_dir,
        level=settings.level,
        enable_console=settings.enable_console,
        enable_file=settings.enable_file,
        enable_json=settings.enable_json,
        max_file_size=settings.max_file_size_bytes,
        backup_count=settings.backup_count,
    )
