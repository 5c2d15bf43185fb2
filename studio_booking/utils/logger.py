"""
Structured logging utility for the booking client.

Provides JSON-formatted logging with built-in email/token masking,
context injection, and operation timing.
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from functools import wraps


def mask_email(email: Optional[str]) -> str:
    """
    Mask an email address to preserve privacy in logs.

    Keeps the first character of the local part and the full domain.

    Example:
        >>> mask_email("jane@example.com")
        "j***@example.com"
    """
    if not email:
        return "unknown"

    if "@" not in email:
        return "invalid"

    local, domain = email.split("@", 1)
    if not local or not domain:
        return "invalid"

    return f"{local[0]}***@{domain}"


def mask_token(token: Optional[str]) -> str:
    """
    Mask a bearer token, keeping only its last 4 characters.

    Example:
        >>> mask_token("eyJhbGciOi.abcd1234")
        "****1234"
    """
    if not token:
        return "unknown"

    if len(token) <= 4:
        return "****"

    return f"****{token[-4:]}"


def _stream_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000


class StructuredLogger:
    """
    JSON-per-line logger.

    Every level accepts the same optional fields (operation, context,
    duration_ms, error), so a call site can attach timing or an error
    message at any level.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        if not self.logger.handlers:
            self.logger.addHandler(_stream_handler())

    def _format_log(
        self,
        level: str,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
        error: Optional[str] = None,
    ) -> str:
        """Render one log entry; optional fields are omitted when empty."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "message": message,
        }
        if operation:
            log_entry["operation"] = operation
        if context:
            log_entry["context"] = context
        if duration_ms is not None:
            log_entry["duration_ms"] = round(duration_ms, 2)
        if error:
            log_entry["error"] = error
        return json.dumps(log_entry, ensure_ascii=False, default=str)

    def _log(
        self,
        level: int,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
        error: Optional[str] = None,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        entry = self._format_log(
            logging.getLevelName(level), message, operation, context, duration_ms, error
        )
        self.logger.log(level, entry)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, **fields)


def log_operation(operation_name: str):
    """Log start (DEBUG), completion (INFO) and failure (ERROR) of the wrapped call with its duration."""

    def decorator(func):
        logger = StructuredLogger(func.__module__)
        context = {"function": func.__qualname__}

        @wraps(func)
        def wrapper(*args, **kwargs):
            logger.debug(f"Starting {operation_name}", operation=operation_name, context=context)
            start = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Failed {operation_name}",
                    operation=operation_name,
                    context=context,
                    error=str(e),
                    duration_ms=_elapsed_ms(start),
                )
                raise
            logger.info(
                f"Completed {operation_name}",
                operation=operation_name,
                context=context,
                duration_ms=_elapsed_ms(start),
            )
            return result

        return wrapper

    return decorator


def get_logger(name: str) -> StructuredLogger:
    """Structured logger for a module; pass __name__."""
    return StructuredLogger(name)
