"""
Centralized structured logging for the backend.
Uses Python's standard logging with JSON formatting for production.

Correlation IDs from shared.infrastructure.correlation are attached to every record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Sequence

from shared.config.settings import settings


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    Outputs logs in a format easily parseable by log aggregation tools.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            log_data["request_id"] = request_id

        # Add extra fields if present
        if hasattr(record, "extra_data") and record.extra_data:
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add source location in debug mode
        if settings.debug:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable formatter for development.
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%H:%M:%S")

        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            request_id_str = f"{self.DIM}[{request_id[:8]}]{self.RESET} "
        else:
            request_id_str = ""

        message = f"{color}[{timestamp}] {record.levelname:8}{self.RESET} {request_id_str}{record.name}: {record.getMessage()}"

        if hasattr(record, "extra_data") and record.extra_data:
            data_str = " | ".join(f"{k}={v}" for k, v in record.extra_data.items())
            message += f" ({data_str})"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


class StructuredLogger(logging.Logger):
    """
    Custom logger that supports structured data.
    """

    def _log_with_data(
        self,
        level: int,
        msg: str,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        **kwargs: Any,
    ) -> None:
        """Log with optional structured data."""
        if not self.isEnabledFor(level):
            return
        if extra is None:
            extra = {}
        extra["extra_data"] = kwargs if kwargs else None
        super()._log(level, msg, args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        exc_info = kwargs.pop("exc_info", None)
        self._log_with_data(logging.ERROR, msg, args, exc_info=exc_info, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        exc_info = kwargs.pop("exc_info", None)
        self._log_with_data(logging.CRITICAL, msg, args, exc_info=exc_info, **kwargs)


# Set custom logger class
logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """
    Configure logging for the application.
    Call this once at application startup.
    """
    # Import here to avoid circular imports
    from shared.infrastructure.correlation import CorrelationIdFilter

    log_level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(CorrelationIdFilter())

    if settings.environment == "production":
        formatter = StructuredFormatter()
    else:
        formatter = DevelopmentFormatter()

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    for error in settings.validate_production_settings():
        logging.getLogger("shared.config").warning(error)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger instance with the given name.

    Usage:
        from shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Drug lot created", lot_id=lot.id, actor=mask_user_id(actor_id))
        logger.error("Bulk insert failed", table="drug_lots", exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


def mask_user_id(user_id: int | str | None) -> str:
    """
    Mask user ID for logging in sensitive contexts.

    Use this function when logging in security-sensitive contexts where
    correlation attacks are possible.

    Args:
        user_id: The user ID to mask.

    Returns:
        Masked user ID string safe for logging.
    """
    if user_id is None:
        return "<no-user>"

    user_str = str(user_id)
    if len(user_str) <= 2:
        return user_str[0] + "***"
    return f"{user_str[:2]}***"


def mask_value(value: Any, max_length: int = 64) -> str:
    """
    Truncate a caller-supplied value before it is written to the logs.

    Args:
        value: Arbitrary input value (filter value, identifier candidate).
        max_length: Maximum number of characters kept.

    Returns:
        String representation safe for logging.
    """
    text = str(value)
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}..."


# Pre-configured loggers for common modules
erp_api_logger = get_logger("erp_api")

# Dedicated security audit logger
security_audit_logger = get_logger("security.audit")


# =============================================================================
# Security Audit Logging Functions
# =============================================================================


def audit_field_access(
    entity: str,
    role: str,
    requested_fields: Sequence[str],
    allowed_fields: Sequence[str],
    dropped_fields: Sequence[str],
    user_id: int | str | None = None,
    **extra: Any,
) -> None:
    """
    Log a request for output fields outside the caller's allow-list.

    The request itself still succeeds with the restricted projection;
    this entry is the only trace of the attempt.

    Args:
        entity: Entity name the list request targeted
        role: Caller role used to pick the allow-list
        requested_fields: Fields the caller asked for
        allowed_fields: The role's allow-list
        dropped_fields: Requested fields removed from the projection
        user_id: Caller identity (masked automatically)
        **extra: Additional context data
    """
    security_audit_logger.warning(
        f"FIELD_ACCESS_AUDIT: {entity}",
        event_type="RESTRICTED_FIELDS_REQUESTED",
        entity=entity,
        role=role,
        requested_fields=list(requested_fields),
        allowed_fields=list(allowed_fields),
        dropped_fields=list(dropped_fields),
        user_id=mask_user_id(user_id),
        **extra,
    )


def audit_invalid_identifier(
    field: str,
    value: Any,
    strategy: str,
    **extra: Any,
) -> None:
    """
    Log a malformed identifier supplied for an identifier-typed field.

    Args:
        field: Filter key or parameter name
        value: The rejected value (truncated)
        strategy: Active validation strategy (strict, graceful, warn)
        **extra: Additional context data
    """
    security_audit_logger.warning(
        f"IDENTIFIER_AUDIT: invalid value for {field}",
        event_type="INVALID_IDENTIFIER",
        field=field,
        value=mask_value(value),
        strategy=strategy,
        **extra,
    )
