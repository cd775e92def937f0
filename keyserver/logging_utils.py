import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import Request


def log_key_action(
    message: str, action: str, key: str | None, logger_name: str = "keys", **kwargs: Any
) -> None:
    """Log a key lifecycle event with consistent structure.

    Args:
        message: Human readable message (e.g. 'Free key handed out')
        action: The lifecycle action (create, free, inuse, release, ...)
        key: The key string affected, if any
        logger_name: Name of the logger to use
        **kwargs: Additional context data
    """
    logger = logging.getLogger(logger_name)

    log_data = {
        "action": action,
        "key": key,
        "timestamp": datetime.now(UTC).isoformat(),
        **kwargs,
    }

    suffix = f": {key}" if key else ""
    logger.info(f"{message}{suffix}", extra=log_data)


def log_api_request(
    request: Request,
    response_status: int,
    process_time_ms: float | None = None,
    logger_name: str = "api",
) -> None:
    """Log API requests with consistent format.

    Args:
        request: FastAPI request object
        response_status: HTTP response status code
        process_time_ms: Request processing time in milliseconds
        logger_name: Name of the logger to use
    """
    logger = logging.getLogger(logger_name)

    log_data = {
        "method": request.method,
        "path": request.url.path,
        "status_code": response_status,
        "client_ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent", "Unknown")[:100],
    }

    if process_time_ms is not None:
        log_data["process_time_ms"] = str(round(process_time_ms, 2))

    if response_status >= 500:
        log_level = logging.ERROR
    elif response_status >= 400:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    message = f"{request.method} {request.url.path} - {response_status}"
    if process_time_ms is not None:
        message += f" ({process_time_ms:.1f}ms)"

    logger.log(log_level, message, extra=log_data)


def log_store_operation(
    operation: str,
    path: str,
    success: bool = True,
    logger_name: str = "store",
    **kwargs: Any,
) -> None:
    """Log persistence operations.

    Args:
        operation: Store operation (load, save)
        path: Backing file path
        success: Whether the operation was successful
        logger_name: Name of the logger to use
        **kwargs: Additional context data
    """
    logger = logging.getLogger(logger_name)

    log_data = {"operation": operation, "path": path, "success": success, **kwargs}

    level = logging.DEBUG if success else logging.WARNING
    status = "succeeded" if success else "failed"

    logger.log(level, f"Store {operation} of {path} {status}", extra=log_data)


def log_system_info(hostname: str, db_file: str, telegram_enabled: bool) -> None:
    """Log system startup information.

    Args:
        hostname: Server hostname
        db_file: Path of the key store file
        telegram_enabled: Whether low-stock notifications can be dispatched
    """
    logger = logging.getLogger("system")

    logger.info(
        "Application startup",
        extra={
            "hostname": hostname,
            "db_file": db_file,
            "telegram_enabled": telegram_enabled,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )
