"""
Logging utilities for S3 Deploy.

Provides structured logging with entry/exit decorators, JSON formatting,
deploy IDs, and consistent formatting across every deploy stage.

Features:
    - Structured JSON logging for CI environments (LOG_FORMAT=json)
    - Deploy ID tracking across one CLI invocation
    - Entry/exit decorators with timing
    - Colorized console output via coloredlogs

Diagnostic logs go through this module. The colored status lines a user
watches during a deploy (upload started/complete/error) go through
``s3deploy.ui.ConsoleUI`` instead.

Example usage:
    >>> from s3deploy.utils.logging import get_logger, log_function_call, set_deploy_id
    >>>
    >>> logger = get_logger(__name__)
    >>> set_deploy_id("deploy-12345")
    >>>
    >>> @log_function_call
    >>> def read_directory(root: str) -> list:
    >>>     logger.info("Reading directory", extra={"root": root})
    >>>     return []
"""

import logging
import functools
import json
import os
import uuid
from typing import Any, Callable, TypeVar, cast, Optional, Dict
from datetime import datetime, timezone
from contextvars import ContextVar

import coloredlogs

from s3deploy.exceptions import DeployError

# Type variable for generic decorator typing
F = TypeVar("F", bound=Callable[..., Any])

# Context variable for the current deploy ID
_deploy_id: ContextVar[Optional[str]] = ContextVar("deploy_id", default=None)

# Global logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else came in through ``extra``
_STANDARD_RECORD_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "message",
        "asctime",
    ]
)


def _json_enabled() -> bool:
    return os.getenv("LOG_FORMAT", "text").lower() == "json"


# ============================================================================
# Deploy ID Management
# ============================================================================

def get_deploy_id() -> str:
    """
    Get the current deploy ID, generating one on first use.

    Returns:
        Current deploy ID (a UUID4 string unless set explicitly)
    """
    deploy_id = _deploy_id.get()
    if deploy_id is None:
        deploy_id = str(uuid.uuid4())
        _deploy_id.set(deploy_id)
    return deploy_id


def set_deploy_id(deploy_id: str) -> None:
    """
    Set the deploy ID for the current context.

    Args:
        deploy_id: Identifier attached to every JSON log record
    """
    _deploy_id.set(deploy_id)


def clear_deploy_id() -> None:
    """Clear the deploy ID for the current context."""
    _deploy_id.set(None)


# ============================================================================
# JSON Formatter
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Example output:
        {
            "timestamp": "2026-01-04T10:30:15.123456+00:00",
            "level": "INFO",
            "logger": "s3deploy.uploader.orchestrator",
            "message": "Uploading directory",
            "deploy_id": "3f0c...",
            "extra": {"directory": "dist/"}
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "deploy_id": get_deploy_id(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", enable_colors: bool = True) -> None:
    """
    Configure global logging settings for the application.

    Uses structured JSON logging when ``LOG_FORMAT=json`` is set (CI runs),
    otherwise colorized text through coloredlogs.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_colors: Whether to enable colorized console output (default: True)

    Example:
        >>> setup_logging(level="DEBUG")
        >>> os.environ["LOG_FORMAT"] = "json"
        >>> setup_logging(level="INFO")
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if _json_enabled():
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(console_handler)
    else:
        coloredlogs.install(
            level=log_level,
            fmt=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            logger=root_logger,
            isatty=None if enable_colors else False,
        )

    # botocore is chatty at INFO (credential discovery, endpoint resolution)
    logging.getLogger("botocore").setLevel(max(log_level, logging.WARNING))
    logging.getLogger("boto3").setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def log_function_call(func: F) -> F:
    """
    Decorator that logs function entry and exit with parameters and timing.

    ENTER and EXIT lines are logged at DEBUG so they stay out of the way of
    the console progress output. A ``DeployError`` is an expected fatal
    outcome the CLI reports itself, so it is logged at DEBUG without a
    traceback; any other exception is logged at ERROR with the traceback.
    Both are re-raised unchanged.

    Args:
        func: Function to be decorated

    Returns:
        Wrapped function with logging

    Example:
        >>> @log_function_call
        >>> def validate_bucket(store, ui) -> str:
        >>>     ...
        >>>
        >>> # 2026-01-04 10:30:15 - module - DEBUG - ENTER validate_bucket(...)
        >>> # 2026-01-04 10:30:16 - module - DEBUG - EXIT validate_bucket -> 'eu-west-1' (0.41s)
    """
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        deploy_id = get_deploy_id()

        arg_names = func.__code__.co_varnames[: func.__code__.co_argcount]
        args_repr = [f"{name}={value!r}" for name, value in zip(arg_names, args)]
        kwargs_repr = [f"{key}={value!r}" for key, value in kwargs.items()]
        all_args = ", ".join(args_repr + kwargs_repr)

        logger.debug(
            f"ENTER {func.__name__}({all_args})",
            extra={
                "function": func.__name__,
                "deploy_id": deploy_id,
                "event": "function_entry",
            },
        )

        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
        except DeployError as error:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.debug(
                f"FAIL {func.__name__} raised {type(error).__name__}: {error}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": execution_time,
                    "deploy_id": deploy_id,
                    "event": "function_error",
                    "error_type": type(error).__name__,
                },
            )
            raise
        except Exception as error:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(
                f"ERROR {func.__name__} raised {type(error).__name__}: {error}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": execution_time,
                    "deploy_id": deploy_id,
                    "event": "function_error",
                    "error_type": type(error).__name__,
                },
                exc_info=True,
            )
            raise

        execution_time = (datetime.now() - start_time).total_seconds()
        logger.debug(
            f"EXIT {func.__name__} -> {result!r} ({execution_time:.2f}s)",
            extra={
                "function": func.__name__,
                "duration_seconds": execution_time,
                "deploy_id": deploy_id,
                "event": "function_exit",
            },
        )
        return result

    return cast(F, wrapper)
