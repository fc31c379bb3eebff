"""
Logging configuration for the identity service.
"""

import sys
import logging
from typing import Optional

import structlog

from .settings import IdentitySettings, get_identity_settings


def configure_structured_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    stream=None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Format type ('json' or 'console')
        stream: Output stream (defaults to stdout)
    """
    # Configure basic logging
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def setup_application_logging(
    settings: Optional[IdentitySettings] = None,
) -> structlog.BoundLogger:
    """
    Setup logging configuration for the application based on environment.

    Development gets the colored console renderer, every other environment
    gets JSON lines.

    Returns:
        Main application logger
    """
    settings = settings or get_identity_settings()

    log_format = (
        "console" if settings.environment.lower() == "development" else settings.log_format
    )

    configure_structured_logging(
        log_level=settings.log_level.upper(),
        log_format=log_format,
    )

    return get_logger("identity-service")
