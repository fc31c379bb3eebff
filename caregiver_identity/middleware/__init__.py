"""
Middleware package for authentication and request logging.
"""

from .auth import get_current_caregiver
from .logging import audit_logger, logging_middleware, security_logger

__all__ = [
    "get_current_caregiver",
    "audit_logger",
    "logging_middleware",
    "security_logger",
]
