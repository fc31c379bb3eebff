"""
Configuration modules for the identity service.
"""

from .logging import setup_application_logging, get_logger, configure_structured_logging
from .settings import IdentitySettings, get_identity_settings

__all__ = [
    "setup_application_logging",
    "get_logger",
    "configure_structured_logging",
    "IdentitySettings",
    "get_identity_settings",
]
