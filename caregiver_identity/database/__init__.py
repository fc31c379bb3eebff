"""
Database package for the identity service.
"""

from .config import (
    get_db,
    get_database_settings,
    get_engine,
    build_engine,
    init_database,
    check_database_connection,
    SessionLocal,
    DatabaseSettings,
)

from .models import (
    Caregiver,
    Baby,
    BabyCaregiver,
    ApiKey,
    Invitation,
    CaregiverRole,
    InvitationStatus,
)

__all__ = [
    # Configuration
    "get_db",
    "get_database_settings",
    "get_engine",
    "build_engine",
    "init_database",
    "check_database_connection",
    "SessionLocal",
    "DatabaseSettings",
    # Models
    "Caregiver",
    "Baby",
    "BabyCaregiver",
    "ApiKey",
    "Invitation",
    "CaregiverRole",
    "InvitationStatus",
]
