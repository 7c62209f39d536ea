"""
SQLAlchemy model base class for the Dishub monitoring backend.

All models inherit from the declarative `Base` defined here. Importing
this package registers every table on ``Base.metadata``.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


from .role import Role  # noqa: E402,F401
from .user import User  # noqa: E402,F401
from .vehicle import Vehicle, TAX_ACTIVE, TAX_INACTIVE  # noqa: E402,F401
from .scan import Scan  # noqa: E402,F401
from .activity_log import ActivityLog, SYSTEM_USER_ID  # noqa: E402,F401
from .report import Report  # noqa: E402,F401

__all__ = [
    "Base",

    # Access control
    "Role",
    "User",

    # Vehicles / scans
    "Vehicle",
    "Scan",
    "TAX_ACTIVE",
    "TAX_INACTIVE",

    # Audit / exports
    "ActivityLog",
    "SYSTEM_USER_ID",
    "Report",
]
