"""
ORM model for the append-only audit trail.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.timeutil import now_local
from . import Base


SYSTEM_USER_ID = "system"


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    action: Mapped[str] = mapped_column(String(128), index=True)
    # Either a users.id or SYSTEM_USER_ID, so no foreign key constraint.
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    status: Mapped[str] = mapped_column(String(16), default="success", index=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=now_local, index=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user = relationship(
        "User",
        primaryjoin="foreign(ActivityLog.user_id) == User.id",
        viewonly=True,
    )
