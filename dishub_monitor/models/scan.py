"""
ORM model for plate scan events.

Vehicle attributes are copied onto the scan at capture time and may
drift from the current vehicle row afterwards.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.timeutil import now_local
from . import Base


class Scan(Base):
    __tablename__ = "scans"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    plate_number: Mapped[str] = mapped_column(String(32), index=True)
    vehicle_type: Mapped[str] = mapped_column(String(64))
    color: Mapped[str] = mapped_column(String(64))
    owner_name: Mapped[str] = mapped_column(String(255))
    tax_status: Mapped[str] = mapped_column(String(16), index=True)
    scan_time: Mapped[datetime] = mapped_column(DateTime, default=now_local, index=True)
    location: Mapped[str] = mapped_column(String(255), default="Unknown")
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    vehicle_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("vehicles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    vehicle = relationship("Vehicle", back_populates="scans")
    user = relationship("User")
