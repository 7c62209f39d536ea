"""
ORM model for registered vehicles.

``plate_number`` is unique across active and soft-deleted rows alike.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.timeutil import now_local
from . import Base


TAX_ACTIVE = "Aktif"
TAX_INACTIVE = "Mati"


class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    plate_number: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    vehicle_type: Mapped[str] = mapped_column(String(64))
    color: Mapped[str] = mapped_column(String(64))
    owner_name: Mapped[str] = mapped_column(String(255))
    tax_status: Mapped[str] = mapped_column(String(16), default=TAX_INACTIVE, index=True)
    tax_expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local, onupdate=now_local)

    scans = relationship("Scan", back_populates="vehicle")
