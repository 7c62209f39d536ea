"""
Schemas for vehicles.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from . import ApiModel


TaxStatus = Literal["Aktif", "Mati"]


class VehicleCreate(ApiModel):
    plate_number: str = Field(..., min_length=1, max_length=32)
    vehicle_type: str = Field(..., min_length=1, max_length=64)
    color: str = Field(..., min_length=1, max_length=64)
    owner_name: str = Field(..., min_length=1, max_length=255)
    tax_status: TaxStatus
    tax_expiry_date: Optional[str] = None


class VehicleUpdate(ApiModel):
    plate_number: Optional[str] = Field(default=None, min_length=1, max_length=32)
    vehicle_type: Optional[str] = None
    color: Optional[str] = None
    owner_name: Optional[str] = None
    tax_status: Optional[TaxStatus] = None
    tax_expiry_date: Optional[str] = None
    is_active: Optional[bool] = None


class TaxStatusUpdate(ApiModel):
    tax_status: TaxStatus


class VehicleOut(ApiModel):
    id: str
    plate_number: str
    vehicle_type: str
    color: str
    owner_name: str
    tax_status: str
    tax_expiry_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
