"""
Schemas for scan events.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from . import ApiModel
from .vehicle import TaxStatus


class ScanCreate(ApiModel):
    plate_number: str = Field(..., min_length=1, max_length=32)
    vehicle_type: str = Field(..., min_length=1, max_length=64)
    color: str = Field(..., min_length=1, max_length=64)
    owner_name: Optional[str] = None
    tax_status: Optional[TaxStatus] = None
    location: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class ScanUser(ApiModel):
    id: str
    username: str
    name: str


class ScanOut(ApiModel):
    id: str
    plate_number: str
    vehicle_type: str
    color: str
    owner_name: str
    tax_status: str
    scan_time: datetime
    location: str
    user_id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    vehicle_id: Optional[str] = None
    details: Optional[str] = None
    user: Optional[ScanUser] = None
