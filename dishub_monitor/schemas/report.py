"""
Schemas for generated reports and activity logs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from . import ApiModel


ReportType = Literal["vehicle-data", "scan-history", "tax-compliance", "activity-logs"]
ReportFormat = Literal["pdf", "excel"]
TaxFilter = Literal["all", "lunas", "belum-lunas"]


class ReportGenerate(ApiModel):
    title: str
    start_date: str
    end_date: str
    tax_status: TaxFilter
    format: ReportFormat
    type: ReportType = "vehicle-data"


class ReportOut(ApiModel):
    id: str
    title: str
    report_type: str
    start_date: datetime
    end_date: datetime
    filter_type: str
    file_format: str
    status: str
    file_path: Optional[str] = None
    generated_by: str
    created_at: datetime
    updated_at: datetime


class ActivityUser(ApiModel):
    id: str
    username: str
    name: str


class ActivityLogOut(ApiModel):
    id: str
    action: str
    user_id: str
    status: str
    timestamp: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    details: Optional[str] = None
    user: Optional[ActivityUser] = None


class ActivityExportIn(ApiModel):
    search: Optional[str] = None
    status: Optional[str] = None
    action: Optional[str] = None
    user_id: Optional[str] = None
    filter: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
