"""
Report generation and download endpoints.

Reports are private to the user who generated them.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ...core.auth import UserContext, require_permission
from ...core.db import get_db
from ...schemas.report import ReportGenerate
from ...services import reports as report_service
from ...services.activity import record_activity


router = APIRouter(prefix="/api/reports", tags=["reports"])

MEDIA_TYPES = {
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}


@router.post("/generate", status_code=201)
def generate_report(
    payload: ReportGenerate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_permission("export")),
) -> dict:
    result = report_service.generate_report(db, payload, requester_id=user.user_id)
    record_activity(
        db,
        action="Generate Report",
        user_id=user.user_id,
        ip_address=user.ip_address,
        user_agent=user.user_agent,
        details=f"Generated {payload.type} report ({payload.format}): {payload.title}",
    )
    return result


@router.get("")
def list_reports(
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_permission("view")),
) -> list[dict]:
    return report_service.list_reports(db, owner_id=user.user_id)


@router.get("/stats/summary", dependencies=[Depends(require_permission("view"))])
def report_stats(db: Session = Depends(get_db)) -> dict:
    return report_service.report_stats(db)


@router.get("/{report_id}")
def get_report(
    report_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_permission("view")),
) -> dict:
    return report_service.get_report(db, report_id, owner_id=user.user_id)


@router.get("/{report_id}/download")
def download_report(
    report_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_permission("export")),
) -> FileResponse:
    path, report = report_service.download_report(db, report_id, owner_id=user.user_id)
    return FileResponse(
        str(path),
        media_type=MEDIA_TYPES.get(report.file_format, "application/octet-stream"),
        filename=path.name,
    )


@router.delete("/{report_id}")
def delete_report(
    report_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_permission("delete")),
) -> dict:
    return report_service.delete_report(db, report_id, owner_id=user.user_id)
