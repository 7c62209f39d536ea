"""
Report lifecycle: validate, create, materialize, download and delete.

A report row is created in ``generating`` state only after the request
has been validated. It then moves exactly once to ``completed`` (with a
file path) or ``failed`` (without one). Reports are scoped to the user
who generated them; other users get "not found".
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from pathlib import Path
import re
from typing import Optional
import uuid

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import (
    BadRequestError,
    NotFoundError,
    PreconditionError,
    ReportGenerationError,
    log_exception,
)
from ..core.timeutil import format_date, format_timestamp, now_local, parse_date_param
from ..models.report import Report
from ..schemas.report import ReportGenerate, ReportOut
from .aggregation import count_where, percentage
from .exporters import write_excel, write_pdf
from .report_data import FILTER_LABELS, REPORT_COLUMNS, TAX_FILTERS, ReportDataset, build_report_dataset


_logger = logging.getLogger("reports")

STATUS_GENERATING = "generating"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

FILE_EXTENSIONS = {"excel": "xlsx", "pdf": "pdf"}


def resolve_report_path(file_path: str) -> Path:
    path = Path(file_path)
    if path.is_absolute():
        return path
    return Path.cwd() / path


def _report_file_path(title: str, file_format: str, now: datetime) -> str:
    stem = re.sub(r"[^a-z0-9]", "_", title, flags=re.IGNORECASE).lower() or "report"
    millis = int(now.timestamp() * 1000)
    name = f"{stem}_{millis}_{uuid.uuid4().hex[:8]}.{FILE_EXTENSIONS[file_format]}"
    return (Path(settings.exports_dir) / name).as_posix()


def _validate(payload: ReportGenerate) -> tuple[datetime, datetime]:
    if payload.type not in REPORT_COLUMNS:
        raise BadRequestError(f"Unsupported report type: {payload.type}")
    if payload.format not in FILE_EXTENSIONS:
        raise BadRequestError(f"Unsupported report format: {payload.format}")
    if payload.tax_status not in TAX_FILTERS:
        raise BadRequestError(f"Unsupported tax status filter: {payload.tax_status}")
    start = parse_date_param(payload.start_date)
    end = parse_date_param(payload.end_date, inclusive_end=True)
    if start is None or end is None:
        raise BadRequestError("Invalid date format")
    if start > end:
        raise BadRequestError("Start date must be before end date")
    return start, end


def _encode(dataset: ReportDataset, report: Report, target: Path, now: datetime) -> None:
    if report.file_format == "excel":
        write_excel(target, dataset.columns, dataset.rows)
        return
    write_pdf(
        target,
        dataset.columns,
        dataset.rows,
        title=report.title,
        period=f"{format_date(report.start_date)} - {format_date(report.end_date)}",
        filter_label=FILTER_LABELS.get(report.filter_type, report.filter_type),
        generated_at=format_timestamp(now),
    )


def _mark_failed(db: Session, report_id: str) -> None:
    report = db.get(Report, report_id)
    if report is None:
        return
    report.status = STATUS_FAILED
    report.file_path = None
    db.commit()


def generate_report(
    db: Session,
    payload: ReportGenerate,
    *,
    requester_id: str,
    now: Optional[datetime] = None,
) -> dict:
    start, end = _validate(payload)
    now = now or now_local()

    report = Report(
        title=payload.title,
        report_type=payload.type,
        start_date=start,
        end_date=end,
        filter_type=payload.tax_status,
        file_format=payload.format,
        status=STATUS_GENERATING,
        generated_by=requester_id,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    report_id = report.id

    target: Optional[Path] = None
    try:
        dataset = build_report_dataset(
            db,
            report_type=payload.type,
            start=start,
            end=end,
            tax_filter=payload.tax_status,
            now=now,
        )
        file_path = _report_file_path(payload.title, payload.format, now)
        target = resolve_report_path(file_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        _encode(dataset, report, target, now)
        report.status = STATUS_COMPLETED
        report.file_path = file_path
        db.commit()
    except Exception as exc:
        db.rollback()
        if target is not None and target.exists():
            target.unlink()
        _mark_failed(db, report_id)
        log_exception(_logger, "Report generation failed", extra={"report_id": report_id}, exc=exc)
        raise ReportGenerationError(f"Failed to generate report: {exc}") from exc

    _logger.info("Report generated id=%s type=%s format=%s rows=%s", report_id, payload.type, payload.format, len(dataset.rows))
    return {
        "reportId": report_id,
        "downloadUrl": f"/api/reports/{report_id}/download",
        "status": STATUS_COMPLETED,
    }


def _owned_report(db: Session, report_id: str, owner_id: str) -> Report:
    report = (
        db.query(Report)
        .filter(Report.id == report_id, Report.generated_by == owner_id)
        .first()
    )
    if report is None:
        raise NotFoundError("Report not found")
    return report


def list_reports(db: Session, *, owner_id: str) -> list[dict]:
    rows = (
        db.query(Report)
        .filter(Report.generated_by == owner_id)
        .order_by(Report.created_at.desc())
        .all()
    )
    return [ReportOut.model_validate(r).dump() for r in rows]


def get_report(db: Session, report_id: str, *, owner_id: str) -> dict:
    return ReportOut.model_validate(_owned_report(db, report_id, owner_id)).dump()


def download_report(db: Session, report_id: str, *, owner_id: str) -> tuple[Path, Report]:
    report = _owned_report(db, report_id, owner_id)
    if report.status != STATUS_COMPLETED or not report.file_path:
        raise PreconditionError("Report is not ready for download")
    path = resolve_report_path(report.file_path)
    if not path.exists():
        raise PreconditionError("Report file not found")
    return path, report


def delete_report(db: Session, report_id: str, *, owner_id: str) -> dict:
    report = _owned_report(db, report_id, owner_id)
    if report.file_path:
        path = resolve_report_path(report.file_path)
        if path.exists():
            path.unlink()
        else:
            _logger.warning("Report file already missing id=%s path=%s", report.id, path)
    db.delete(report)
    db.commit()
    return {"message": "Report deleted successfully"}


def report_stats(db: Session, *, now: Optional[datetime] = None) -> dict:
    now = now or now_local()
    total = count_where(db, Report)
    recent = count_where(db, Report, Report.created_at >= now - timedelta(days=30))
    completed = count_where(db, Report, Report.status == STATUS_COMPLETED)
    pending = count_where(db, Report, Report.status == STATUS_GENERATING)
    return {
        "totalReports": total,
        "reportsLast30Days": recent,
        "successfulReports": completed,
        "pendingReports": pending,
        "successRate": percentage(completed, total),
    }
