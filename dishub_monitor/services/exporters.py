"""
File encoders for report datasets and the activity CSV export.

Encoders only see column labels and already-formatted rows (text, plus ints
for counts), so the same dataset renders identically in every format.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Iterable, Union

from fpdf import FPDF
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from ..core.timeutil import format_timestamp


logger = logging.getLogger("exporters")

SHEET_TITLE = "Report Data"
HEADER_FILL = PatternFill(start_color="FF4472C4", end_color="FF4472C4", fill_type="solid")
MIN_COLUMN_WIDTH = 15
EMPTY_DATASET_TEXT = "No data found for the selected criteria."

ACTIVITY_CSV_COLUMNS = (
    "Timestamp",
    "User",
    "Username",
    "Role",
    "Action",
    "Status",
    "IP Address",
    "User Agent",
    "Details",
)


def _excel_safe(value: Union[str, int]):
    # Worksheets reject ASCII control characters that user input can carry.
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def write_excel(path: Path, columns: list[str], rows: list[list[Union[str, int]]]) -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SHEET_TITLE

    sheet.append(columns)
    for cell in sheet[1]:
        cell.font = Font(bold=True, color="FFFFFFFF")
        cell.fill = HEADER_FILL
    for row in rows:
        sheet.append([_excel_safe(value) for value in row])
    for index, label in enumerate(columns, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = max(len(label), MIN_COLUMN_WIDTH)

    workbook.save(path)
    logger.info("Excel report saved to %s rows=%s", path, len(rows))


def _pdf_safe(text: str) -> str:
    # Core PDF fonts only cover latin-1.
    return str(text).encode("latin-1", "replace").decode("latin-1")


def write_pdf(
    path: Path,
    columns: list[str],
    rows: list[list[Union[str, int]]],
    *,
    title: str,
    period: str,
    filter_label: str,
    generated_at: str,
) -> None:
    pdf = FPDF(orientation="L", format="A4")
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(0, 10, _pdf_safe(title), new_x="LMARGIN", new_y="NEXT", align="C")
    pdf.set_font("Helvetica", "", 10)
    pdf.cell(0, 6, _pdf_safe(f"Period: {period}"), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 6, _pdf_safe(f"Filter: {filter_label}"), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 6, _pdf_safe(f"Generated: {generated_at}"), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    if not rows:
        pdf.set_font("Helvetica", "I", 11)
        pdf.cell(0, 8, EMPTY_DATASET_TEXT, new_x="LMARGIN", new_y="NEXT")
        pdf.output(str(path))
        logger.info("PDF report saved to %s rows=0", path)
        return

    col_width = pdf.epw / max(len(columns), 1)
    pdf.set_font("Helvetica", "B", 8)
    pdf.set_fill_color(68, 114, 196)
    pdf.set_text_color(255, 255, 255)
    for label in columns:
        pdf.cell(col_width, 7, _pdf_safe(label), border=1, fill=True, new_x="RIGHT")
    pdf.ln()

    pdf.set_font("Helvetica", "", 7)
    pdf.set_text_color(0, 0, 0)
    max_chars = max(int(col_width / 1.6), 4)
    for row in rows:
        for value in row:
            text = _pdf_safe(value)
            if len(text) > max_chars:
                text = text[: max_chars - 3] + "..."
            pdf.cell(col_width, 6, text, border=1, new_x="RIGHT")
        pdf.ln()

    pdf.output(str(path))
    logger.info("PDF report saved to %s rows=%s", path, len(rows))


def write_activity_csv(logs: Iterable) -> str:
    """Render activity rows as CSV text, including the user agent column."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(ACTIVITY_CSV_COLUMNS)
    for log in logs:
        user = log.user
        role = user.role.name if user is not None and user.role is not None else "System"
        writer.writerow(
            [
                format_timestamp(log.timestamp),
                user.name if user is not None else "System",
                user.username if user is not None else "system",
                role,
                log.action,
                log.status,
                log.ip_address or "N/A",
                log.user_agent or "N/A",
                log.details or "",
            ]
        )
    return buffer.getvalue()
