"""Individual-process export - Excel (.xlsx) and CSV.

Both formats share one column layout.  Exports are built in memory and
returned as bytes / str; nothing is written to disk.  All queries are
scoped by tenant_id.
"""
import csv
import io
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from immigration.models.process import IndividualProcess
from immigration.utils.helpers import parse_int_field
from immigration.utils.tax_ids import format_cpf

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="1F3A5F", end_color="1F3A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

COLUMNS = (
    ("Reference", "reference_number"),
    ("Person", "person_name"),
    ("CPF", "cpf"),
    ("Passport", "passport_number"),
    ("Current Status", "current_status"),
    ("Status Date", "status_date"),
    ("Protocol", "protocol_number"),
    ("RNM Number", "rnm_number"),
    ("Deadline", "deadline_date"),
    ("RNM Deadline", "rnm_deadline"),
    ("Appointment", "appointment_date_time"),
    ("Active", "is_active"),
)


def _rows(tenant_id, filters=None):
    filters = filters or {}
    q = IndividualProcess.query_for_tenant(tenant_id)
    if filters.get("main_process_id"):
        q = q.filter_by(main_process_id=parse_int_field(filters["main_process_id"], "main_process_id"))
    rows = []
    for ip in q.order_by(IndividualProcess.main_process_id, IndividualProcess.id).all():
        record = ip.active_status_record
        rows.append({
            "reference_number": ip.main_process.reference_number if ip.main_process else "",
            "person_name": ip.person.full_name if ip.person else "",
            "cpf": format_cpf(ip.person.cpf) if ip.person and ip.person.cpf else "",
            "passport_number": ip.passport.passport_number if ip.passport else "",
            "current_status": record.case_status.name if record else "",
            "status_date": record.date.isoformat() if record and record.date else "",
            "protocol_number": ip.protocol_number or "",
            "rnm_number": ip.rnm_number or "",
            "deadline_date": ip.deadline_date.isoformat() if ip.deadline_date else "",
            "rnm_deadline": ip.rnm_deadline.isoformat() if ip.rnm_deadline else "",
            "appointment_date_time": (ip.appointment_date_time.strftime("%Y-%m-%d %H:%M")
                                      if ip.appointment_date_time else ""),
            "is_active": "Yes" if ip.is_active else "No",
        })
    return rows


def _apply_header_style(ws, row: int, col_count: int) -> None:
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Auto-size column widths based on content (capped at 60 chars)."""
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        ws.column_dimensions[col_letter].width = max(max_len + 4, 12)


def generate_individual_processes_xlsx(tenant_id: int, filters: dict | None = None) -> bytes:
    """Styled workbook: title, timestamp, header row, one row per process."""
    rows = _rows(tenant_id, filters)

    wb = Workbook()
    ws = wb.active
    ws.title = "Individual Processes"

    ws["A1"] = "Individual Processes"
    ws["A1"].font = Font(size=16, bold=True, color="1F3A5F")
    ws["A2"] = f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"
    ws["A2"].font = Font(size=10, italic=True, color="666666")

    header_row = 4
    for col, (title, _) in enumerate(COLUMNS, 1):
        ws.cell(row=header_row, column=col, value=title)
    _apply_header_style(ws, header_row, len(COLUMNS))

    for i, row in enumerate(rows, header_row + 1):
        for col, (_, key) in enumerate(COLUMNS, 1):
            ws.cell(row=i, column=col, value=row[key]).border = THIN_BORDER

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)
    _auto_width(ws)

    buf = io.BytesIO()
    wb.save(buf)
    logger.info("xlsx export: %d individual processes (tenant=%s)", len(rows), tenant_id)
    return buf.getvalue()


def generate_individual_processes_csv(tenant_id: int, filters: dict | None = None) -> str:
    rows = _rows(tenant_id, filters)
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow([title for title, _ in COLUMNS])
    for row in rows:
        writer.writerow([row[key] for _, key in COLUMNS])
    logger.info("csv export: %d individual processes (tenant=%s)", len(rows), tenant_id)
    return out.getvalue()
