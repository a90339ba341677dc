"""
Export endpoints - individual-process spreadsheet downloads.

    GET /api/v1/exports/individual-processes.xlsx   (?main_process_id=)
    GET /api/v1/exports/individual-processes.csv    (?main_process_id=)

All queries are scoped by tenant_id.  No temp files - content is
returned in-memory.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, request

from immigration.blueprints import tenant_id
from immigration.services.export_service import (
    generate_individual_processes_csv,
    generate_individual_processes_xlsx,
)

logger = logging.getLogger(__name__)

export_bp = Blueprint("exports", __name__, url_prefix="/api/v1")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _filename(ext):
    date_str = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"individual_processes_{date_str}.{ext}"


@export_bp.route("/exports/individual-processes.xlsx", methods=["GET"])
def export_xlsx():
    content = generate_individual_processes_xlsx(tenant_id(), request.args)
    return Response(
        content,
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename={_filename('xlsx')}"},
    )


@export_bp.route("/exports/individual-processes.csv", methods=["GET"])
def export_csv():
    content = generate_individual_processes_csv(tenant_id(), request.args)
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={_filename('csv')}"},
    )
