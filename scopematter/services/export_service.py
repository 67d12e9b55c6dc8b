"""
Export service — read models for client-facing documents and their Excel
rendering.

Read models are plain dicts (project, client, change order with its
originating request / ordered scope items). The renderers turn them into
styled openpyxl workbooks returned as BytesIO buffers ready for send_file.
"""

import io
import logging
from datetime import datetime, timezone
from decimal import Decimal

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from sqlalchemy import select

from scopematter.core.exceptions import NotFoundError, ServiceErrorCode
from scopematter.models import _iso
from scopematter.models.change_order import ChangeOrder
from scopematter.models.project import ScopeItem
from scopematter.services.helpers.scoped_queries import assert_project_ownership

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="1F3A5F", end_color="1F3A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
LABEL_FONT = Font(bold=True)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
STATUS_FILLS = {
    "APPROVED": PatternFill(start_color="27AE60", end_color="27AE60", fill_type="solid"),
    "PENDING": PatternFill(start_color="F39C12", end_color="F39C12", fill_type="solid"),
    "REJECTED": PatternFill(start_color="E74C3C", end_color="E74C3C", fill_type="solid"),
}


def _project_header(project) -> dict:
    client = project.client
    return {
        "project": {
            "id": project.id,
            "name": project.name,
            "description": project.description,
            "status": project.status,
        },
        "client": {
            "id": client.id,
            "name": client.name,
            "company": client.company,
            "email": client.email,
        } if client else None,
    }


# ═══════════════════════════════════════════════════════════════
# Read models
# ═══════════════════════════════════════════════════════════════


def export_change_order(*, session, project_id, change_order_id, user_id) -> dict:
    """Project + client + one change order with its originating request."""
    project = assert_project_ownership(session, project_id, user_id)
    change_order = session.execute(
        select(ChangeOrder).where(
            ChangeOrder.id == change_order_id,
            ChangeOrder.project_id == project_id,
        )
    ).scalar_one_or_none()
    if change_order is None:
        raise NotFoundError(ServiceErrorCode.CHANGE_ORDER_NOT_FOUND)

    data = _project_header(project)
    data["change_order"] = {
        "id": change_order.id,
        "price_usd": str(change_order.price_usd),
        "extra_days": change_order.extra_days,
        "status": change_order.status,
        "created_at": _iso(change_order.created_at),
        "request": {
            "id": change_order.request.id,
            "description": change_order.request.description,
        },
    }
    return data


def export_scope_items(*, session, project_id, user_id) -> dict:
    """Project + client + scope items in creation order."""
    project = assert_project_ownership(session, project_id, user_id)
    items = session.execute(
        select(ScopeItem)
        .where(ScopeItem.project_id == project_id)
        .order_by(ScopeItem.created_at.asc())
    ).scalars()

    data = _project_header(project)
    data["scope_items"] = [
        {"id": s.id, "name": s.name, "description": s.description, "status": s.status}
        for s in items
    ]
    return data


# ═══════════════════════════════════════════════════════════════
# Excel rendering
# ═══════════════════════════════════════════════════════════════


def _title(ws, text: str, span: str):
    ws.merge_cells(span)
    ws["A1"] = text
    ws["A1"].font = Font(size=16, bold=True)
    ws["A2"] = f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"
    ws["A2"].font = Font(size=10, italic=True, color="666666")


def _client_block(ws, row: int, data: dict) -> int:
    client = data.get("client") or {}
    for label, value in (
        ("Project", data["project"]["name"]),
        ("Client", client.get("name")),
        ("Company", client.get("company")),
        ("Email", client.get("email")),
    ):
        ws.cell(row=row, column=1, value=label).font = LABEL_FONT
        ws.cell(row=row, column=2, value=value or "—")
        row += 1
    return row


def render_change_order_xlsx(data: dict) -> io.BytesIO:
    """Styled single-sheet change order document."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Change Order"
    _title(ws, f"Change Order — {data['project']['name']}", "A1:D1")

    row = _client_block(ws, 4, data) + 1

    co = data["change_order"]
    headers = ["Request", "Price (USD)", "Extra Days", "Status"]
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER

    row += 1
    ws.cell(row=row, column=1, value=co["request"]["description"]).border = THIN_BORDER
    price_cell = ws.cell(row=row, column=2, value=Decimal(co["price_usd"]))
    price_cell.number_format = "#,##0.00"
    price_cell.border = THIN_BORDER
    ws.cell(row=row, column=3, value=co["extra_days"]).border = THIN_BORDER
    status_cell = ws.cell(row=row, column=4, value=co["status"])
    status_cell.fill = STATUS_FILLS.get(co["status"], PatternFill())
    status_cell.font = Font(color="FFFFFF", bold=True)
    status_cell.alignment = Alignment(horizontal="center")
    status_cell.border = THIN_BORDER
    ws.cell(row=row, column=1).alignment = Alignment(wrap_text=True, vertical="top")

    for col, width in enumerate([60, 16, 12, 14], 1):
        ws.column_dimensions[get_column_letter(col)].width = width

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


def render_scope_items_xlsx(data: dict) -> io.BytesIO:
    """Styled scope-of-work sheet listing every scope item."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Scope of Work"
    _title(ws, f"Scope of Work — {data['project']['name']}", "A1:D1")

    row = _client_block(ws, 4, data) + 1

    header_row = row
    headers = ["#", "Name", "Description", "Status"]
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER

    for idx, item in enumerate(data["scope_items"], 1):
        row += 1
        values = [idx, item["name"], item["description"], item["status"]]
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = THIN_BORDER
            cell.alignment = Alignment(wrap_text=True, vertical="top")

    for col, width in enumerate([6, 30, 70, 14], 1):
        ws.column_dimensions[get_column_letter(col)].width = width
    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf
