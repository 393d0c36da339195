# app/api/routes_reports.py
from __future__ import annotations

import io
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import LEDGER_READERS, REPORT_READERS
from app.models.user import User
from app.services import pnl_reports
from app.services.excel_export import export_payload
from app.utils.resp import ok

router = APIRouter(prefix="/reports", tags=["Reports"])

ReportFormat = Literal["json", "xlsx", "csv"]


def _file_response(fmt: str, title: str, filename: str, columns, rows) -> StreamingResponse:
    content, media_type, ext = export_payload(fmt, title, columns, rows)
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}.{ext}"'},
    )


@router.get("/orders")
def orders_report(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    client_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    format: ReportFormat = Query("json"),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*REPORT_READERS)),
):
    data = pnl_reports.get_orders_report(
        db,
        date_from=date_from,
        date_to=date_to,
        client_id=client_id,
        status=status.upper() if status else None,
    )
    if format != "json":
        return _file_response(format, "Orders report", "orders-report",
                              pnl_reports.ORDERS_REPORT_COLUMNS, data["orders"])
    return ok(data)


@router.get("/order/{ref}/pnl")
def order_pnl(
    ref: str,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(pnl_reports.get_order_pnl(db, ref))


@router.get("/vendors")
def vendors_report(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*LEDGER_READERS)),
):
    data = pnl_reports.get_vendors_report(db, date_from=date_from, date_to=date_to)
    return ok(data["vendors"], meta=data["summary"])


@router.get("/clients")
def clients_report(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    format: ReportFormat = Query("json"),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*REPORT_READERS)),
):
    data = pnl_reports.get_clients_report(db, date_from=date_from, date_to=date_to)
    if format != "json":
        return _file_response(format, "Clients report", "clients-report",
                              pnl_reports.CLIENTS_REPORT_COLUMNS, data["clients"])
    return ok(data["clients"], meta=data["summary"])
