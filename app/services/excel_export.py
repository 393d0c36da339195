from __future__ import annotations

import csv
import io
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"

Columns = Sequence[Tuple[str, str]]


def _cell(x: Any) -> Any:
    if isinstance(x, Decimal):
        return float(x)
    if isinstance(x, bool):
        return "YES" if x else "NO"
    return x


def build_report_xlsx(title: str, columns: Columns, rows: Iterable[Dict[str, Any]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    # sheet titles are capped at 31 chars
    ws.title = title[:31]

    headers = [h for _, h in columns]
    ws.append(headers)
    for c in ws[1]:
        c.font = Font(bold=True)

    for r in rows:
        ws.append([_cell(r.get(key)) for key, _ in columns])

    for col in range(1, len(headers) + 1):
        ws.column_dimensions[get_column_letter(col)].width = 18

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def build_report_csv(columns: Columns, rows: Iterable[Dict[str, Any]]) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([h for _, h in columns])
    for r in rows:
        writer.writerow(["" if r.get(key) is None else _cell(r.get(key)) for key, _ in columns])
    # BOM so spreadsheet apps detect UTF-8
    return buf.getvalue().encode("utf-8-sig")


def export_payload(fmt: str, title: str, columns: Columns, rows: List[Dict[str, Any]]) -> Tuple[bytes, str, str]:
    """
    Returns (content, media type, file extension) for fmt in {"xlsx", "csv"}.
    """
    if fmt == "csv":
        return build_report_csv(columns, rows), CSV_MEDIA_TYPE, "csv"
    return build_report_xlsx(title, columns, rows), XLSX_MEDIA_TYPE, "xlsx"
