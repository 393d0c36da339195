# FILE: app/utils/resp.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(
    data: Any = None,
    *,
    meta: Optional[Dict[str, Any]] = None,
    status_code: int = 200,
) -> JSONResponse:
    """
    Standard success wrapper:
    {
      "success": true,
      "data": ...,
      "meta": {...} (optional)
    }
    """
    payload: Dict[str, Any] = {"success": True, "data": data}
    if meta is not None:
        payload["meta"] = meta

    # jsonable_encoder converts datetime/Decimal/pydantic models to JSON-safe types
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def err(msg: str = "Something went wrong", status_code: int = 400) -> JSONResponse:
    """
    Standard error wrapper: {"success": false, "error": "..."}
    """
    payload = {"success": False, "error": msg}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def page_meta(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit if limit else 0,
    }
