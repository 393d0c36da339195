# app/api/routes_dashboard.py
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user
from app.models.user import User
from app.services import dashboard
from app.utils.resp import ok

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

Period = Literal["day", "week", "month", "quarter", "year"]


@router.get("/kpi")
def kpi(
    period: Period = Query("month"),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(dashboard.get_kpi(db, period))


@router.get("/chart/revenue")
def revenue_chart(
    period: Period = Query("month"),
    group_by: Literal["day", "week", "month"] = Query("day"),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(dashboard.get_revenue_chart(db, period, group_by))


@router.get("/chart/costs")
def cost_breakdown(
    period: Period = Query("month"),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(dashboard.get_cost_breakdown(db, period))


@router.get("/top-clients")
def top_clients(
    period: Period = Query("month"),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(dashboard.get_top_clients(db, period, limit))


@router.get("/orders-by-status")
def orders_by_status(
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(dashboard.get_orders_by_status(db))
