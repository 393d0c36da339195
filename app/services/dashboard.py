# app/services/dashboard.py
"""
Dashboard aggregates over the cached order money fields.

Every window is [start, now]; the KPI comparison window is the same length
immediately before it. Cancelled and returned orders never count.
"""
from __future__ import annotations

import calendar
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.client import Client
from app.models.operations import CostOperation
from app.models.order import ORDER_STATUSES, Order, OrderItem
from app.models.vendor import VendorService
from app.services.money import D, money2, round1
from app.services.pnl_reports import EXCLUDED_CLIENT_REPORT_STATUSES

ZERO = Decimal("0")

SHIPPED_STATUSES = ("SHIPPED", "DELIVERED")

SERVICE_TYPE_LABELS: Dict[str, str] = OrderedDict([
    ("STORAGE", "Storage"),
    ("PICKING", "Picking"),
    ("PACKING", "Packing"),
    ("SHIPPING", "Shipping"),
    ("RECEIVING", "Receiving"),
    ("LABELING", "Labeling"),
    ("RETURNS", "Returns"),
    ("OTHER", "Other"),
])

STATUS_LABELS: Dict[str, str] = OrderedDict([
    ("NEW", "New"),
    ("CONFIRMED", "Confirmed"),
    ("IN_PROGRESS", "In progress"),
    ("SHIPPED", "Shipped"),
    ("DELIVERED", "Delivered"),
    ("CANCELLED", "Cancelled"),
    ("RETURNED", "Returned"),
])


def _shift_months(dt: datetime, months: int) -> datetime:
    idx = dt.month - 1 + months
    year, month = dt.year + idx // 12, idx % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def period_start(period: Optional[str], now: datetime) -> datetime:
    """Unknown or missing periods mean the last month."""
    if period == "day":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "quarter":
        return _shift_months(now, -3)
    if period == "year":
        return _shift_months(now, -12)
    return _shift_months(now, -1)


def _change(cur, prev) -> Decimal:
    cur, prev = D(cur), D(prev)
    if prev <= 0:
        return Decimal("0.0")
    return round1((cur - prev) / prev * 100)


def _counted_orders(db: Session, start: datetime, end: Optional[datetime] = None):
    q = db.query(Order).filter(
        Order.order_date >= start,
        Order.status.notin_(EXCLUDED_CLIENT_REPORT_STATUSES),
    )
    if end is not None:
        q = q.filter(Order.order_date < end)
    return q


def _order_totals(db: Session, start: datetime, end: Optional[datetime] = None) -> Tuple[int, Decimal, Decimal, Decimal, Decimal]:
    q = _counted_orders(db, start, end).with_entities(
        func.count(Order.id),
        func.coalesce(func.sum(Order.total_income), 0),
        func.coalesce(func.sum(Order.actual_cost), 0),
        func.coalesce(func.sum(Order.profit), 0),
        func.avg(Order.margin_percent),
    )
    count, revenue, cost, profit, margin = q.one()
    return int(count or 0), D(revenue), D(cost), D(profit), D(margin)


def _shipped_items(db: Session, start: datetime, end: Optional[datetime] = None) -> Decimal:
    q = (
        db.query(func.coalesce(func.sum(OrderItem.quantity), 0))
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.order_date >= start, Order.status.in_(SHIPPED_STATUSES))
    )
    if end is not None:
        q = q.filter(Order.order_date < end)
    return D(q.scalar())


def get_kpi(db: Session, period: Optional[str] = "month", *, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    start = period_start(period, now)
    prev_start = start - (now - start)

    orders, revenue, cost, profit, margin = _order_totals(db, start)
    prev_orders, prev_revenue, _, prev_profit, _ = _order_totals(db, prev_start, start)
    shipped = _shipped_items(db, start)
    prev_shipped = _shipped_items(db, prev_start, start)

    return {
        "revenue": {"value": money2(revenue), "change": _change(revenue, prev_revenue)},
        "profit": {"value": money2(profit), "change": _change(profit, prev_profit)},
        "cost": {"value": money2(cost)},
        "orders": {"value": orders, "change": _change(orders, prev_orders)},
        "shipped_items": {"value": shipped, "change": _change(shipped, prev_shipped)},
        "margin": {"value": round1(margin)},
        "average_order_value": money2(revenue / orders) if orders else Decimal("0.00"),
        "period": {"from": start, "to": now},
    }


def _bucket_key(when: datetime, group_by: str) -> str:
    d = when.date()
    if group_by == "week":
        # weeks start on Sunday
        return (d - timedelta(days=(d.weekday() + 1) % 7)).isoformat()
    if group_by == "month":
        return f"{d.year:04d}-{d.month:02d}"
    return d.isoformat()


def get_revenue_chart(
    db: Session,
    period: Optional[str] = "month",
    group_by: str = "day",
    *,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    now = now or datetime.utcnow()
    rows = _counted_orders(db, period_start(period, now)).order_by(Order.order_date.asc()).all()

    grouped: Dict[str, Dict[str, Any]] = OrderedDict()
    for o in rows:
        g = grouped.setdefault(_bucket_key(o.order_date, group_by),
                               {"revenue": ZERO, "profit": ZERO, "cost": ZERO, "orders": 0})
        g["revenue"] += D(o.total_income)
        g["profit"] += D(o.profit)
        g["cost"] += D(o.actual_cost)
        g["orders"] += 1

    return [
        {
            "date": key,
            "revenue": money2(g["revenue"]),
            "profit": money2(g["profit"]),
            "cost": money2(g["cost"]),
            "orders": g["orders"],
        }
        for key, g in grouped.items()
    ]


def get_cost_breakdown(db: Session, period: Optional[str] = "month", *, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    now = now or datetime.utcnow()
    rows = (
        db.query(VendorService.type, func.coalesce(func.sum(CostOperation.actual_amount), 0))
        .join(VendorService, VendorService.id == CostOperation.vendor_service_id)
        .filter(CostOperation.operation_date >= period_start(period, now))
        .group_by(VendorService.type)
        .all()
    )
    totals = {t: D(v) for t, v in rows}
    ordered = [t for t in SERVICE_TYPE_LABELS if t in totals] + sorted(t for t in totals if t not in SERVICE_TYPE_LABELS)
    return [
        {"type": t, "label": SERVICE_TYPE_LABELS.get(t, t), "value": money2(totals[t])}
        for t in ordered
    ]


def get_top_clients(
    db: Session,
    period: Optional[str] = "month",
    limit: int = 10,
    *,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    now = now or datetime.utcnow()
    rows = (
        _counted_orders(db, period_start(period, now))
        .join(Client, Client.id == Order.client_id)
        .with_entities(
            Client.id,
            Client.name,
            Client.company_name,
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_income), 0),
            func.coalesce(func.sum(Order.profit), 0),
        )
        .group_by(Client.id, Client.name, Client.company_name)
        .all()
    )
    out = [
        {
            "id": cid,
            "name": name,
            "company_name": company,
            "orders_count": int(count),
            "revenue": money2(revenue),
            "profit": money2(profit),
        }
        for cid, name, company, count, revenue, profit in rows
    ]
    out.sort(key=lambda r: (-r["profit"], r["id"]))
    return out[:max(int(limit), 0)]


def get_orders_by_status(db: Session) -> List[Dict[str, Any]]:
    counts = dict(db.query(Order.status, func.count(Order.id)).group_by(Order.status).all())
    known = [s for s in ORDER_STATUSES if s in counts]
    return [
        {"status": s, "label": STATUS_LABELS.get(s, s), "count": int(counts[s])}
        for s in known + sorted(s for s in counts if s not in ORDER_STATUSES)
    ]
