# app/services/pnl_reports.py
"""
Read-only P&L aggregation. Nothing here writes to the database.
"""
from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session, joinedload, selectinload

from app.models.client import Client
from app.models.operations import CostOperation
from app.models.order import Order
from app.models.vendor import Vendor
from app.services.money import D, money2, round3, margin_percent

ZERO = Decimal("0")

# orders report buckets; everything else lands in other_cost
COST_BUCKETS = ("STORAGE", "PICKING", "PACKING", "SHIPPING")
OTHER_BUCKET_TYPES = ("RECEIVING", "LABELING", "RETURNS", "OTHER")

EXCLUDED_CLIENT_REPORT_STATUSES = ("CANCELLED", "RETURNED")

ORDERS_REPORT_COLUMNS = [
    ("order_number", "Order number"),
    ("order_date", "Order date"),
    ("status", "Status"),
    ("client_name", "Client"),
    ("client_company", "Company"),
    ("manager", "Manager"),
    ("items_count", "Items"),
    ("total_weight", "Total weight"),
    ("revenue", "Revenue"),
    ("storage_cost", "Storage"),
    ("picking_cost", "Picking"),
    ("packing_cost", "Packing"),
    ("shipping_cost", "Shipping"),
    ("other_cost", "Other"),
    ("total_cost", "Total cost"),
    ("profit", "Profit"),
    ("margin_percent", "Margin %"),
]

CLIENTS_REPORT_COLUMNS = [
    ("id", "ID"),
    ("name", "Name"),
    ("company_name", "Company"),
    ("email", "Email"),
    ("phone", "Phone"),
    ("is_active", "Active"),
    ("orders_count", "Orders"),
    ("revenue", "Revenue"),
    ("cost", "Cost"),
    ("profit", "Profit"),
    ("margin_percent", "Margin %"),
]


def _per_item(value: Decimal, count: int) -> Decimal:
    return money2(value / count) if count > 0 else Decimal("0.00")


def get_order_pnl(db: Session, ref: str) -> Dict[str, Any]:
    q = db.query(Order).options(
        joinedload(Order.client),
        selectinload(Order.items),
        selectinload(Order.cost_operations).joinedload(CostOperation.vendor),
        selectinload(Order.cost_operations).joinedload(CostOperation.vendor_service),
        selectinload(Order.income_operations),
    )
    ref = (ref or "").strip()
    order = q.filter(Order.id == int(ref)).first() if ref.isdigit() else q.filter(Order.order_number == ref).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    cost_details: List[Dict[str, Any]] = []
    for op in order.cost_operations:
        svc = op.vendor_service
        cost_details.append({
            "id": op.id,
            "vendor": op.vendor.name if op.vendor else None,
            "service": svc.name if svc else None,
            "type": svc.type if svc else "OTHER",
            "unit": svc.unit if svc else None,
            "quantity": D(op.quantity),
            "unit_price": money2(op.unit_price),
            "calculated_amount": money2(op.calculated_amount),
            "actual_amount": money2(op.actual_amount),
            "date": op.operation_date,
        })

    by_type: Dict[str, Dict[str, Any]] = OrderedDict()
    for c in cost_details:
        g = by_type.setdefault(c["type"], {"amount": ZERO, "items": []})
        g["amount"] = money2(g["amount"] + c["actual_amount"])
        g["items"].append(c)

    income_details = [
        {
            "id": op.id,
            "invoice_amount": money2(op.invoice_amount),
            "paid_amount": money2(op.paid_amount),
            "payment_method": op.payment_method,
            "payment_date": op.payment_date,
        }
        for op in order.income_operations
    ]

    total_items = sum(int(i.quantity or 0) for i in order.items)
    total_cost = money2(sum((c["actual_amount"] for c in cost_details), ZERO))
    total_income = money2(sum((i["paid_amount"] for i in income_details), ZERO))
    invoiced = money2(sum((i["invoice_amount"] for i in income_details), ZERO))
    profit = money2(total_income - total_cost)

    return {
        "order": {
            "id": order.id,
            "order_number": order.order_number,
            "status": order.status,
            "order_date": order.order_date,
            "client": order.client.name if order.client else None,
        },
        "items": [
            {
                "sku": i.sku,
                "name": i.name,
                "quantity": i.quantity,
                "weight": D(i.weight),
                "volume": D(i.volume),
            }
            for i in order.items
        ],
        "income": {
            "total": total_income,
            "invoiced": invoiced,
            "details": income_details,
        },
        "costs": {
            "total": total_cost,
            "by_type": by_type,
            "details": cost_details,
        },
        "pnl": {
            "revenue": total_income,
            "cost": total_cost,
            "profit": profit,
            "margin_percent": margin_percent(profit, total_income),
        },
        "unit_economics": {
            "total_items": total_items,
            "revenue_per_item": _per_item(total_income, total_items),
            "cost_per_item": _per_item(total_cost, total_items),
            "profit_per_item": _per_item(profit, total_items),
        },
    }


def _date_window(query, col, date_from: Optional[datetime], date_to: Optional[datetime]):
    if date_from:
        query = query.filter(col >= date_from)
    if date_to:
        query = query.filter(col <= date_to)
    return query


def get_orders_report(
    db: Session,
    *,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    client_id: Optional[int] = None,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    q = db.query(Order).options(
        joinedload(Order.client),
        joinedload(Order.manager),
        selectinload(Order.items),
        selectinload(Order.cost_operations).joinedload(CostOperation.vendor_service),
    )
    q = _date_window(q, Order.order_date, date_from, date_to)
    if client_id:
        q = q.filter(Order.client_id == client_id)
    if status:
        q = q.filter(Order.status == status)
    orders = q.order_by(Order.order_date.desc(), Order.id.desc()).all()

    rows: List[Dict[str, Any]] = []
    for o in orders:
        costs: Dict[str, Decimal] = {}
        for op in o.cost_operations:
            t = op.vendor_service.type if op.vendor_service else "OTHER"
            costs[t] = costs.get(t, ZERO) + D(op.actual_amount)

        row = {
            "id": o.id,
            "order_number": o.order_number,
            "order_date": o.order_date.date().isoformat() if o.order_date else None,
            "status": o.status,
            "client_name": o.client.name if o.client else "",
            "client_company": (o.client.company_name if o.client else None) or "",
            "manager": o.manager.full_name if o.manager else "",
            "items_count": sum(int(i.quantity or 0) for i in o.items),
            "total_weight": round3(sum((D(i.weight) * D(i.quantity) for i in o.items), ZERO)),
            "revenue": money2(o.total_income),
        }
        for bucket in COST_BUCKETS:
            row[f"{bucket.lower()}_cost"] = money2(costs.get(bucket, ZERO))
        row["other_cost"] = money2(sum((costs.get(t, ZERO) for t in OTHER_BUCKET_TYPES), ZERO))
        row["total_cost"] = money2(o.actual_cost)
        row["profit"] = money2(o.profit)
        row["margin_percent"] = money2(o.margin_percent)
        rows.append(row)

    n = len(rows)
    summary = {
        "total_orders": n,
        "total_revenue": money2(sum((r["revenue"] for r in rows), ZERO)),
        "total_cost": money2(sum((r["total_cost"] for r in rows), ZERO)),
        "total_profit": money2(sum((r["profit"] for r in rows), ZERO)),
        "average_margin": money2(sum((r["margin_percent"] for r in rows), ZERO) / n) if n else Decimal("0.00"),
    }
    return {"orders": rows, "summary": summary}


def get_vendors_report(
    db: Session,
    *,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> Dict[str, Any]:
    vendors = db.query(Vendor).options(selectinload(Vendor.services)).order_by(Vendor.id.asc()).all()

    ops_q = _date_window(db.query(CostOperation), CostOperation.operation_date, date_from, date_to)
    spent: Dict[int, Decimal] = {}
    counts: Dict[int, int] = {}
    for op in ops_q.all():
        spent[op.vendor_id] = spent.get(op.vendor_id, ZERO) + D(op.actual_amount)
        counts[op.vendor_id] = counts.get(op.vendor_id, 0) + 1

    rows = [
        {
            "id": v.id,
            "name": v.name,
            "legal_name": v.legal_name,
            "status": v.status,
            "services_count": len(v.services),
            "total_spent": money2(spent.get(v.id, ZERO)),
            "operations_count": counts.get(v.id, 0),
        }
        for v in vendors
    ]
    rows.sort(key=lambda r: r["total_spent"], reverse=True)

    return {
        "vendors": rows,
        "summary": {
            "total_vendors": len(rows),
            "active_vendors": sum(1 for r in rows if r["status"] == "ACTIVE"),
            "total_spent": money2(sum((r["total_spent"] for r in rows), ZERO)),
        },
    }


def get_clients_report(
    db: Session,
    *,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> Dict[str, Any]:
    clients = db.query(Client).order_by(Client.id.asc()).all()

    oq = db.query(Order).filter(Order.status.notin_(EXCLUDED_CLIENT_REPORT_STATUSES))
    oq = _date_window(oq, Order.order_date, date_from, date_to)
    agg: Dict[int, Dict[str, Any]] = {}
    for o in oq.all():
        a = agg.setdefault(o.client_id, {"count": 0, "revenue": ZERO, "cost": ZERO, "profit": ZERO})
        a["count"] += 1
        a["revenue"] += D(o.total_income)
        a["cost"] += D(o.actual_cost)
        a["profit"] += D(o.profit)

    rows: List[Dict[str, Any]] = []
    for c in clients:
        a = agg.get(c.id, {"count": 0, "revenue": ZERO, "cost": ZERO, "profit": ZERO})
        rows.append({
            "id": c.id,
            "name": c.name,
            "company_name": c.company_name or "",
            "email": c.email or "",
            "phone": c.phone or "",
            "is_active": bool(c.is_active),
            "orders_count": a["count"],
            "revenue": money2(a["revenue"]),
            "cost": money2(a["cost"]),
            "profit": money2(a["profit"]),
            "margin_percent": margin_percent(a["profit"], a["revenue"]),
        })
    rows.sort(key=lambda r: r["profit"], reverse=True)

    return {
        "clients": rows,
        "summary": {
            "total_clients": len(rows),
            "active_clients": sum(1 for r in rows if r["is_active"]),
            "total_revenue": money2(sum((r["revenue"] for r in rows), ZERO)),
            "total_profit": money2(sum((r["profit"] for r in rows), ZERO)),
        },
    }
