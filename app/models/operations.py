# app/models/operations.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from app.db.base import Base


class CostOperation(Base):
    """
    Realized vendor charge against an order (price snapshot from the service).
    """
    __tablename__ = "cost_operations"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False, index=True)
    vendor_service_id = Column(Integer, ForeignKey("vendor_services.id"), nullable=False)

    operation_type = Column(String(20), nullable=False, default="CHARGE")  # CHARGE | REFUND | ADJUSTMENT
    quantity = Column(Numeric(14, 3), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    calculated_amount = Column(Numeric(14, 2), nullable=False)
    actual_amount = Column(Numeric(14, 2), nullable=False)

    description = Column(Text, nullable=True)
    operation_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    order = relationship("Order", back_populates="cost_operations")
    vendor = relationship("Vendor", back_populates="cost_operations")
    vendor_service = relationship("VendorService")


class IncomeOperation(Base):
    """
    Client invoice for an order; paid_amount accumulates payments.
    """
    __tablename__ = "income_operations"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)

    invoice_amount = Column(Numeric(14, 2), nullable=False)
    paid_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    payment_method = Column(String(30), nullable=True)
    payment_date = Column(DateTime, nullable=True)

    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    order = relationship("Order", back_populates="income_operations")
    client = relationship("Client")
