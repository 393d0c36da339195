# app/models/vendor.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, Text, Index
)
from sqlalchemy.orm import relationship
from app.db.base import Base

SERVICE_TYPES = ("STORAGE", "PICKING", "PACKING", "SHIPPING",
                 "RECEIVING", "LABELING", "RETURNS", "OTHER")
SERVICE_UNITS = ("PIECE", "KG", "CUBIC_METER", "ORDER", "PALLET", "DAY", "MONTH")


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    legal_name = Column(String(255), nullable=True)
    inn = Column(String(32), nullable=True)
    kpp = Column(String(32), nullable=True)
    address = Column(String(500), nullable=True)

    contact_name = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    contact_email = Column(String(255), nullable=True)

    status = Column(String(20), nullable=False, default="ACTIVE")  # ACTIVE | INACTIVE | BLOCKED
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    services = relationship(
        "VendorService",
        back_populates="vendor",
        cascade="all, delete-orphan",
    )
    cost_operations = relationship("CostOperation", back_populates="vendor")


class VendorService(Base):
    """
    Priced unit of work offered by a vendor (type x unit x price).
    Every price change appends a PriceHistory row.
    """
    __tablename__ = "vendor_services"
    __table_args__ = (
        Index("ix_vendor_services_vendor_type", "vendor_id", "type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)  # see SERVICE_TYPES
    unit = Column(String(20), nullable=False)  # see SERVICE_UNITS
    price = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    currency = Column(String(8), nullable=False, default="RUB")

    min_quantity = Column(Numeric(14, 3), nullable=True)
    max_quantity = Column(Numeric(14, 3), nullable=True)
    valid_from = Column(DateTime, nullable=False, default=datetime.utcnow)
    valid_to = Column(DateTime, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = relationship("Vendor", back_populates="services")
    price_history = relationship(
        "PriceHistory",
        back_populates="vendor_service",
        cascade="all, delete-orphan",
        order_by="PriceHistory.changed_at.desc()",
    )


class PriceHistory(Base):
    __tablename__ = "price_history"

    id = Column(Integer, primary_key=True)
    vendor_service_id = Column(
        Integer, ForeignKey("vendor_services.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_price = Column(Numeric(14, 2), nullable=False)
    new_price = Column(Numeric(14, 2), nullable=False)
    changed_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    changed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    vendor_service = relationship("VendorService", back_populates="price_history")
