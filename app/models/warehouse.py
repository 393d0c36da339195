# app/models/warehouse.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, Text,
    Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from app.db.base import Base

WAREHOUSE_TYPES = ("MAIN", "TRANSIT", "RETURNS")
WAREHOUSE_STATUSES = ("ACTIVE", "INACTIVE")
LOCATION_TYPES = ("SHELF", "PALLET", "FLOOR", "COLD")
LOCATION_STATUSES = ("FREE", "OCCUPIED", "BLOCKED")
MOVEMENT_TYPES = ("INBOUND", "OUTBOUND", "TRANSFER", "ADJUSTMENT", "WRITE_OFF", "RETURN")
TASK_TYPES = ("RECEIVING", "PICKING", "PACKING", "SHIPPING", "TRANSFER", "INVENTORY")
TASK_STATUSES = ("NEW", "IN_PROGRESS", "COMPLETED", "CANCELLED")
TASK_PRIORITIES = ("LOW", "NORMAL", "HIGH", "URGENT")


class Warehouse(Base):
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), unique=True, nullable=False)
    address = Column(String(500), nullable=True)
    type = Column(String(20), nullable=False, default="MAIN")  # see WAREHOUSE_TYPES
    status = Column(String(20), nullable=False, default="ACTIVE")
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    locations = relationship(
        "StorageLocation",
        back_populates="warehouse",
        cascade="all, delete-orphan",
        order_by="StorageLocation.code",
    )
    tasks = relationship("WarehouseTask", back_populates="warehouse")

    @property
    def locations_count(self) -> int:
        return len(self.locations)

    @property
    def tasks_count(self) -> int:
        return len(self.tasks)


class StorageLocation(Base):
    """
    A cell inside a warehouse. status is FREE / OCCUPIED from the stock it
    holds; BLOCKED is set by hand and survives stock changes.
    """
    __tablename__ = "storage_locations"
    __table_args__ = (
        UniqueConstraint("warehouse_id", "code", name="uq_storage_location_code"),
        Index("ix_storage_locations_status", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    name = Column(String(255), nullable=True)
    type = Column(String(20), nullable=False, default="SHELF")  # see LOCATION_TYPES
    status = Column(String(20), nullable=False, default="FREE")  # see LOCATION_STATUSES

    length = Column(Numeric(10, 3), nullable=True)
    width = Column(Numeric(10, 3), nullable=True)
    height = Column(Numeric(10, 3), nullable=True)
    max_volume = Column(Numeric(12, 4), nullable=True)
    max_weight = Column(Numeric(12, 3), nullable=True)

    zone = Column(String(50), nullable=True)
    row = Column(Integer, nullable=True)
    level = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    warehouse = relationship("Warehouse", back_populates="locations")
    stocks = relationship(
        "ProductStock",
        back_populates="location",
        cascade="all, delete-orphan",
    )


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(100), unique=True, nullable=False)
    barcode = Column(String(100), unique=True, nullable=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)

    unit_weight = Column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    unit_volume = Column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    unit_cost = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    unit_price = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    image_url = Column(String(500), nullable=True)
    min_stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    stocks = relationship(
        "ProductStock",
        back_populates="product",
        cascade="all, delete-orphan",
    )
    movements = relationship("StockMovement", back_populates="product")

    @property
    def total_quantity(self) -> int:
        return sum(s.quantity for s in self.stocks)

    @property
    def total_reserved(self) -> int:
        return sum(s.reserved_qty for s in self.stocks)

    @property
    def total_available(self) -> int:
        return sum(s.available_qty for s in self.stocks)


class ProductStock(Base):
    """
    On-hand quantity of one product batch in one location.
    available_qty is always quantity - reserved_qty.
    batch_number is '' rather than NULL so the unique key holds.
    """
    __tablename__ = "product_stocks"
    __table_args__ = (
        UniqueConstraint("product_id", "location_id", "batch_number", name="uq_product_stock_batch"),
        Index("ix_product_stocks_location_product", "location_id", "product_id"),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("storage_locations.id", ondelete="CASCADE"), nullable=False, index=True)

    quantity = Column(Integer, nullable=False, default=0)
    reserved_qty = Column(Integer, nullable=False, default=0)
    available_qty = Column(Integer, nullable=False, default=0)

    batch_number = Column(String(100), nullable=False, default="")
    expiry_date = Column(DateTime, nullable=True)
    last_movement_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = relationship("Product", back_populates="stocks")
    location = relationship("StorageLocation", back_populates="stocks")


class StockMovement(Base):
    """
    Append-only movement journal. quantity is positive except for
    ADJUSTMENT rows, where it is the signed difference.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_product_time", "product_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    from_location_id = Column(Integer, ForeignKey("storage_locations.id", ondelete="SET NULL"), nullable=True)
    to_location_id = Column(Integer, ForeignKey("storage_locations.id", ondelete="SET NULL"), nullable=True)

    quantity = Column(Integer, nullable=False)
    movement_type = Column(String(20), nullable=False, index=True)  # see MOVEMENT_TYPES

    task_id = Column(Integer, ForeignKey("warehouse_tasks.id", ondelete="SET NULL"), nullable=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    fin_transaction_id = Column(Integer, ForeignKey("fin_transactions.id"), nullable=True)

    batch_number = Column(String(100), nullable=False, default="")
    reason = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    product = relationship("Product", back_populates="movements")
    from_location = relationship("StorageLocation", foreign_keys=[from_location_id])
    to_location = relationship("StorageLocation", foreign_keys=[to_location_id])
    task = relationship("WarehouseTask", back_populates="movements")


class WarehouseTask(Base):
    __tablename__ = "warehouse_tasks"

    id = Column(Integer, primary_key=True, index=True)
    task_number = Column(String(32), unique=True, nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)

    type = Column(String(20), nullable=False, index=True)  # see TASK_TYPES
    status = Column(String(20), nullable=False, default="NEW", index=True)
    priority = Column(String(20), nullable=False, default="NORMAL")
    assigned_to_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    planned_date = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    warehouse = relationship("Warehouse", back_populates="tasks")
    assigned_to = relationship("User")
    items = relationship(
        "TaskItem",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskItem.id",
    )
    movements = relationship("StockMovement", back_populates="task")


class TaskItem(Base):
    __tablename__ = "task_items"

    id = Column(Integer, primary_key=True)
    task_id = Column(Integer, ForeignKey("warehouse_tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)

    expected_qty = Column(Integer, nullable=False, default=0)
    actual_qty = Column(Integer, nullable=False, default=0)
    from_location_id = Column(Integer, ForeignKey("storage_locations.id", ondelete="SET NULL"), nullable=True)
    to_location_id = Column(Integer, ForeignKey("storage_locations.id", ondelete="SET NULL"), nullable=True)

    is_completed = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    task = relationship("WarehouseTask", back_populates="items")
    product = relationship("Product")
