# app/schemas/warehouse.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.types import Money, Number

WarehouseType = Literal["MAIN", "TRANSIT", "RETURNS"]
WarehouseStatus = Literal["ACTIVE", "INACTIVE"]
LocationType = Literal["SHELF", "PALLET", "FLOOR", "COLD"]
LocationStatus = Literal["FREE", "OCCUPIED", "BLOCKED"]
MovementType = Literal["INBOUND", "OUTBOUND", "TRANSFER", "ADJUSTMENT", "WRITE_OFF", "RETURN"]
InboundType = Literal["INBOUND", "RETURN"]
TaskType = Literal["RECEIVING", "PICKING", "PACKING", "SHIPPING", "TRANSFER", "INVENTORY"]
TaskStatus = Literal["NEW", "IN_PROGRESS", "COMPLETED", "CANCELLED"]
TaskPriority = Literal["LOW", "NORMAL", "HIGH", "URGENT"]


# ---------------------------------------------------------------------------
# warehouses / locations
# ---------------------------------------------------------------------------

class WarehouseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=50)
    address: str | None = None
    type: WarehouseType = "MAIN"
    description: str | None = None


class WarehouseUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    code: str | None = Field(None, min_length=1, max_length=50)
    address: str | None = None
    type: WarehouseType | None = None
    status: WarehouseStatus | None = None
    description: str | None = None


class LocationCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str | None = None
    type: LocationType = "SHELF"
    length: Number | None = Field(None, ge=0)
    width: Number | None = Field(None, ge=0)
    height: Number | None = Field(None, ge=0)
    max_volume: Number | None = Field(None, ge=0)
    max_weight: Number | None = Field(None, ge=0)
    zone: str | None = None
    row: int | None = None
    level: int | None = None


class LocationUpdate(BaseModel):
    code: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = None
    type: LocationType | None = None
    status: LocationStatus | None = None
    length: Number | None = Field(None, ge=0)
    width: Number | None = Field(None, ge=0)
    height: Number | None = Field(None, ge=0)
    max_volume: Number | None = Field(None, ge=0)
    max_weight: Number | None = Field(None, ge=0)
    zone: str | None = None
    row: int | None = None
    level: int | None = None


class WarehouseRef(BaseModel):
    id: int
    name: str
    code: str

    model_config = ConfigDict(from_attributes=True)


class LocationOut(BaseModel):
    id: int
    warehouse_id: int
    code: str
    name: str | None
    type: str
    status: str
    length: Number | None
    width: Number | None
    height: Number | None
    max_volume: Number | None
    max_weight: Number | None
    zone: str | None
    row: int | None
    level: int | None

    model_config = ConfigDict(from_attributes=True)


class LocationRef(BaseModel):
    id: int
    code: str
    warehouse: WarehouseRef | None = None

    model_config = ConfigDict(from_attributes=True)


class WarehouseOut(BaseModel):
    id: int
    name: str
    code: str
    address: str | None
    type: str
    status: str
    description: str | None
    locations_count: int = 0
    tasks_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WarehouseDetailOut(WarehouseOut):
    locations: List[LocationOut] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# products / stock
# ---------------------------------------------------------------------------

class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=100)
    barcode: str | None = Field(None, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str | None = None
    unit_weight: Number = Field(Decimal("0"), ge=0)
    unit_volume: Number = Field(Decimal("0"), ge=0)
    unit_cost: Money = Field(Decimal("0"), ge=0)
    unit_price: Money = Field(Decimal("0"), ge=0)
    image_url: str | None = None
    min_stock: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    sku: str | None = Field(None, min_length=1, max_length=100)
    barcode: str | None = Field(None, max_length=100)
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = None
    unit_weight: Number | None = Field(None, ge=0)
    unit_volume: Number | None = Field(None, ge=0)
    unit_cost: Money | None = Field(None, ge=0)
    unit_price: Money | None = Field(None, ge=0)
    image_url: str | None = None
    min_stock: int | None = Field(None, ge=0)
    is_active: bool | None = None


class ProductRef(BaseModel):
    id: int
    sku: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class StockOut(BaseModel):
    id: int
    product_id: int
    location_id: int
    quantity: int
    reserved_qty: int
    available_qty: int
    batch_number: str
    expiry_date: datetime | None
    last_movement_at: datetime
    product: ProductRef | None = None
    location: LocationRef | None = None

    model_config = ConfigDict(from_attributes=True)


class ProductOut(BaseModel):
    id: int
    sku: str
    barcode: str | None
    name: str
    description: str | None
    category: str | None
    unit_weight: Number
    unit_volume: Number
    unit_cost: Money
    unit_price: Money
    image_url: str | None
    min_stock: int
    is_active: bool
    total_quantity: int = 0
    total_reserved: int = 0
    total_available: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockAdjust(BaseModel):
    location_id: int
    quantity: int = Field(..., ge=0, description="Counted on-hand quantity")
    reason: str = Field(..., min_length=1)
    batch_number: str | None = None


# ---------------------------------------------------------------------------
# movements
# ---------------------------------------------------------------------------

class InboundIn(BaseModel):
    product_id: int
    to_location_id: int
    quantity: int = Field(..., gt=0)
    movement_type: InboundType = "INBOUND"
    batch_number: str | None = None
    reason: str | None = None


class TransferIn(BaseModel):
    product_id: int
    from_location_id: int
    to_location_id: int
    quantity: int = Field(..., gt=0)
    batch_number: str | None = None
    reason: str | None = None


class WriteOffIn(BaseModel):
    product_id: int
    location_id: int
    quantity: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1)
    batch_number: str | None = None


class TaskRef(BaseModel):
    id: int
    task_number: str
    type: str

    model_config = ConfigDict(from_attributes=True)


class MovementOut(BaseModel):
    id: int
    product_id: int
    from_location_id: int | None
    to_location_id: int | None
    quantity: int
    movement_type: str
    task_id: int | None
    order_id: int | None
    fin_transaction_id: int | None
    batch_number: str
    reason: str | None
    created_by_id: int | None
    created_at: datetime
    product: ProductRef | None = None
    from_location: LocationRef | None = None
    to_location: LocationRef | None = None
    task: TaskRef | None = None

    model_config = ConfigDict(from_attributes=True)


class ProductDetailOut(ProductOut):
    stocks: List[StockOut] = Field(default_factory=list)
    recent_movements: List[MovementOut] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# tasks
# ---------------------------------------------------------------------------

class TaskItemIn(BaseModel):
    product_id: int | None = None
    expected_qty: int = Field(0, ge=0)
    from_location_id: int | None = None
    to_location_id: int | None = None
    notes: str | None = None


class TaskCreate(BaseModel):
    warehouse_id: int
    order_id: int | None = None
    type: TaskType
    priority: TaskPriority = "NORMAL"
    assigned_to_id: int | None = None
    planned_date: datetime | None = None
    notes: str | None = None
    items: List[TaskItemIn] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_to_id: int | None = None
    planned_date: datetime | None = None
    notes: str | None = None


class TaskItemComplete(BaseModel):
    actual_qty: int | None = Field(None, ge=0)
    to_location_id: int | None = None


class TaskCancel(BaseModel):
    reason: str | None = None


class TaskItemOut(BaseModel):
    id: int
    product_id: int | None
    expected_qty: int
    actual_qty: int
    from_location_id: int | None
    to_location_id: int | None
    is_completed: bool
    notes: str | None

    model_config = ConfigDict(from_attributes=True)


class TaskOut(BaseModel):
    id: int
    task_number: str
    warehouse_id: int
    order_id: int | None
    type: str
    status: str
    priority: str
    assigned_to_id: int | None
    planned_date: datetime | None
    started_at: datetime | None
    completed_at: datetime | None
    notes: str | None
    created_at: datetime
    warehouse: WarehouseRef | None = None
    items: List[TaskItemOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class TaskDetailOut(TaskOut):
    movements: List[MovementOut] = Field(default_factory=list)
