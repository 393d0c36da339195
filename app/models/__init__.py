# app/models/__init__.py
from .user import User
from .client import Client
from .vendor import Vendor, VendorService, PriceHistory
from .order import Order, OrderItem
from .order_expense import OrderExpense, ExpenseTemplate, ExpenseTemplateItem
from .operations import CostOperation, IncomeOperation
from .ledger import Account, FinTransaction
from .warehouse import (
    Warehouse, StorageLocation, Product, ProductStock, StockMovement, WarehouseTask, TaskItem
)

__all__ = [
    "User",
    "Client",
    "Vendor",
    "VendorService",
    "PriceHistory",
    "Order",
    "OrderItem",
    "OrderExpense",
    "ExpenseTemplate",
    "ExpenseTemplateItem",
    "CostOperation",
    "IncomeOperation",
    "Account",
    "FinTransaction",
    "Warehouse",
    "StorageLocation",
    "Product",
    "ProductStock",
    "StockMovement",
    "WarehouseTask",
    "TaskItem",
]
