# app/api/router.py
from fastapi import APIRouter
from app.api import (
    # Core
    routes_auth,
    routes_users,
    routes_dashboard,

    # Parties
    routes_clients,
    routes_vendors,
    routes_vendor_services,

    # Orders / costing
    routes_orders,
    routes_order_expenses,
    routes_expense_templates,
    routes_cost_operations,
    routes_income_operations,

    # Ledger
    routes_accounts,
    routes_transactions,

    # Warehouse
    routes_warehouses,
    routes_products,
    routes_stock_movements,
    routes_warehouse_tasks,

    # Reports
    routes_reports,
)

api_router = APIRouter()

api_router.include_router(routes_auth.router)
api_router.include_router(routes_users.router)
api_router.include_router(routes_dashboard.router)

api_router.include_router(routes_clients.router)
api_router.include_router(routes_vendors.router)
api_router.include_router(routes_vendor_services.router)

api_router.include_router(routes_orders.router)
api_router.include_router(routes_order_expenses.router)
api_router.include_router(routes_expense_templates.router)
api_router.include_router(routes_cost_operations.router)
api_router.include_router(routes_income_operations.router)

api_router.include_router(routes_accounts.router)
api_router.include_router(routes_transactions.router)

api_router.include_router(routes_warehouses.router)
api_router.include_router(routes_products.router)
api_router.include_router(routes_stock_movements.router)
api_router.include_router(routes_warehouse_tasks.router)

api_router.include_router(routes_reports.router)
