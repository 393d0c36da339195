# app/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All CRM tables (users, clients, orders, ledger, etc.) inherit from this."""
    pass
