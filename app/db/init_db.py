# app/db/init_db.py
from __future__ import annotations

import argparse
import logging
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import hash_password
from app.db.base import Base
from app.db.session import engine as default_engine

# Import all models so metadata is complete
from app.models import Account, User  # noqa: F401

logger = logging.getLogger(__name__)

# (code, name, type)
DEFAULT_ACCOUNTS = [
    ("41", "Goods", "ASSET"),
    ("60", "Settlements with suppliers", "LIABILITY"),
    ("62", "Settlements with customers", "ASSET"),
    ("90.1", "Revenue", "REVENUE"),
    ("90.2", "Cost of sales", "EXPENSE"),
    ("91.1", "Other income", "REVENUE"),
    ("91.2", "Other expenses", "EXPENSE"),
    ("99", "Profit and loss", "EQUITY"),
    ("50", "Cash", "ASSET"),
    ("51", "Bank accounts", "ASSET"),
    ("80", "Authorized capital", "EQUITY"),
]


def seed_accounts(db: Session) -> int:
    """
    Insert ONLY missing chart-of-accounts codes; safe to run multiple times.
    """
    existing = {code for (code,) in db.query(Account.code).all()}
    added = 0
    for code, name, acc_type in DEFAULT_ACCOUNTS:
        if code in existing:
            continue
        db.add(Account(
            code=code,
            name=name,
            type=acc_type,
            currency=settings.DEFAULT_CURRENCY,
        ))
        added += 1
    return added


def seed_admin(db: Session) -> bool:
    email = settings.ADMIN_EMAIL.strip().lower()
    if not email or db.query(User.id).filter(User.email == email).first():
        return False
    db.add(User(
        email=email,
        password_hash=hash_password(settings.ADMIN_PASSWORD),
        first_name="Admin",
        last_name="",
        role="ADMIN",
        is_active=True,
    ))
    return True


def run(fresh: bool = False, *, bind: Optional[Engine] = None, seed: bool = True) -> None:
    engine = bind or default_engine

    if fresh:
        logger.warning("Dropping ALL tables (dev only)")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    logger.info("Tables: %s", sorted(inspect(engine).get_table_names()))

    if not seed:
        return

    try:
        with Session(engine) as db:
            added = seed_accounts(db)
            admin_created = seed_admin(db)
            db.commit()
            logger.info("Seeded %d accounts%s", added, ", admin user created" if admin_created else "")
    except SQLAlchemyError:
        logger.exception("Seeding failed")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    parser = argparse.ArgumentParser(
        description="Initialize DB (create tables, seed chart of accounts and admin user).")
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Drop & recreate all tables (DEV ONLY).",
    )
    args = parser.parse_args()
    run(fresh=args.fresh)
