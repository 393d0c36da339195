# Pytest configuration and fixtures
import os

# must be set before app.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import hash_password
from app.db.base import Base
from app.db.init_db import seed_accounts
from app.db.session import get_db
from app.main import app
from app.models import Account, Client, User
from app.utils.jwt import create_access_token

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    future=True,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _schema():
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db, email: str, role: str) -> User:
    u = User(
        email=email,
        password_hash=hash_password("secret123"),
        first_name=role.title(),
        last_name="Tester",
        role=role,
        is_active=True,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def users(db):
    return {
        "ADMIN": _make_user(db, "admin@crm.io", "ADMIN"),
        "MANAGER": _make_user(db, "manager@crm.io", "MANAGER"),
        "ANALYST": _make_user(db, "analyst@crm.io", "ANALYST"),
    }


def _headers(user: User) -> dict:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(users):
    return _headers(users["ADMIN"])


@pytest.fixture
def manager_headers(users):
    return _headers(users["MANAGER"])


@pytest.fixture
def analyst_headers(users):
    return _headers(users["ANALYST"])


@pytest.fixture
def accounts(db):
    seed_accounts(db)
    db.commit()
    return {a.code: a for a in db.query(Account).all()}


@pytest.fixture
def sample_client(db):
    c = Client(name="Acme Retail", company_name="Acme LLC", email="ops@acme.io")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c
