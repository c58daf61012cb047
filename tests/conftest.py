import os
from decimal import Decimal
from typing import Generator

# Keep the module-level engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront import accounts, catalog, config, schemas
from storefront.auth import create_access_token
from storefront.db import Base, enable_sqlite_foreign_keys
from storefront.main import app, get_db


@pytest.fixture(scope="function")
def db_session() -> Generator:
    # Use in-memory SQLite with a single connection
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    enable_sqlite_foreign_keys(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    # Override dependency to use the same session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = override_get_db
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def token_only_cart():
    # Every test starts with the cart fallback off
    config.set_trusted_cart_identity(False)
    yield
    config.set_trusted_cart_identity(False)


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(name="Shopper", role="user", password="secret", email=None):
        counter["n"] += 1
        email = email or f"{name.lower()}{counter['n']}@example.com"
        return accounts.signup(
            db_session,
            schemas.SignupRequest(name=name, email=email, password=password, role=role),
        )

    return _make


@pytest.fixture
def make_product(db_session):
    def _make(name="Widget", price="10.00", stock=5, category="Gadgets", description=None):
        return catalog.add_product(
            db_session,
            schemas.ProductCreate(
                name=name, price=Decimal(price), stock=stock, category=category, description=description
            ),
        )

    return _make


def bearer(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def auth_headers():
    return bearer
