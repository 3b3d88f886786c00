"""Shared test fixtures.

Each test gets a fresh in-memory SQLite database with the full schema, so
tests never pollute each other or a real database.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from shopdash.app.core.database import Base, get_db
from shopdash.app.main import app
from shopdash.app.models.inventory import Category, MovementType, Product, StockMovement
from shopdash.app.models.sales import Sale, SaleItem
from shopdash.app.models.supplier import Supplier


# ─── DB session on a throwaway in-memory database ────────────────────────────


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Yield a session bound to a fresh in-memory SQLite schema."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = Session(bind=engine, autoflush=False)

    yield session

    session.close()
    engine.dispose()


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Catalogue fixtures ──────────────────────────────────────────────────────


@pytest.fixture()
def category(db: Session) -> Category:
    cat = Category(name="Smartphones")
    db.add(cat)
    db.flush()
    return cat


@pytest.fixture()
def accessories(db: Session) -> Category:
    cat = Category(name="Accessories")
    db.add(cat)
    db.flush()
    return cat


@pytest.fixture()
def supplier(db: Session) -> Supplier:
    s = Supplier(name="Mobile Parts Co.", rating=Decimal("4.5"), delivery_time_days=7)
    db.add(s)
    db.flush()
    return s


@pytest.fixture()
def product_a(db: Session, category: Category, supplier: Supplier) -> Product:
    p = Product(
        name="Phone A",
        sku="SKU-A",
        category_id=category.id,
        supplier_id=supplier.id,
        purchase_price=Decimal("80.0000"),
        sale_price=Decimal("100.0000"),
        stock_quantity=50,
        min_stock=5,
    )
    db.add(p)
    db.flush()
    return p


@pytest.fixture()
def product_b(db: Session, accessories: Category) -> Product:
    p = Product(
        name="Cable B",
        sku="SKU-B",
        category_id=accessories.id,
        purchase_price=Decimal("5.0000"),
        sale_price=Decimal("10.0000"),
        stock_quantity=2,
        min_stock=5,
    )
    db.add(p)
    db.flush()
    return p


@pytest.fixture()
def product_uncategorized(db: Session) -> Product:
    p = Product(
        name="Gift Card",
        sku="SKU-GIFT",
        purchase_price=Decimal("0.0000"),
        sale_price=Decimal("0.0000"),
        stock_quantity=0,
        min_stock=0,
    )
    db.add(p)
    db.flush()
    return p


# ─── Transaction helpers ─────────────────────────────────────────────────────


def at(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def make_sale(
    db: Session,
    created_at: datetime,
    total: str,
    lines: list[tuple[object, int, str]],
) -> Sale:
    """Create a sale; each line is ``(product_id | None, quantity, subtotal)``."""
    sale = Sale(total_amount=Decimal(total), created_at=created_at)
    for line_number, (product_id, qty, subtotal) in enumerate(lines, start=1):
        sale.items.append(SaleItem(
            line_number=line_number,
            product_id=product_id,
            quantity=qty,
            unit_price=Decimal(subtotal) / qty,
            subtotal=Decimal(subtotal),
        ))
    db.add(sale)
    db.flush()
    return sale


def make_movement(
    db: Session,
    created_at: datetime,
    product_id: object,
    quantity: int,
    movement_type: MovementType = MovementType.ADJUSTMENT,
    reason: str = "Cycle count",
) -> StockMovement:
    m = StockMovement(
        product_id=product_id,
        movement_type=movement_type,
        quantity=quantity,
        reason=reason,
        created_at=created_at,
    )
    db.add(m)
    db.flush()
    return m
