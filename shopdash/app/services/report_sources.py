"""Entity fetchers feeding the report engine.

Fetchers read the store and hand back plain, immutable records so the
aggregation layer never touches ORM objects or sessions.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from shopdash.app.core.config import settings
from shopdash.app.models.inventory import MovementType, Product, StockMovement
from shopdash.app.models.sales import Sale, SaleItem
from shopdash.app.models.supplier import Supplier

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# ── Errors ───────────────────────────────────────────────────────────────────


class ReportError(Exception):
    """Base class for typed report failures."""


class FetchError(ReportError):
    """One of the entity queries failed; carries the underlying cause."""

    def __init__(self, entity: str, cause: BaseException) -> None:
        self.entity = entity
        self.cause = cause
        super().__init__(f"Failed to fetch {entity}: {cause}")


# ── Records ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-day window."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"start ({self.start.isoformat()}) is after end ({self.end.isoformat()})"
            )

    @property
    def start_dt(self) -> datetime:
        return _to_dt(self.start)

    @property
    def end_dt_exclusive(self) -> datetime:
        return _to_dt(self.end + timedelta(days=1))


@dataclass(frozen=True)
class ProductSnapshot:
    """Product fields joined onto a sale line or stock movement."""

    name: str
    category_name: str | None
    purchase_price: Decimal


@dataclass(frozen=True)
class ProductRecord:
    id: str
    name: str
    category_id: str | None
    category_name: str | None
    supplier_id: str | None
    supplier_name: str | None
    stock_quantity: int
    min_stock: int
    purchase_price: Decimal
    sale_price: Decimal


@dataclass(frozen=True)
class SupplierRecord:
    id: str
    name: str
    rating: Decimal | None = None
    delivery_time_days: int | None = None


@dataclass(frozen=True)
class SaleItemRecord:
    product_id: str | None
    quantity: int
    subtotal: Decimal
    product: ProductSnapshot | None = None


@dataclass(frozen=True)
class SaleRecord:
    id: str
    created_at: datetime
    total_amount: Decimal
    items: tuple[SaleItemRecord, ...] | None


@dataclass(frozen=True)
class StockMovementRecord:
    id: str
    created_at: datetime
    type: str  # inbound | outbound | adjustment | transfer
    product_id: str | None
    quantity: int
    reason: str
    product: ProductSnapshot | None = None


class ReportSource(Protocol):
    """Read-only access to the four entity sets a report needs."""

    def fetch_products(self) -> list[ProductRecord]: ...

    def fetch_suppliers(self) -> list[SupplierRecord]: ...

    def fetch_stock_movements(
        self, date_range: DateRange, limit: int = ...,
    ) -> list[StockMovementRecord]: ...

    def fetch_sales(self, date_range: DateRange) -> list[SaleRecord]: ...


# ── Helpers ──────────────────────────────────────────────────────────────────


def _to_dt(d: date) -> datetime:
    """Convert a date to start-of-day UTC datetime."""
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def _dec(value: object) -> Decimal:
    return Decimal(str(value)) if value is not None else ZERO


def _opt_id(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


def _snapshot(product: Product | None) -> ProductSnapshot | None:
    if product is None:
        return None
    return ProductSnapshot(
        name=product.name,
        category_name=product.category.name if product.category else None,
        purchase_price=_dec(product.purchase_price),
    )


@contextmanager
def _fetching(entity: str) -> Iterator[None]:
    # Row decoding (enum lookup, Decimal parsing) fails outside SQLAlchemyError
    try:
        yield
    except (SQLAlchemyError, LookupError, ValueError, ArithmeticError) as exc:
        logger.error("Report fetch failed for %s: %s", entity, exc)
        raise FetchError(entity, exc) from exc


# ── SQLAlchemy-backed source ─────────────────────────────────────────────────


class SqlReportSource:
    """``ReportSource`` over a SQLAlchemy session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def fetch_products(self) -> list[ProductRecord]:
        with _fetching("products"):
            rows = (
                self.db.query(Product)
                .options(joinedload(Product.category), joinedload(Product.supplier))
                .order_by(Product.name, Product.sku)
                .all()
            )
            records = [
                ProductRecord(
                    id=str(p.id),
                    name=p.name,
                    category_id=_opt_id(p.category_id),
                    category_name=p.category.name if p.category else None,
                    supplier_id=_opt_id(p.supplier_id),
                    supplier_name=p.supplier.name if p.supplier else None,
                    stock_quantity=int(p.stock_quantity),
                    min_stock=int(p.min_stock),
                    purchase_price=_dec(p.purchase_price),
                    sale_price=_dec(p.sale_price),
                )
                for p in rows
            ]
        logger.debug("Fetched %d products", len(records))
        return records

    def fetch_suppliers(self) -> list[SupplierRecord]:
        with _fetching("suppliers"):
            rows = self.db.query(Supplier).order_by(Supplier.name, Supplier.id).all()
            records = [
                SupplierRecord(
                    id=str(s.id),
                    name=s.name,
                    rating=_dec(s.rating) if s.rating is not None else None,
                    delivery_time_days=s.delivery_time_days,
                )
                for s in rows
            ]
        logger.debug("Fetched %d suppliers", len(records))
        return records

    def fetch_stock_movements(
        self, date_range: DateRange, limit: int = settings.STOCK_MOVEMENT_LIMIT,
    ) -> list[StockMovementRecord]:
        with _fetching("stock_movements"):
            rows = (
                self.db.query(StockMovement)
                .options(joinedload(StockMovement.product).joinedload(Product.category))
                .filter(
                    StockMovement.created_at >= date_range.start_dt,
                    StockMovement.created_at < date_range.end_dt_exclusive,
                )
                .order_by(StockMovement.created_at.desc(), StockMovement.id)
                .limit(limit)
                .all()
            )
            records = [
                StockMovementRecord(
                    id=str(m.id),
                    created_at=m.created_at,
                    type=_movement_type(m.movement_type),
                    product_id=_opt_id(m.product_id),
                    quantity=int(m.quantity),
                    reason=m.reason or "",
                    product=_snapshot(m.product),
                )
                for m in rows
            ]
        logger.debug("Fetched %d stock movements", len(records))
        return records

    def fetch_sales(self, date_range: DateRange) -> list[SaleRecord]:
        with _fetching("sales"):
            rows = (
                self.db.query(Sale)
                .options(
                    selectinload(Sale.items)
                    .joinedload(SaleItem.product)
                    .joinedload(Product.category)
                )
                .filter(
                    Sale.created_at >= date_range.start_dt,
                    Sale.created_at < date_range.end_dt_exclusive,
                )
                .order_by(Sale.created_at, Sale.id)
                .all()
            )
            records = [
                SaleRecord(
                    id=str(s.id),
                    created_at=s.created_at,
                    total_amount=_dec(s.total_amount),
                    items=tuple(
                        SaleItemRecord(
                            product_id=_opt_id(item.product_id),
                            quantity=int(item.quantity),
                            subtotal=_dec(item.subtotal),
                            product=_snapshot(item.product),
                        )
                        for item in s.items
                    ),
                )
                for s in rows
            ]
        logger.debug("Fetched %d sales", len(records))
        return records


def _movement_type(value: MovementType | str) -> str:
    raw = value.value if isinstance(value, MovementType) else str(value)
    return raw.lower()
