"""Pure aggregation over fetched report records.

Every function here is a synchronous fold over in-memory records: no I/O,
no session access. Divisions are guarded so a zero denominator yields
``Decimal("0")``.

Known limitation: estimated cost uses the product's *current* purchase
price, not the price in effect when the sale happened. Products whose
purchase price changed after a sale get a skewed cost basis.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from shopdash.app.core.config import settings
from shopdash.app.schemas.reports import (
    CategoryDistribution,
    Computed,
    NotAvailable,
    ProfitabilityEntry,
    SalesTrendPoint,
    StockMovementView,
    SupplierPerformance,
    TopSellingProduct,
)
from shopdash.app.services.report_sources import (
    ProductRecord,
    ReportError,
    SaleItemRecord,
    SaleRecord,
    StockMovementRecord,
    SupplierRecord,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
PCT_Q = Decimal("0.1")
MONEY_Q = Decimal("0.01")

# Chart palette, assigned by rank so re-renders keep their colours
CATEGORY_PALETTE: tuple[str, ...] = (
    "#3B82F6",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#EC4899",
    "#6366F1",
    "#14B8A6",
)

UNKNOWN_PRODUCT_KEY = "unknown"
MOVEMENT_TYPES = frozenset({"inbound", "outbound", "adjustment", "transfer"})

NO_TREND = NotAvailable(reason="no prior-period comparison is computed")
NO_ORDER_HISTORY = NotAvailable(reason="purchase-order history is not tracked")
NOT_RATED = NotAvailable(reason="supplier has not been rated")
NO_DELIVERY_TIME = NotAvailable(reason="delivery time not recorded")


class AggregationError(ReportError):
    """A record violated the shape the aggregators rely on."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


@dataclass(frozen=True)
class FallbackLabels:
    """Display labels for missing relations."""

    uncategorized: str = "Uncategorized"
    unknown_product: str = "Unknown"
    unavailable_category: str = "Unavailable"


DEFAULT_LABELS = FallbackLabels()


# ── Helpers ──────────────────────────────────────────────────────────────────


def _pct(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator <= ZERO:
        return ZERO.quantize(PCT_Q)
    return (numerator / denominator * HUNDRED).quantize(PCT_Q, rounding=ROUND_HALF_UP)


def _per_unit(amount: Decimal, units: int) -> Decimal:
    if units <= 0:
        return ZERO.quantize(MONEY_Q)
    return (amount / units).quantize(MONEY_Q, rounding=ROUND_HALF_UP)


def margin_percent(product: ProductRecord) -> Decimal:
    """Unrounded margin over sale price; 0 when the product has no sale price."""
    if product.sale_price <= ZERO:
        return ZERO
    return (product.sale_price - product.purchase_price) / product.sale_price * HUNDRED


def inventory_value(product: ProductRecord) -> Decimal:
    return product.purchase_price * product.stock_quantity


# ── Inventory Summary ────────────────────────────────────────────────────────


def total_inventory_value(products: Iterable[ProductRecord]) -> Decimal:
    return sum((inventory_value(p) for p in products), ZERO)


def average_margin_percent(products: Sequence[ProductRecord]) -> Decimal:
    if not products:
        return ZERO.quantize(PCT_Q)
    total = sum((margin_percent(p) for p in products), ZERO)
    return (total / len(products)).quantize(PCT_Q, rounding=ROUND_HALF_UP)


def count_categories(products: Iterable[ProductRecord]) -> int:
    """Distinct real categories referenced by products (the fallback bucket is not one)."""
    return len({
        p.category_id if p.category_id is not None else p.category_name
        for p in products
        if p.category_id is not None or p.category_name is not None
    })


# ── Category Distribution ────────────────────────────────────────────────────


@dataclass
class _CategoryBucket:
    count: int = 0
    value: Decimal = ZERO
    margin_sum: Decimal = ZERO


def aggregate_categories(
    products: Iterable[ProductRecord],
    labels: FallbackLabels = DEFAULT_LABELS,
) -> list[CategoryDistribution]:
    """Inventory value per category, ranked by value with rank-stable colours."""
    buckets: dict[str, _CategoryBucket] = {}
    total_value = ZERO

    for p in products:
        name = p.category_name if p.category_name is not None else labels.uncategorized
        bucket = buckets.setdefault(name, _CategoryBucket())
        value = inventory_value(p)
        bucket.count += 1
        bucket.value += value
        bucket.margin_sum += margin_percent(p)
        total_value += value

    ranked = sorted(buckets.items(), key=lambda kv: kv[1].value, reverse=True)

    result: list[CategoryDistribution] = []
    for position, (name, bucket) in enumerate(ranked):
        color_index = position % len(CATEGORY_PALETTE)
        result.append(CategoryDistribution(
            name=name,
            product_count=bucket.count,
            total_value=bucket.value,
            percentage=_pct(bucket.value, total_value),
            average_margin_percent=(bucket.margin_sum / bucket.count).quantize(
                PCT_Q, rounding=ROUND_HALF_UP,
            ),
            color_index=color_index,
            color=CATEGORY_PALETTE[color_index],
        ))
    return result


# ── Product-Sales Ledger ─────────────────────────────────────────────────────


@dataclass
class LedgerEntry:
    product_id: str | None
    name: str
    category: str
    units_sold: int = 0
    revenue: Decimal = ZERO
    estimated_cost: Decimal = ZERO

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.estimated_cost


@dataclass
class SalesLedger:
    """Per-product accumulator plus the authoritative period revenue."""

    entries: dict[str, LedgerEntry] = field(default_factory=dict)
    period_revenue: Decimal = ZERO
    sale_count: int = 0
    unresolved_items: int = 0


def _sale_items(sale: SaleRecord) -> tuple[SaleItemRecord, ...]:
    if sale.items is None:
        raise AggregationError(f"sale {sale.id} has no items collection")
    return sale.items


def build_sales_ledger(
    sales: Iterable[SaleRecord],
    labels: FallbackLabels = DEFAULT_LABELS,
) -> SalesLedger:
    """Fold sale lines into a per-product ledger.

    Lines whose product join failed are still counted under a fallback
    name with zero cost, so ``units_sold`` reconciles with the sales.
    """
    ledger = SalesLedger()

    for sale in sales:
        items = _sale_items(sale)
        ledger.period_revenue += sale.total_amount
        ledger.sale_count += 1

        for item in items:
            key = item.product_id if item.product_id is not None else UNKNOWN_PRODUCT_KEY
            entry = ledger.entries.get(key)
            if entry is None:
                if item.product is not None:
                    category = (
                        item.product.category_name
                        if item.product.category_name is not None
                        else labels.uncategorized
                    )
                    entry = LedgerEntry(item.product_id, item.product.name, category)
                else:
                    entry = LedgerEntry(
                        item.product_id, labels.unknown_product, labels.unavailable_category,
                    )
                ledger.entries[key] = entry

            entry.units_sold += item.quantity
            entry.revenue += item.subtotal
            if item.product is not None:
                entry.estimated_cost += item.product.purchase_price * item.quantity
            else:
                ledger.unresolved_items += 1

    if ledger.unresolved_items:
        logger.warning(
            "%d sale line(s) reference missing products; counted at zero cost",
            ledger.unresolved_items,
        )
    return ledger


# ── Rankers ──────────────────────────────────────────────────────────────────


def rank_top_selling(
    ledger: SalesLedger, limit: int = settings.TOP_SELLING_LIMIT,
) -> list[TopSellingProduct]:
    ranked = sorted(ledger.entries.values(), key=lambda e: e.revenue, reverse=True)
    return [
        TopSellingProduct(
            product_id=e.product_id,
            name=e.name,
            category=e.category,
            units_sold=e.units_sold,
            revenue=e.revenue,
            profit=e.profit,
            margin_percent=_pct(e.profit, e.revenue),
            trend=NO_TREND,
        )
        for e in ranked[:limit]
    ]


def rank_profitability(
    ledger: SalesLedger, limit: int = settings.PROFITABILITY_LIMIT,
) -> list[ProfitabilityEntry]:
    ranked = sorted(ledger.entries.values(), key=lambda e: e.profit, reverse=True)
    return [
        ProfitabilityEntry(
            product_id=e.product_id,
            product=e.name,
            category=e.category,
            units_sold=e.units_sold,
            revenue=e.revenue,
            estimated_cost=e.estimated_cost,
            avg_unit_price=_per_unit(e.revenue, e.units_sold),
            avg_unit_cost=_per_unit(e.estimated_cost, e.units_sold),
            per_unit_profit=_per_unit(e.profit, max(e.units_sold, 1)),
            margin_percent=_pct(e.profit, e.revenue),
            total_profit=e.profit,
        )
        for e in ranked[:limit]
    ]


# ── Stock Alerts ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StockAlerts:
    out_of_stock: int
    low_stock: int
    normal: int

    @property
    def total(self) -> int:
        return self.out_of_stock + self.low_stock + self.normal


def stock_class(product: ProductRecord) -> str:
    if product.stock_quantity == 0:
        return "out_of_stock"
    if product.stock_quantity <= product.min_stock:
        return "low_stock"
    return "normal"


def classify_stock(products: Iterable[ProductRecord]) -> StockAlerts:
    counts = {"out_of_stock": 0, "low_stock": 0, "normal": 0}
    for p in products:
        counts[stock_class(p)] += 1
    return StockAlerts(
        out_of_stock=counts["out_of_stock"],
        low_stock=counts["low_stock"],
        normal=counts["normal"],
    )


# ── Stock Movements ──────────────────────────────────────────────────────────


def _direction(quantity: int) -> str:
    if quantity > 0:
        return "in"
    if quantity < 0:
        return "out"
    return "none"


def format_movements(
    movements: Iterable[StockMovementRecord],
    labels: FallbackLabels = DEFAULT_LABELS,
    limit: int = settings.STOCK_MOVEMENT_LIMIT,
) -> list[StockMovementView]:
    """Newest-first display rows, capped at *limit*.

    The cap bounds payload size for the dashboard; it is not a correctness rule.
    """
    ordered = sorted(movements, key=lambda m: m.created_at, reverse=True)
    views: list[StockMovementView] = []
    for m in ordered[:limit]:
        if m.type not in MOVEMENT_TYPES:
            raise AggregationError(f"stock movement {m.id} has unknown type {m.type!r}")
        if m.product is not None:
            label = m.product.name
            value = m.product.purchase_price * abs(m.quantity)
        else:
            label = labels.unknown_product
            value = ZERO
        views.append(StockMovementView(
            id=m.id,
            created_at=m.created_at,
            type=m.type,
            product=label,
            quantity=m.quantity,
            direction=_direction(m.quantity),
            estimated_value=value,
            reason=m.reason,
        ))
    return views


# ── Suppliers ────────────────────────────────────────────────────────────────


def supplier_status(rating: Decimal | None) -> str:
    if rating is not None and rating >= 4:
        return "excellent"
    if rating is not None and rating >= 3:
        return "good"
    return "average"


def summarize_suppliers(suppliers: Iterable[SupplierRecord]) -> list[SupplierPerformance]:
    # Order totals and on-time rate stay NotAvailable until purchase-order
    # history is recorded per supplier.
    return [
        SupplierPerformance(
            id=s.id,
            name=s.name,
            status=supplier_status(s.rating),
            quality_rating=Computed(value=s.rating) if s.rating is not None else NOT_RATED,
            average_delivery_days=(
                Computed(value=Decimal(s.delivery_time_days))
                if s.delivery_time_days is not None
                else NO_DELIVERY_TIME
            ),
            total_orders=NO_ORDER_HISTORY,
            total_value=NO_ORDER_HISTORY,
            on_time_delivery_percent=NO_ORDER_HISTORY,
        )
        for s in suppliers
    ]


# ── Sales Trends ─────────────────────────────────────────────────────────────


@dataclass
class _TrendBucket:
    sale_count: int = 0
    revenue: Decimal = ZERO
    units: int = 0
    line_revenue: Decimal = ZERO
    estimated_cost: Decimal = ZERO


def aggregate_sales_trends(sales: Iterable[SaleRecord]) -> list[SalesTrendPoint]:
    """Monthly breakdown of the window's sales (historical, not a forecast)."""
    buckets: dict[str, _TrendBucket] = {}
    for sale in sales:
        items = _sale_items(sale)
        bucket = buckets.setdefault(sale.created_at.strftime("%Y-%m"), _TrendBucket())
        bucket.sale_count += 1
        bucket.revenue += sale.total_amount
        for item in items:
            bucket.units += item.quantity
            bucket.line_revenue += item.subtotal
            if item.product is not None:
                bucket.estimated_cost += item.product.purchase_price * item.quantity

    return [
        SalesTrendPoint(
            period=period,
            sale_count=b.sale_count,
            revenue=b.revenue,
            units=b.units,
            estimated_profit=b.line_revenue - b.estimated_cost,
        )
        for period, b in sorted(buckets.items())
    ]
