"""Pydantic response schemas for the inventory & sales report."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Snapshot(BaseModel):
    """Base for report parts; instances are read-only once built."""

    model_config = ConfigDict(frozen=True)


# ── Placeholder-aware metric ─────────────────────────────────────────────────

class Computed(_Snapshot):
    status: Literal["computed"] = "computed"
    value: Decimal


class NotAvailable(_Snapshot):
    status: Literal["not_available"] = "not_available"
    reason: str


Metric = Annotated[Union[Computed, NotAvailable], Field(discriminator="status")]


# ── Category Distribution ────────────────────────────────────────────────────

class CategoryDistribution(_Snapshot):
    name: str
    product_count: int
    total_value: Decimal
    percentage: Decimal
    average_margin_percent: Decimal
    color_index: int
    color: str


# ── Top Selling / Profitability ──────────────────────────────────────────────

class TopSellingProduct(_Snapshot):
    product_id: str | None
    name: str
    category: str
    units_sold: int
    revenue: Decimal
    profit: Decimal
    margin_percent: Decimal
    trend: Metric


class ProfitabilityEntry(_Snapshot):
    product_id: str | None
    product: str
    category: str
    units_sold: int
    revenue: Decimal
    estimated_cost: Decimal
    avg_unit_price: Decimal
    avg_unit_cost: Decimal
    per_unit_profit: Decimal
    margin_percent: Decimal
    total_profit: Decimal


# ── Suppliers ────────────────────────────────────────────────────────────────

class SupplierPerformance(_Snapshot):
    id: str
    name: str
    status: Literal["excellent", "good", "average"]
    quality_rating: Metric
    average_delivery_days: Metric
    total_orders: Metric
    total_value: Metric
    on_time_delivery_percent: Metric


# ── Stock Movements ──────────────────────────────────────────────────────────

class StockMovementView(_Snapshot):
    id: str
    created_at: datetime
    type: Literal["inbound", "outbound", "adjustment", "transfer"]
    product: str
    quantity: int
    direction: Literal["in", "out", "none"]
    estimated_value: Decimal
    reason: str


# ── Sales Trends ─────────────────────────────────────────────────────────────

class SalesTrendPoint(_Snapshot):
    period: str
    sale_count: int
    revenue: Decimal
    units: int
    estimated_profit: Decimal


# ── Report ───────────────────────────────────────────────────────────────────

class ReportData(_Snapshot):
    from_date: str
    to_date: str
    generated_at: datetime

    total_products: int
    total_inventory_value: Decimal
    low_stock_count: int
    out_of_stock_count: int
    normal_stock_count: int
    supplier_count: int
    category_count: int
    average_margin_percent: Decimal
    period_revenue: Decimal
    sale_count: int

    top_selling_products: tuple[TopSellingProduct, ...]
    category_distribution: tuple[CategoryDistribution, ...]
    supplier_performance: tuple[SupplierPerformance, ...]
    stock_movements: tuple[StockMovementView, ...]
    profitability_analysis: tuple[ProfitabilityEntry, ...]
    sales_trends: tuple[SalesTrendPoint, ...]
