"""Service layer for the inventory & sales report.

``generate_report`` runs one request through
``IDLE → FETCHING → AGGREGATING → READY`` (or ``ERROR``) and returns a typed
outcome. It never returns a partially aggregated report.
"""
from __future__ import annotations

import enum
import itertools
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from shopdash.app.core.config import settings
from shopdash.app.core.i18n import translate
from shopdash.app.schemas.reports import ReportData
from shopdash.app.services.report_aggregation import (
    DEFAULT_LABELS,
    AggregationError,
    FallbackLabels,
    aggregate_categories,
    aggregate_sales_trends,
    average_margin_percent,
    build_sales_ledger,
    classify_stock,
    count_categories,
    format_movements,
    rank_profitability,
    rank_top_selling,
    summarize_suppliers,
    total_inventory_value,
)
from shopdash.app.services.report_sources import (
    DateRange,
    FetchError,
    ProductRecord,
    ReportError,
    ReportSource,
    SaleRecord,
    StockMovementRecord,
    SupplierRecord,
)

logger = logging.getLogger(__name__)


# ── State machine ────────────────────────────────────────────────────────────


class ReportState(str, enum.Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    AGGREGATING = "AGGREGATING"
    READY = "READY"
    ERROR = "ERROR"


_TRANSITIONS: dict[ReportState, frozenset[ReportState]] = {
    ReportState.IDLE: frozenset({ReportState.FETCHING}),
    ReportState.FETCHING: frozenset({ReportState.AGGREGATING, ReportState.ERROR}),
    ReportState.AGGREGATING: frozenset({ReportState.READY, ReportState.ERROR}),
    ReportState.READY: frozenset(),
    ReportState.ERROR: frozenset(),
}


class ReportRun:
    """Tracks the lifecycle of a single report request."""

    def __init__(self, request_id: int) -> None:
        self.request_id = request_id
        self.state = ReportState.IDLE

    def advance(self, new_state: ReportState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Report {self.request_id}: illegal transition "
                f"{self.state.value} -> {new_state.value}"
            )
        logger.debug(
            "Report %d: %s -> %s", self.request_id, self.state.value, new_state.value,
        )
        self.state = new_state


@dataclass(frozen=True)
class ReportOutcome:
    request_id: int
    state: ReportState
    data: ReportData | None = None
    error: ReportError | None = None

    @property
    def ok(self) -> bool:
        return self.state is ReportState.READY


_request_ids = itertools.count(1)
_request_ids_lock = threading.Lock()


def next_request_id() -> int:
    """Monotonically increasing id callers use to detect stale outcomes."""
    with _request_ids_lock:
        return next(_request_ids)


class LatestSnapshot:
    """Caller-side holder that keeps only the newest completed outcome.

    Outcomes can complete out of order when requests overlap; an outcome
    whose ``request_id`` is not newer than the held one is discarded.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcome: ReportOutcome | None = None

    @property
    def current(self) -> ReportOutcome | None:
        return self._outcome

    def offer(self, outcome: ReportOutcome) -> bool:
        with self._lock:
            if self._outcome is not None and outcome.request_id <= self._outcome.request_id:
                logger.debug(
                    "Discarding stale report %d (holding %d)",
                    outcome.request_id, self._outcome.request_id,
                )
                return False
            self._outcome = outcome
            return True


# ── Labels ───────────────────────────────────────────────────────────────────


def labels_for(lang: str) -> FallbackLabels:
    return FallbackLabels(
        uncategorized=translate(lang, "labels.uncategorized"),
        unknown_product=translate(lang, "labels.unknown_product"),
        unavailable_category=translate(lang, "labels.unavailable_category"),
    )


# ── Orchestration ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class _Fetched:
    products: list[ProductRecord]
    suppliers: list[SupplierRecord]
    movements: list[StockMovementRecord]
    sales: list[SaleRecord]


def _fetch_all(source: ReportSource, date_range: DateRange) -> _Fetched:
    # Independent reads; the first failure aborts the rest.
    return _Fetched(
        products=source.fetch_products(),
        suppliers=source.fetch_suppliers(),
        movements=source.fetch_stock_movements(
            date_range, limit=settings.STOCK_MOVEMENT_LIMIT,
        ),
        sales=source.fetch_sales(date_range),
    )


def _assemble(
    fetched: _Fetched,
    date_range: DateRange,
    labels: FallbackLabels,
    generated_at: datetime,
) -> ReportData:
    products = fetched.products
    stock = classify_stock(products)
    ledger = build_sales_ledger(fetched.sales, labels)

    return ReportData(
        from_date=date_range.start.isoformat(),
        to_date=date_range.end.isoformat(),
        generated_at=generated_at,
        total_products=len(products),
        total_inventory_value=total_inventory_value(products),
        low_stock_count=stock.low_stock,
        out_of_stock_count=stock.out_of_stock,
        normal_stock_count=stock.normal,
        supplier_count=len(fetched.suppliers),
        category_count=count_categories(products),
        average_margin_percent=average_margin_percent(products),
        period_revenue=ledger.period_revenue,
        sale_count=ledger.sale_count,
        top_selling_products=rank_top_selling(ledger, settings.TOP_SELLING_LIMIT),
        category_distribution=aggregate_categories(products, labels),
        supplier_performance=summarize_suppliers(fetched.suppliers),
        stock_movements=format_movements(
            fetched.movements, labels, settings.STOCK_MOVEMENT_LIMIT,
        ),
        profitability_analysis=rank_profitability(ledger, settings.PROFITABILITY_LIMIT),
        sales_trends=aggregate_sales_trends(fetched.sales),
    )


def generate_report(
    source: ReportSource,
    date_range: DateRange,
    *,
    request_id: int | None = None,
    labels: FallbackLabels = DEFAULT_LABELS,
    now: datetime | None = None,
) -> ReportOutcome:
    """Fetch, aggregate and assemble one report snapshot."""
    rid = request_id if request_id is not None else next_request_id()
    run = ReportRun(rid)

    run.advance(ReportState.FETCHING)
    try:
        fetched = _fetch_all(source, date_range)
    except FetchError as exc:
        run.advance(ReportState.ERROR)
        logger.error("Report %d aborted while fetching %s: %s", rid, exc.entity, exc.cause)
        return ReportOutcome(request_id=rid, state=run.state, error=exc)

    run.advance(ReportState.AGGREGATING)
    try:
        data = _assemble(fetched, date_range, labels, now or datetime.now(timezone.utc))
    except AggregationError as exc:
        run.advance(ReportState.ERROR)
        logger.error("Report %d failed during aggregation: %s", rid, exc.detail)
        return ReportOutcome(request_id=rid, state=run.state, error=exc)

    run.advance(ReportState.READY)
    logger.info(
        "Report %d ready for %s..%s: %d products, %d sales, revenue %s",
        rid, data.from_date, data.to_date, data.total_products,
        data.sale_count, data.period_revenue,
    )
    return ReportOutcome(request_id=rid, state=run.state, data=data)
