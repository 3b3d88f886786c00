"""Tests for the SQLAlchemy-backed report fetchers."""
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import text

from shopdash.app.models.inventory import MovementType
from shopdash.app.services.report_sources import DateRange, FetchError, SqlReportSource
from shopdash.app.services.reports import ReportState, generate_report
from shopdash.tests.conftest import at, make_movement, make_sale

MARCH = DateRange(date(2026, 3, 1), date(2026, 3, 31))


class TestDateRange:
    def test_rejects_inverted_range(self):
        with pytest.raises(ValueError):
            DateRange(date(2026, 3, 2), date(2026, 3, 1))

    def test_single_day_range(self):
        r = DateRange(date(2026, 3, 1), date(2026, 3, 1))
        assert r.start_dt == at(2026, 3, 1, 0)
        assert r.end_dt_exclusive == at(2026, 3, 2, 0)


class TestFetchProducts:
    def test_records_carry_joined_names(self, db, product_a, product_b, product_uncategorized):
        records = SqlReportSource(db).fetch_products()
        assert [r.name for r in records] == ["Cable B", "Gift Card", "Phone A"]

        phone = records[2]
        assert phone.id == str(product_a.id)
        assert phone.category_name == "Smartphones"
        assert phone.supplier_name == "Mobile Parts Co."
        assert phone.purchase_price == Decimal("80")
        assert phone.stock_quantity == 50

        gift = records[1]
        assert gift.category_id is None
        assert gift.category_name is None
        assert gift.supplier_name is None

    def test_empty_store(self, db):
        assert SqlReportSource(db).fetch_products() == []


class TestFetchSuppliers:
    def test_rating_and_delivery(self, db, supplier):
        (record,) = SqlReportSource(db).fetch_suppliers()
        assert record.name == "Mobile Parts Co."
        assert record.rating == Decimal("4.5")
        assert record.delivery_time_days == 7

    def test_query_failure_becomes_fetch_error(self, db, supplier):
        db.execute(text("DROP TABLE suppliers"))
        with pytest.raises(FetchError) as exc_info:
            SqlReportSource(db).fetch_suppliers()
        assert exc_info.value.entity == "suppliers"
        assert exc_info.value.cause is not None


class TestFetchSales:
    def test_window_is_inclusive_of_end_day(self, db, product_a):
        make_sale(db, at(2026, 2, 28, 23), "100", [(product_a.id, 1, "100")])
        inside_first = make_sale(db, at(2026, 3, 1, 0), "100", [(product_a.id, 1, "100")])
        inside_last = make_sale(db, at(2026, 3, 31, 23), "200", [(product_a.id, 2, "200")])
        make_sale(db, at(2026, 4, 1, 0), "100", [(product_a.id, 1, "100")])

        records = SqlReportSource(db).fetch_sales(MARCH)
        assert [r.id for r in records] == [str(inside_first.id), str(inside_last.id)]

    def test_items_include_product_snapshot(self, db, product_a, product_b):
        make_sale(db, at(2026, 3, 5), "110", [(product_a.id, 1, "100"), (product_b.id, 1, "10")])

        (record,) = SqlReportSource(db).fetch_sales(MARCH)
        assert record.total_amount == Decimal("110")
        assert len(record.items) == 2
        first = record.items[0]
        assert first.product_id == str(product_a.id)
        assert first.product.name == "Phone A"
        assert first.product.category_name == "Smartphones"
        assert first.product.purchase_price == Decimal("80")

    def test_dangling_product_reference_has_no_snapshot(self, db):
        orphan_id = uuid.uuid4()
        make_sale(db, at(2026, 3, 5), "500", [(orphan_id, 1, "500")])

        (record,) = SqlReportSource(db).fetch_sales(MARCH)
        (item,) = record.items
        assert item.product_id == str(orphan_id)
        assert item.product is None


class TestFetchStockMovements:
    def test_newest_first_within_window(self, db, product_b):
        make_movement(db, at(2026, 2, 27), product_b.id, 3)
        older = make_movement(db, at(2026, 3, 2), product_b.id, 10, MovementType.INBOUND)
        newer = make_movement(db, at(2026, 3, 9), product_b.id, -2, MovementType.OUTBOUND)

        records = SqlReportSource(db).fetch_stock_movements(MARCH)
        assert [r.id for r in records] == [str(newer.id), str(older.id)]
        assert records[0].type == "outbound"
        assert records[1].type == "inbound"
        assert records[0].product.name == "Cable B"

    def test_limit(self, db, product_b):
        for day in range(1, 6):
            make_movement(db, at(2026, 3, day), product_b.id, 1)
        records = SqlReportSource(db).fetch_stock_movements(MARCH, limit=3)
        assert len(records) == 3
        assert records[0].created_at.day == 5


class TestUndecodableRows:
    def _insert_raw_movement(self, db, movement_type: str):
        db.execute(
            text(
                "INSERT INTO stock_movements "
                "(id, product_id, movement_type, quantity, reason, created_at) "
                "VALUES (:id, NULL, :mtype, 1, 'Imported', '2026-03-05 12:00:00.000000')"
            ),
            {"id": uuid.uuid4().hex, "mtype": movement_type},
        )

    def test_unknown_movement_type_becomes_fetch_error(self, db):
        self._insert_raw_movement(db, "RETURN")
        with pytest.raises(FetchError) as exc_info:
            SqlReportSource(db).fetch_stock_movements(MARCH)
        assert exc_info.value.entity == "stock_movements"
        assert isinstance(exc_info.value.cause, LookupError)

    def test_report_fails_typed_on_undecodable_row(self, db):
        self._insert_raw_movement(db, "RETURN")
        outcome = generate_report(SqlReportSource(db), MARCH)
        assert outcome.state is ReportState.ERROR
        assert outcome.data is None
        assert isinstance(outcome.error, FetchError)
        assert outcome.error.entity == "stock_movements"
