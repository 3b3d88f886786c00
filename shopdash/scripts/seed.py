"""Create the schema and seed a small demo catalogue with sales and stock movements.

Usage:
    python -m shopdash.scripts.seed
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from shopdash.app.core.database import Base, SessionLocal, engine
from shopdash.app.models.inventory import Category, MovementType, Product, StockMovement
from shopdash.app.models.sales import Sale, SaleItem
from shopdash.app.models.supplier import Supplier

CATEGORIES: list[str] = ["Smartphones", "Accessories", "Spare Parts"]

SUPPLIERS: list[tuple[str, Decimal | None, int | None]] = [
    ("Mobile Parts Co.", Decimal("4.5"), 7),
    ("Accesorios del Norte", Decimal("3.2"), 12),
    ("Generic Imports", None, None),
]

# sku, name, category, supplier, purchase, sale, stock, min_stock
PRODUCTS: list[tuple[str, str, str | None, str | None, str, str, int, int]] = [
    ("PH-001", "Phone X 128GB", "Smartphones", "Mobile Parts Co.", "420", "599", 12, 3),
    ("PH-002", "Phone Y 64GB", "Smartphones", "Mobile Parts Co.", "250", "349", 2, 3),
    ("AC-001", "USB-C Cable", "Accessories", "Accesorios del Norte", "2.5", "9.9", 140, 20),
    ("AC-002", "Tempered Glass", "Accessories", "Accesorios del Norte", "1.2", "7.5", 0, 25),
    ("SP-001", "Screen Assembly X", "Spare Parts", "Generic Imports", "85", "140", 6, 2),
    ("MI-001", "Gift Card", None, None, "0", "0", 50, 0),
]


def seed() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        # ── Categories ─────────────────────────────────────────────────
        categories: dict[str, Category] = {}
        for name in CATEGORIES:
            existing = db.query(Category).filter_by(name=name).first()
            if existing:
                categories[name] = existing
            else:
                cat = Category(name=name)
                db.add(cat)
                categories[name] = cat
                print(f"Created category: {name}")
        db.flush()

        # ── Suppliers ──────────────────────────────────────────────────
        suppliers: dict[str, Supplier] = {}
        for name, rating, delivery_days in SUPPLIERS:
            existing_supplier = db.query(Supplier).filter_by(name=name).first()
            if existing_supplier:
                suppliers[name] = existing_supplier
            else:
                supplier = Supplier(name=name, rating=rating, delivery_time_days=delivery_days)
                db.add(supplier)
                suppliers[name] = supplier
                print(f"Created supplier: {name}")
        db.flush()

        # ── Products ───────────────────────────────────────────────────
        products: dict[str, Product] = {}
        for sku, name, cat, sup, purchase, sale, stock, min_stock in PRODUCTS:
            existing_product = db.query(Product).filter_by(sku=sku).first()
            if existing_product:
                products[sku] = existing_product
                continue
            product = Product(
                sku=sku,
                name=name,
                category_id=categories[cat].id if cat else None,
                supplier_id=suppliers[sup].id if sup else None,
                purchase_price=Decimal(purchase),
                sale_price=Decimal(sale),
                stock_quantity=stock,
                min_stock=min_stock,
            )
            db.add(product)
            products[sku] = product
            print(f"Created product {sku} - {name}")
        db.flush()

        # ── Demo sales & movements (only on an empty ledger) ───────────
        if db.query(Sale).first() is None:
            now = datetime.now(timezone.utc)
            for days_ago, lines in [
                (1, [("PH-001", 1, "599"), ("AC-001", 3, "29.7")]),
                (3, [("PH-002", 1, "349"), ("AC-002", 2, "15")]),
                (8, [("SP-001", 1, "140")]),
            ]:
                total = sum((Decimal(subtotal) for _, _, subtotal in lines), Decimal("0"))
                sale_row = Sale(total_amount=total, created_at=now - timedelta(days=days_ago))
                for line_number, (sku, qty, subtotal) in enumerate(lines, start=1):
                    sale_row.items.append(SaleItem(
                        line_number=line_number,
                        product_id=products[sku].id,
                        quantity=qty,
                        unit_price=Decimal(subtotal) / qty,
                        subtotal=Decimal(subtotal),
                    ))
                db.add(sale_row)
            print("Created demo sales")

            for days_ago, sku, movement_type, qty, reason in [
                (10, "PH-001", MovementType.INBOUND, 10, "Purchase order received"),
                (3, "AC-002", MovementType.OUTBOUND, -2, "Sale"),
                (2, "SP-001", MovementType.ADJUSTMENT, -1, "Damaged in repair"),
            ]:
                db.add(StockMovement(
                    product_id=products[sku].id,
                    movement_type=movement_type,
                    quantity=qty,
                    reason=reason,
                    created_at=now - timedelta(days=days_ago),
                ))
            print("Created demo stock movements")

        db.commit()
        print("Seed complete.")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
