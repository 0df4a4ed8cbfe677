# Overview: Service-layer operations for the organization product catalog and per-size inventory.

"""
Products Service

WHY: Product ids are minted by the POS client, so saving a catalog is an
upsert keyed on (organization_id, id). The last write for a given id wins;
there is no client-side conflict resolution.

INVENTORY: `inventory` maps a size label (or "default" for unsized
products) to a non-negative count. Counts never go below zero; selling more
than is on hand clamps at 0 instead of rejecting the sale (the sale already
happened at the merch table).
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Product
from ..records import DEFAULT_SIZE_KEY, LineItem, ProductRecord
from .concurrency import lock_for_update, run_with_retry


logger = logging.getLogger(__name__)


class ProductError(Exception):
    """Raised for product catalog errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFoundError(ProductError):
    pass


def list_products(organization_id: int) -> list[Product]:
    return (
        db.session.query(Product)
        .filter_by(organization_id=organization_id)
        .order_by(Product.category.asc(), Product.name.asc())
        .all()
    )


def get_product(organization_id: int, product_id: str) -> Product | None:
    return db.session.get(Product, (organization_id, product_id))


def _apply_record(product: Product, record: ProductRecord) -> None:
    product.name = record.name
    product.price = record.price
    product.category = record.category
    product.description = record.description
    product.image_url = record.image_url
    product.sizes = list(record.sizes)
    product.inventory = dict(record.inventory) if record.inventory is not None else None
    product.currency_prices = dict(record.currency_prices) if record.currency_prices is not None else None
    product.show_text_on_button = record.show_text_on_button


def upsert_products(organization_id: int, records: list[ProductRecord], *, commit: bool = True) -> list[Product]:
    """Insert or overwrite each product by id (last write wins)."""
    def _op():
        saved = []
        for record in records:
            product = get_product(organization_id, record.id)
            if product is None:
                product = Product(organization_id=organization_id, id=record.id)
                db.session.add(product)
            _apply_record(product, record)
            saved.append(product)
        if commit:
            db.session.commit()
        else:
            db.session.flush()
        return saved

    return run_with_retry(_op)


def delete_product(organization_id: int, product_id: str) -> None:
    product = get_product(organization_id, product_id)
    if not product:
        raise ProductNotFoundError("Product not found", details={"product_id": product_id})
    db.session.delete(product)
    db.session.commit()


def restock(organization_id: int, product_id: str, quantity: int, size: str | None = None) -> Product:
    """Add `quantity` units to the product's size bucket (or "default")."""
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ProductError("quantity must be a positive integer")

    def _op():
        product = lock_for_update(
            db.session.query(Product).filter_by(organization_id=organization_id, id=product_id)
        ).first()
        if not product:
            raise ProductNotFoundError("Product not found", details={"product_id": product_id})

        key = size or DEFAULT_SIZE_KEY
        if product.sizes and size and size not in product.sizes:
            raise ProductError(
                f"Unknown size {size!r} for {product.name}",
                details={"sizes": list(product.sizes)},
            )
        inventory = dict(product.inventory or {})
        inventory[key] = int(inventory.get(key, 0)) + quantity
        # Reassign so the JSON column is flagged dirty
        product.inventory = inventory
        db.session.commit()
        return product

    return run_with_retry(_op)


def decrement_inventory(organization_id: int, items: list[LineItem]) -> None:
    """
    Subtract sold quantities from inventory, clamping at 0.

    Products without tracked inventory (None) or unknown product ids are
    skipped. Does not commit; the caller owns the transaction.
    """
    sold: dict[str, dict[str, int]] = {}
    for item in items:
        per_size = sold.setdefault(item.product_id, {})
        per_size[item.size_key] = per_size.get(item.size_key, 0) + item.quantity

    for product_id, per_size in sold.items():
        product = lock_for_update(
            db.session.query(Product).filter_by(organization_id=organization_id, id=product_id)
        ).first()
        if product is None or product.inventory is None:
            continue
        inventory = dict(product.inventory)
        for key, quantity in per_size.items():
            if key not in inventory:
                continue
            inventory[key] = max(0, int(inventory[key]) - quantity)
        product.inventory = inventory


def inventory_value(organization_id: int) -> float:
    """Sum of price x on-hand units across tracked products."""
    total = 0.0
    for product in list_products(organization_id):
        if product.inventory:
            units = sum(int(count) for count in product.inventory.values())
            total += float(product.price or 0) * units
    return round(total, 2)
