# Overview: Service-layer read-only reporting over an organization's stored sales.

"""
Analytics Service

WHY: The dashboard needs the same aggregates the Insights tab computes with
spreadsheet formulas, but for database-backed organizations.

All reports accept optional start/end datetimes (inclusive) and aggregate
actual amounts (after discounts), never list totals. Revenue per product
uses the line-item price captured at sale time. Unsized line items are
bucketed as "default" and displayed as "One Size".

Every function is read-only; nothing here writes to the session.
"""

from __future__ import annotations

from datetime import date, datetime, time

from ..extensions import db
from ..models import Product, Sale
from ..records import DEFAULT_SIZE_KEY
from .products_service import inventory_value
from .sales_service import list_sales


ONE_SIZE_LABEL = "One Size"
NOT_AVAILABLE = "N/A"


def size_label(size: str | None) -> str:
    return ONE_SIZE_LABEL if not size or size == DEFAULT_SIZE_KEY else size


def _items(sale: Sale):
    for item in sale.items or []:
        yield item, int(item.get("quantity", 0)), float(item.get("price", 0))


def _percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole > 0 else 0.0


def _product_names(organization_id: int, product_ids) -> dict[str, str]:
    ids = list(product_ids)
    if not ids:
        return {}
    rows = db.session.query(Product.id, Product.name).filter(
        Product.organization_id == organization_id,
        Product.id.in_(ids),
    )
    return {product_id: name for product_id, name in rows}


def _first_max(counts: dict[str, int]) -> str | None:
    """Key with the highest count; earliest-seen key wins ties."""
    best, best_count = None, 0
    for key, count in counts.items():
        if count > best_count:
            best, best_count = key, count
    return best


def quick_stats(organization_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
    sales = list_sales(organization_id, start=start, end=end)
    total_revenue = sum(float(sale.actual_amount or 0) for sale in sales)

    product_counts: dict[str, int] = {}
    snapshot_names: dict[str, str] = {}
    size_counts: dict[str, int] = {}
    for sale in sales:
        for item, quantity, _ in _items(sale):
            product_id = item.get("productId")
            if product_id:
                product_counts[product_id] = product_counts.get(product_id, 0) + quantity
                snapshot_names.setdefault(product_id, item.get("productName") or "")
            size = item.get("size") or DEFAULT_SIZE_KEY
            size_counts[size] = size_counts.get(size, 0) + quantity

    top_product_id = _first_max(product_counts)
    top_product = NOT_AVAILABLE
    if top_product_id:
        names = _product_names(organization_id, [top_product_id])
        top_product = names.get(top_product_id) or snapshot_names.get(top_product_id) or NOT_AVAILABLE
    top_size = _first_max(size_counts)

    return {
        "totalRevenue": round(total_revenue, 2),
        "numberOfSales": len(sales),
        "averageSale": round(total_revenue / len(sales), 2) if sales else 0.0,
        "topProduct": top_product,
        "topSize": size_label(top_size) if top_size else NOT_AVAILABLE,
        "inventoryValue": inventory_value(organization_id),
    }


def daily_revenue(organization_id: int, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
    """One entry per calendar date (UTC), newest first."""
    days: dict[str, dict] = {}
    for sale in list_sales(organization_id, start=start, end=end):
        day = sale.timestamp.date().isoformat()
        entry = days.setdefault(day, {
            "date": day,
            "numberOfSales": 0,
            "revenue": 0.0,
            "tips": 0.0,
            "paymentBreakdown": {},
        })
        actual = float(sale.actual_amount or 0)
        entry["numberOfSales"] += 1
        entry["revenue"] = round(entry["revenue"] + actual, 2)
        entry["tips"] = round(entry["tips"] + float(sale.tip_amount or 0), 2)
        method = sale.payment_method or "Other"
        entry["paymentBreakdown"][method] = round(entry["paymentBreakdown"].get(method, 0.0) + actual, 2)
    return sorted(days.values(), key=lambda d: d["date"], reverse=True)


def product_performance(organization_id: int, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
    """Products ranked by quantity sold."""
    stats: dict[str, dict] = {}
    for sale in list_sales(organization_id, start=start, end=end):
        for item, quantity, price in _items(sale):
            product_id = item.get("productId")
            if not product_id:
                continue
            entry = stats.setdefault(product_id, {
                "productId": product_id,
                "productName": item.get("productName") or "",
                "quantitySold": 0,
                "revenue": 0.0,
                "category": None,
            })
            entry["quantitySold"] += quantity
            entry["revenue"] = round(entry["revenue"] + price * quantity, 2)

    if stats:
        products = db.session.query(Product).filter(
            Product.organization_id == organization_id,
            Product.id.in_(list(stats)),
        )
        for product in products:
            stats[product.id]["productName"] = product.name
            stats[product.id]["category"] = product.category

    return sorted(stats.values(), key=lambda p: p["quantitySold"], reverse=True)


def payment_breakdown(organization_id: int, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
    methods: dict[str, dict] = {}
    grand_total = 0.0
    for sale in list_sales(organization_id, start=start, end=end):
        actual = float(sale.actual_amount or 0)
        method = sale.payment_method or "Other"
        entry = methods.setdefault(method, {"paymentMethod": method, "total": 0.0, "count": 0})
        entry["total"] = round(entry["total"] + actual, 2)
        entry["count"] += 1
        grand_total += actual

    for entry in methods.values():
        entry["percentage"] = _percent(entry["total"], grand_total)
    return sorted(methods.values(), key=lambda m: m["total"], reverse=True)


def size_distribution(organization_id: int, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
    sizes: dict[str, int] = {}
    total_quantity = 0
    for sale in list_sales(organization_id, start=start, end=end):
        for item, quantity, _ in _items(sale):
            size = item.get("size") or DEFAULT_SIZE_KEY
            sizes[size] = sizes.get(size, 0) + quantity
            total_quantity += quantity

    result = [
        {"size": size_label(size), "quantity": quantity, "percentage": _percent(quantity, total_quantity)}
        for size, quantity in sizes.items()
    ]
    return sorted(result, key=lambda s: s["quantity"], reverse=True)


def products_by_date(organization_id: int, day: date) -> list[dict]:
    """Line items sold on one calendar day, grouped by (product, size)."""
    start = datetime.combine(day, time.min)
    end = datetime.combine(day, time.max)

    grouped: dict[tuple[str, str], dict] = {}
    for sale in list_sales(organization_id, start=start, end=end):
        for item, quantity, price in _items(sale):
            size = item.get("size") or DEFAULT_SIZE_KEY
            key = (item.get("productId") or "", size)
            entry = grouped.setdefault(key, {
                "productId": key[0],
                "productName": item.get("productName") or "Unknown",
                "size": size_label(size),
                "quantity": 0,
                "price": price,
                "subtotal": 0.0,
            })
            entry["quantity"] += quantity
            entry["subtotal"] = round(entry["subtotal"] + price * quantity, 2)

    names = _product_names(organization_id, {product_id for product_id, _ in grouped if product_id})
    for (product_id, _), entry in grouped.items():
        if product_id in names:
            entry["productName"] = names[product_id]

    return sorted(grouped.values(), key=lambda p: p["quantity"], reverse=True)
