# Overview: Service-layer operations for close-outs (end-of-session sales snapshots and cash reconciliation).

"""
Close-Out Service

A selling session is every sale recorded after the organization's most
recent close-out (or every sale, before the first one). Closing out freezes
the session's aggregates into a CloseOut row:

- totals: revenue before discounts, actual revenue, discounts, tips
- payment breakdown: {method: {count, amount}} using actual amounts
- products sold: per product id, quantity, revenue and per-size counts,
  sorted by revenue descending
- cash reconciliation: expected cash is the actual amount of sales whose
  method is "cash" (case-insensitive); when counted cash is supplied the
  difference is counted - expected

The snapshot is immutable. Only session name, location, event date and
notes can be edited afterwards.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..extensions import db
from ..models import CloseOut, Sale
from ..records import DEFAULT_SIZE_KEY, RecordError, to_money
from ..time_utils import to_utc_z, utcnow
from .sales_service import list_sales_after


logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("sessionName", "location", "eventDate", "notes")


class CloseOutError(Exception):
    """Raised for close-out errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class CloseOutNotFoundError(CloseOutError):
    pass


def _money(value: float) -> float:
    return round(value, 2)


def calculate_session_stats(sales: list[Sale]) -> dict:
    """Aggregate a list of stored sales into close-out statistics."""
    payment_breakdown: dict[str, dict] = {}
    products: dict[str, dict] = {}
    total_revenue = actual_revenue = discounts = tips = expected_cash = 0.0

    for sale in sales:
        actual = float(sale.actual_amount or 0)
        total_revenue += float(sale.total or 0)
        actual_revenue += actual
        discounts += float(sale.discount or 0)
        tips += float(sale.tip_amount or 0)

        bucket = payment_breakdown.setdefault(sale.payment_method, {"count": 0, "amount": 0.0})
        bucket["count"] += 1
        bucket["amount"] = _money(bucket["amount"] + actual)

        if sale.payment_method.lower() == "cash":
            expected_cash += actual

        for item in sale.items or []:
            product = products.setdefault(item["productId"], {
                "productId": item["productId"],
                "productName": item.get("productName", ""),
                "quantitySold": 0,
                "revenue": 0.0,
                "sizes": {},
            })
            quantity = int(item.get("quantity", 0))
            product["quantitySold"] += quantity
            product["revenue"] = _money(product["revenue"] + float(item.get("price", 0)) * quantity)
            size = item.get("size") or DEFAULT_SIZE_KEY
            product["sizes"][size] = product["sizes"].get(size, 0) + quantity

    products_sold = sorted(products.values(), key=lambda p: p["revenue"], reverse=True)
    return {
        "salesCount": len(sales),
        "totalRevenue": _money(total_revenue),
        "actualRevenue": _money(actual_revenue),
        "discountsGiven": _money(discounts),
        "tipsReceived": _money(tips),
        "paymentBreakdown": payment_breakdown,
        "productsSold": products_sold,
        "expectedCash": _money(expected_cash),
    }


def last_close_out(organization_id: int) -> CloseOut | None:
    return (
        db.session.query(CloseOut)
        .filter_by(organization_id=organization_id)
        .order_by(CloseOut.timestamp.desc(), CloseOut.id.desc())
        .first()
    )


def current_session_sales(organization_id: int) -> list[Sale]:
    last = last_close_out(organization_id)
    return list_sales_after(organization_id, last.timestamp if last else None)


def current_session_stats(organization_id: int) -> dict:
    sales = current_session_sales(organization_id)
    stats = calculate_session_stats(sales)
    stats["saleIds"] = [sale.id for sale in sales]
    stats["salesPeriod"] = (
        {"startDate": to_utc_z(sales[0].timestamp), "endDate": to_utc_z(sales[-1].timestamp)}
        if sales else None
    )
    return stats


def _optional_text(value, field: str, max_length: int = 255) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > max_length:
        raise CloseOutError(f"{field} is too long", details={"max_length": max_length})
    return text or None


def _event_date(value) -> str | None:
    text = _optional_text(value, "eventDate", 32)
    if text is None:
        return None
    try:
        return datetime.fromisoformat(text[:10]).date().isoformat()
    except ValueError:
        raise CloseOutError("eventDate must be a YYYY-MM-DD date") from None


def create_close_out(organization_id: int, user_id: int | None, metadata: dict | None = None) -> CloseOut:
    """Snapshot the current session."""
    metadata = metadata or {}
    actual_cash = metadata.get("actualCash")
    if actual_cash is not None:
        try:
            actual_cash = to_money(actual_cash, "actualCash")
        except RecordError as exc:
            raise CloseOutError(str(exc)) from None

    sales = current_session_sales(organization_id)
    stats = calculate_session_stats(sales)
    now = utcnow()

    close_out = CloseOut(
        organization_id=organization_id,
        created_by=user_id,
        timestamp=now,
        session_name=_optional_text(metadata.get("sessionName"), "sessionName"),
        location=_optional_text(metadata.get("location"), "location"),
        event_date=_event_date(metadata.get("eventDate")) or now.date().isoformat(),
        notes=_optional_text(metadata.get("notes"), "notes", 5000),
        sales_count=stats["salesCount"],
        total_revenue=stats["totalRevenue"],
        actual_revenue=stats["actualRevenue"],
        discounts_given=stats["discountsGiven"],
        tips_received=stats["tipsReceived"],
        payment_breakdown=stats["paymentBreakdown"],
        products_sold=stats["productsSold"],
        expected_cash=stats["expectedCash"],
        actual_cash=actual_cash,
        cash_difference=None if actual_cash is None else _money(actual_cash - stats["expectedCash"]),
        sale_ids=[sale.id for sale in sales],
    )
    db.session.add(close_out)
    db.session.commit()
    logger.info(
        "Close-out %s for organization %s covers %d sales",
        close_out.id, organization_id, close_out.sales_count,
    )
    return close_out


def list_close_outs(organization_id: int) -> list[CloseOut]:
    return (
        db.session.query(CloseOut)
        .filter_by(organization_id=organization_id)
        .order_by(CloseOut.timestamp.desc(), CloseOut.id.desc())
        .all()
    )


def update_close_out(organization_id: int, close_out_id: int, changes: dict) -> CloseOut:
    """Edit descriptive fields only; aggregates are frozen."""
    close_out = db.session.query(CloseOut).filter_by(
        id=close_out_id,
        organization_id=organization_id,
    ).first()
    if not close_out:
        raise CloseOutNotFoundError("Close-out not found")

    frozen = sorted(set(changes) - set(EDITABLE_FIELDS))
    if frozen:
        raise CloseOutError(
            "Only session name, location, event date and notes can be edited",
            details={"rejected_fields": frozen},
        )

    if "sessionName" in changes:
        close_out.session_name = _optional_text(changes["sessionName"], "sessionName")
    if "location" in changes:
        close_out.location = _optional_text(changes["location"], "location")
    if "eventDate" in changes:
        close_out.event_date = _event_date(changes["eventDate"])
    if "notes" in changes:
        close_out.notes = _optional_text(changes["notes"], "notes", 5000)
    db.session.commit()
    return close_out
