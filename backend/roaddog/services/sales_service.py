# Overview: Service-layer operations for recording and listing completed sales.

"""
Sales Service

WHY append-only: a sale is a money record. Devices may resend a batch after
a flaky connection, so recording is idempotent on the sale id: ids already
stored are skipped and never rewritten. Only the `synced` flag may change
after insert.

Inventory is decremented once, when a sale id is first stored.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..extensions import db
from ..models import Sale
from ..records import SaleRecord
from .concurrency import run_with_retry
from .products_service import decrement_inventory


logger = logging.getLogger(__name__)


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def list_sales(
    organization_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[Sale]:
    """Sales newest first, optionally bounded by [start, end]."""
    query = db.session.query(Sale).filter(Sale.organization_id == organization_id)
    if start is not None:
        query = query.filter(Sale.timestamp >= start)
    if end is not None:
        query = query.filter(Sale.timestamp <= end)
    query = query.order_by(Sale.timestamp.desc(), Sale.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_sales_after(organization_id: int, after: datetime | None) -> list[Sale]:
    """Sales strictly after `after` (all sales when None), oldest first."""
    query = db.session.query(Sale).filter(Sale.organization_id == organization_id)
    if after is not None:
        query = query.filter(Sale.timestamp > after)
    return query.order_by(Sale.timestamp.asc(), Sale.id.asc()).all()


def _new_sale(organization_id: int, record: SaleRecord, user_id: int | None) -> Sale:
    return Sale(
        organization_id=organization_id,
        id=record.id,
        timestamp=record.timestamp,
        items=[item.to_payload() for item in record.items],
        total=record.total,
        actual_amount=record.actual_amount,
        discount=record.discount,
        tip_amount=record.tip_amount,
        payment_method=record.payment_method,
        is_hookup=record.is_hookup,
        synced=record.synced,
        created_by=user_id,
    )


def record_sales(
    organization_id: int,
    records: list[SaleRecord],
    user_id: int | None = None,
    *,
    adjust_inventory: bool = True,
) -> dict:
    """
    Store new sales; existing ids are skipped.

    Returns {"recorded": [ids], "skipped": [ids]}.
    """
    def _op():
        ids = [record.id for record in records]
        if len(set(ids)) != len(ids):
            raise SaleError("Duplicate sale ids in batch")

        existing = {
            sale_id
            for (sale_id,) in db.session.query(Sale.id).filter(
                Sale.organization_id == organization_id,
                Sale.id.in_(ids),
            )
        } if ids else set()

        recorded, skipped = [], []
        for record in records:
            if record.id in existing:
                skipped.append(record.id)
                continue
            db.session.add(_new_sale(organization_id, record, user_id))
            if adjust_inventory:
                decrement_inventory(organization_id, record.items)
            recorded.append(record.id)

        db.session.commit()
        return {"recorded": recorded, "skipped": skipped}

    result = run_with_retry(_op)
    if result["skipped"]:
        logger.info(
            "Skipped %d already-recorded sales for organization %s",
            len(result["skipped"]), organization_id,
        )
    return result


def mark_synced(organization_id: int, sale_ids: list[str]) -> int:
    """Flag sales as synced; returns how many rows changed."""
    if not sale_ids:
        return 0
    updated = (
        db.session.query(Sale)
        .filter(
            Sale.organization_id == organization_id,
            Sale.id.in_(sale_ids),
            Sale.synced.is_(False),
        )
        .update({Sale.synced: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated
