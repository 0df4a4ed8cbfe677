# Overview: Bulk import of a Google Sheets store (products, sales, settings) into an organization.

"""
Sheets -> Database Migration Service

WHY: Organizations that started on the spreadsheet path move to the shared
database without re-entering their catalog or losing sales history.

PARTIAL FAILURE: every row is imported on its own. A row that cannot be
decoded or stored increments that section's error counter and the import
continues; nothing aborts the whole batch. Counters are returned together
at the end:

    {"products": {"migrated", "errors"},
     "sales":    {"migrated", "skipped", "errors"},
     "settings": {"migrated", "error"}}

Historic sales do not touch inventory (the counts in the Products tab
already reflect them). Sales already stored are skipped, never rewritten.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..records import RecordError
from ..sheets.client import SheetsClientError
from ..sheets.codec import decode_product, decode_sale
from ..sheets.schema import PRODUCTS
from ..sheets.sync import SheetSync
from . import products_service, sales_service, settings_service


logger = logging.getLogger(__name__)


def _migrate_products(sync: SheetSync, organization_id: int) -> dict:
    counters = {"migrated": 0, "errors": 0}
    for row in sync.client.get_values(PRODUCTS.data_range()):
        try:
            record = decode_product(row)
            if record is None:
                continue
            products_service.upsert_products(organization_id, [record])
            counters["migrated"] += 1
        except (RecordError, ValueError, OverflowError, SQLAlchemyError) as exc:
            db.session.rollback()
            counters["errors"] += 1
            logger.warning("Product row %r not migrated: %s", row[:1], exc)
    return counters


def _migrate_sales(sync: SheetSync, organization_id: int, user_id: int) -> dict:
    counters = {"migrated": 0, "skipped": 0, "errors": 0}
    for row in sync.sale_rows():
        try:
            record = decode_sale(row)
            if record is None:
                continue
            result = sales_service.record_sales(
                organization_id, [record], user_id, adjust_inventory=False,
            )
            counters["migrated"] += len(result["recorded"])
            counters["skipped"] += len(result["skipped"])
        except (RecordError, ValueError, OverflowError, SQLAlchemyError) as exc:
            db.session.rollback()
            counters["errors"] += 1
            logger.warning("Sale row %r not migrated: %s", row[:1], exc)
    return counters


def _migrate_settings(sync: SheetSync, organization_id: int, user_id: int) -> dict:
    try:
        settings = sync.load_settings()
    except (SheetsClientError, RecordError) as exc:
        logger.warning("Settings not migrated: %s", exc)
        return {"migrated": False, "error": str(exc)}

    if settings.pop("isDefault", False):
        return {"migrated": False, "error": None}
    try:
        settings_service.save_organization_settings(organization_id, settings, user_id)
    except (settings_service.SettingsError, SQLAlchemyError) as exc:
        db.session.rollback()
        logger.warning("Settings not migrated: %s", exc)
        return {"migrated": False, "error": str(exc)}
    return {"migrated": True, "error": None}


def migrate_spreadsheet(sync: SheetSync, organization_id: int, user_id: int) -> dict:
    """
    Import Products, Sales and POS Settings into `organization_id`.

    The caller has already checked the admin role. Sheets API failures while
    reading a whole tab propagate; row failures are counted.
    """
    results = {
        "products": _migrate_products(sync, organization_id),
        "sales": _migrate_sales(sync, organization_id, user_id),
        "settings": _migrate_settings(sync, organization_id, user_id),
    }
    logger.info(
        "Migrated spreadsheet %s into organization %s: %s",
        sync.client.spreadsheet_id, organization_id, results,
    )
    return results
