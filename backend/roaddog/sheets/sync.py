# Overview: Sync orchestrator for the Google Sheets storage path.

"""
Sheet synchronization.

SheetSync drives the read/clear/append/update sequence for one spreadsheet.
Calls are issued one after another because later calls depend on earlier
results (headers decide whether a tab must be created first).

Write semantics per tab:
- Products: full replace. The data range is cleared, then every product is
  appended. Not atomic; a reader between the two calls sees an empty tab.
- Sales: append-only. Rows already in the sheet are never rewritten.
- POS Settings: wholesale upsert of fixed blocks; loading a spreadsheet with
  no settings tab returns defaults tagged isDefault.

Everything that could be rejected locally (oversized cells, invalid records)
is encoded before the first request goes out.
"""

from __future__ import annotations

import logging
import re

from ..records import EmailSignupRecord, ProductRecord, RecordError, SaleRecord, default_pos_settings
from ..time_utils import today
from .client import SheetNotFoundError, SheetsApiError, SheetsClient
from .codec import (
    decode_product,
    decode_sale,
    decode_settings,
    encode_email_signup,
    encode_product,
    encode_sale,
    encode_settings,
    migrate_legacy_sale_row,
    settings_read_ranges,
)
from .item_summary import StructuredItems, SummaryText, normalize_date, product_breakdown
from .reconciler import (
    InsightsLayout,
    detect_schema_drift,
    header_row_range,
    payment_methods_from_column,
    stored_methods,
)
from .schema import (
    EMAIL_LIST,
    INSIGHTS_HEADER_ROW,
    INSIGHTS_QUICK_STATS_RANGE,
    INSIGHTS_TITLE,
    LEGACY_SALES_WIDTH,
    MIGRATED_SALES_WIDTH,
    POS_SETTINGS,
    PRODUCTS,
    SALES,
    build_range,
)


logger = logging.getLogger(__name__)

BACKUP_SUFFIX = "road-dog-backup"
SPREADSHEET_URL = "https://docs.google.com/spreadsheets/d/{}"
# Rows cleared under each settings block before rewriting
SETTINGS_CLEAR_ROWS = 100

_NUMBER_NOISE = re.compile(r"[^0-9.\-]")


class InsightsNotFoundError(SheetNotFoundError):
    def __init__(self):
        super().__init__(INSIGHTS_TITLE)


class EmailListNotFoundError(SheetNotFoundError):
    def __init__(self):
        super().__init__(EMAIL_LIST.title, "Email List sheet not found. Please initialize sheets first.")


def _to_float(value) -> float:
    """Formatted cell ('$1,234.50') -> 1234.5; blanks and junk -> 0."""
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _NUMBER_NOISE.sub("", str(value or ""))
    try:
        return float(cleaned) if cleaned else 0.0
    except ValueError:
        return 0.0


def _to_int(value) -> int:
    return int(_to_float(value))


class SheetSync:
    def __init__(self, client: SheetsClient):
        self.client = client

    # Spreadsheet lifecycle ------------------------------------------------

    def initialize(self, title: str) -> dict:
        """Create a spreadsheet with Products and Sales tabs and bold headers."""
        created = self.client.create_spreadsheet(title, tabs=(PRODUCTS.title, SALES.title))
        self.client.spreadsheet_id = created["spreadsheetId"]
        self.client.batch_update_values({
            build_range(PRODUCTS.title, "A1"): [list(PRODUCTS.headers)],
            build_range(SALES.title, "A1"): [list(SALES.headers)],
        })
        for sheet in created.get("sheets", []):
            sheet_id = (sheet.get("properties") or {}).get("sheetId")
            if sheet_id is not None:
                self.client.bold_rows(sheet_id)
        logger.info("Created spreadsheet %s", self.client.spreadsheet_id)
        return {
            "spreadsheetId": self.client.spreadsheet_id,
            "productsSheetId": self.client.spreadsheet_id,
            "salesSheetId": self.client.spreadsheet_id,
        }

    def find(self, title: str) -> str | None:
        return self.client.find_spreadsheet(title)

    def sheet_name(self) -> str:
        return self.client.title() or "Your Sheet"

    def backup(self) -> dict:
        """Copy every tab (with data) into a new dated spreadsheet."""
        source = self.client.full_spreadsheet()
        backup_name = f"{today().isoformat()}-{BACKUP_SUFFIX}"
        created = self.client.create_spreadsheet(backup_name, sheets=source.get("sheets", []))
        backup_id = created["spreadsheetId"]
        logger.info("Backed up spreadsheet %s to %s", self.client.spreadsheet_id, backup_id)
        return {
            "backupId": backup_id,
            "backupName": backup_name,
            "backupUrl": SPREADSHEET_URL.format(backup_id),
        }

    def _ensure_tab(self, title: str, headers) -> tuple[int, bool]:
        """Return (sheetId, created)."""
        sheet_id = self.client.sheet_id(title)
        if sheet_id is not None:
            return sheet_id, False
        sheet_id = self.client.add_sheet(title)
        self.client.update_values(build_range(title, "A1"), [list(headers)])
        self.client.bold_rows(sheet_id)
        logger.info("Created %s sheet in %s", title, self.client.spreadsheet_id)
        return sheet_id, True

    # Products -------------------------------------------------------------

    def sync_products(self, products: list[ProductRecord]) -> int:
        rows = [encode_product(product) for product in products]
        self.client.update_values(PRODUCTS.header_range(), [list(PRODUCTS.headers)])
        self.client.clear(PRODUCTS.data_range())
        if rows:
            self.client.append_values(build_range(PRODUCTS.title, "A2"), rows)
        return len(rows)

    def load_products(self) -> list[ProductRecord]:
        rows = self.client.get_values(PRODUCTS.data_range())
        return [product for product in map(decode_product, rows) if product is not None]

    # Sales ----------------------------------------------------------------

    def sync_sales(self, sales: list[SaleRecord]) -> int:
        """Append sales; existing rows are untouched. Returns rows appended."""
        rows = [encode_sale(sale) for sale in sales]
        if rows:
            self.client.append_values(build_range(SALES.title, "A2"), rows)
        return len(rows)

    def sale_rows(self) -> list[list]:
        return self.client.get_values(SALES.data_range())

    def load_sales(self) -> list[SaleRecord]:
        sales = []
        for row in self.sale_rows():
            try:
                sale = decode_sale(row)
            except RecordError as exc:
                logger.warning("Skipping Sales row %r: %s", row[:1], exc)
                continue
            if sale is not None:
                sales.append(sale)
        return sales

    def daily_products(self, date: str) -> list[dict]:
        target = normalize_date(date)
        date_index = SALES.index("date")
        rows = [
            row for row in self.sale_rows()
            if len(row) > date_index and normalize_date(str(row[date_index])) == target
        ]
        sources = (StructuredItems(SALES.index("items_json")), SummaryText(SALES.index("items")))
        return product_breakdown(rows, sources)

    def migrate_sales_sheet(self) -> dict:
        """Upgrade a 6-column Sales tab to the 8-column discount-tracking layout."""
        header = self.client.get_values(build_range(SALES.title, "A1", "Z1"))
        current = header[0] if header else []
        width = len(current)

        if width >= MIGRATED_SALES_WIDTH:
            return {
                "success": True,
                "message": f"Sales sheet already has the new format ({MIGRATED_SALES_WIDTH} columns)",
                "alreadyMigrated": True,
                "headers": current,
            }
        if width != LEGACY_SALES_WIDTH:
            return {
                "success": False,
                "message": (
                    f"Unexpected Sales sheet format ({width} columns). "
                    f"Expected {LEGACY_SALES_WIDTH} or {MIGRATED_SALES_WIDTH} columns."
                ),
                "currentHeaders": current,
            }

        rows = self.client.get_values(build_range(SALES.title, "A", "F"))
        new_headers = list(SALES.headers[:MIGRATED_SALES_WIDTH])
        migrated = [migrate_legacy_sale_row(row) for row in rows[1:]]

        self.client.clear(build_range(SALES.title, "A", "Z"))
        self.client.update_values(build_range(SALES.title, "A1"), [new_headers] + migrated)
        self.client.bold_rows(self.client.require_sheet_id(SALES.title))
        logger.info("Migrated %d legacy sales rows in %s", len(migrated), self.client.spreadsheet_id)
        return {
            "success": True,
            "message": f"Successfully migrated {len(migrated)} sales to new format",
            "migratedRows": len(migrated),
            "oldFormat": current,
            "newFormat": new_headers,
        }

    # Settings -------------------------------------------------------------

    def load_settings(self) -> dict:
        try:
            blocks = self.client.batch_get(settings_read_ranges())
        except SheetsApiError as exc:
            if not exc.is_missing_range:
                raise
            return {**default_pos_settings(), "isDefault": True}
        if not blocks or not blocks[0]:
            return {**default_pos_settings(), "isDefault": True}
        return {**decode_settings(blocks), "isDefault": False}

    def save_settings(self, settings: dict) -> None:
        """`settings` must already be normalized (records.normalize_pos_settings)."""
        writes = encode_settings(settings)
        self._ensure_tab(POS_SETTINGS.title, POS_SETTINGS.headers)
        self.client.batch_clear([
            POS_SETTINGS.span("payment_type", "qr_code_url", 2, SETTINGS_CLEAR_ROWS),
            POS_SETTINGS.span("categories", "categories", 2, SETTINGS_CLEAR_ROWS),
            POS_SETTINGS.span("theme", "show_tip_jar", 2, 2),
        ])
        self.client.batch_update_values(writes)

    # Email list -----------------------------------------------------------

    def ensure_email_list(self) -> dict:
        sheet_id, created = self._ensure_tab(EMAIL_LIST.title, EMAIL_LIST.headers)
        return {"sheetId": sheet_id, "alreadyExists": not created}

    def append_email_signup(self, signup: EmailSignupRecord) -> None:
        if self.client.sheet_id(EMAIL_LIST.title) is None:
            raise EmailListNotFoundError()
        self.client.append_values(
            build_range(EMAIL_LIST.title, "A", EMAIL_LIST.last_letter),
            [encode_email_signup(signup)],
        )

    # Insights -------------------------------------------------------------

    def payment_methods(self) -> list[str]:
        return payment_methods_from_column(
            self.client.get_values(SALES.column_range("payment_method"))
        )

    def check_insights(self) -> dict:
        sheet_id = self.client.sheet_id(INSIGHTS_TITLE)
        return {"exists": sheet_id is not None, "sheetId": sheet_id}

    def create_insights(self) -> dict:
        if self.client.sheet_id(INSIGHTS_TITLE) is not None:
            return {"alreadyExists": True}
        layout = InsightsLayout.for_methods(self.payment_methods())
        sheet_id = self.client.add_sheet(INSIGHTS_TITLE)
        self.client.update_values(
            build_range(INSIGHTS_TITLE, "A1"), layout.rows(), input_option="USER_ENTERED"
        )
        self.client.bold_rows(sheet_id, 0, 1)
        self.client.bold_rows(sheet_id, INSIGHTS_HEADER_ROW - 1, INSIGHTS_HEADER_ROW)
        return {"alreadyExists": False, "sheetId": sheet_id, "paymentMethods": list(layout.methods)}

    def delete_insights(self) -> dict:
        sheet_id = self.client.sheet_id(INSIGHTS_TITLE)
        if sheet_id is None:
            return {"alreadyDeleted": True}
        self.client.delete_sheet(sheet_id)
        return {"alreadyDeleted": False}

    def get_insights(self) -> dict:
        """
        Quick stats and per-date revenue from the Insights tab.

        Data is read with the layout the tab was built with. schemaOutdated
        reports whether that layout differs from the current method set.
        """
        if self.client.sheet_id(INSIGHTS_TITLE) is None:
            raise InsightsNotFoundError()

        quick, header_rows, method_cells = self.client.batch_get([
            INSIGHTS_QUICK_STATS_RANGE,
            header_row_range(),
            SALES.column_range("payment_method"),
        ])
        current_methods = payment_methods_from_column(method_cells)
        header = header_rows[0] if header_rows else []
        outdated = detect_schema_drift(header, current_methods)
        layout = InsightsLayout.for_methods(stored_methods(header) if outdated else current_methods)

        rows = self.client.get_values(layout.data_range())
        first = rows[0] if rows else []
        top_item = first[layout.top_item_index] if len(first) > layout.top_item_index else ""
        top_size = first[layout.top_size_index] if len(first) > layout.top_size_index else ""

        def stat(i):
            return quick[i][0] if len(quick) > i and quick[i] else 0

        daily = []
        for row in rows:
            if not row or not row[0]:
                continue
            cells = list(row) + [""] * (layout.top_size_index + 1 - len(row))
            daily.append({
                "date": str(cells[0]),
                "numberOfSales": _to_int(cells[1]),
                "actualRevenue": _to_float(cells[2]),
                "tips": _to_float(cells[3]),
                "payments": {
                    method: _to_float(cells[layout.method_index(method)])
                    for method in layout.methods
                },
            })

        return {
            "quickStats": {
                "totalRevenue": _to_float(stat(0)),
                "numberOfSales": _to_int(stat(1)),
                "averageSale": _to_float(stat(2)),
                "topItem": top_item or "N/A",
                "topSize": top_size or "N/A",
            },
            "dailyRevenue": daily,
            "paymentMethods": list(layout.methods),
            "schemaOutdated": outdated,
        }
