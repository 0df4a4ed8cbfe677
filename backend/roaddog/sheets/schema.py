# Overview: Column registry for every spreadsheet tab the app reads or writes.

"""
Sheet column registry.

Each tab is described once by a SheetSchema: an ordered tuple of logical
field names and an equally long tuple of header labels. Callers ask the
schema for indices, letters and A1 ranges instead of hard-coding "G2:G"
style strings, so adding or moving a column is a one-line change here.

Single-letter columns only (A-Z). Insights payment-method columns are
appended dynamically; running past Z raises ColumnOverflowError instead of
wrapping into AA, because nothing downstream understands two-letter ranges.
"""

from __future__ import annotations

from dataclasses import dataclass


MAX_COLUMNS = 26


class ColumnOverflowError(ValueError):
    """Raised when a column index falls outside the single-letter range A-Z."""


def column_letter(index: int) -> str:
    """Zero-based column index -> spreadsheet letter (0 -> "A", 25 -> "Z")."""
    if index < 0 or index >= MAX_COLUMNS:
        raise ColumnOverflowError(
            f"Column index {index} is outside the supported range A-Z"
        )
    return chr(ord("A") + index)


def column_index(letter: str) -> int:
    """Spreadsheet letter -> zero-based column index ("A" -> 0)."""
    normalized = (letter or "").strip().upper()
    if len(normalized) != 1 or not ("A" <= normalized <= "Z"):
        raise ColumnOverflowError(f"Column {letter!r} is outside the supported range A-Z")
    return ord(normalized) - ord("A")


def quote_title(title: str) -> str:
    """Quote a tab title for A1 notation when it contains anything but letters/digits."""
    if title.replace("_", "").isalnum():
        return title
    return "'" + title.replace("'", "''") + "'"


def build_range(title: str, start: str, end: str | None = None) -> str:
    """Build an A1 range like Sales!A2:K or 'POS Settings'!H2."""
    if end is None:
        return f"{quote_title(title)}!{start}"
    return f"{quote_title(title)}!{start}:{end}"


@dataclass(frozen=True)
class SheetSchema:
    title: str
    fields: tuple[str, ...]
    headers: tuple[str, ...]

    @property
    def width(self) -> int:
        return len(self.fields)

    @property
    def last_letter(self) -> str:
        return column_letter(self.width - 1)

    def index(self, field: str) -> int:
        try:
            return self.fields.index(field)
        except ValueError:
            raise KeyError(f"{self.title} has no column {field!r}") from None

    def letter(self, field: str) -> str:
        return column_letter(self.index(field))

    def header_range(self) -> str:
        return build_range(self.title, "A1", f"{self.last_letter}1")

    def data_range(self, start_row: int = 2) -> str:
        """All data rows, open-ended (e.g. Sales!A2:L)."""
        return build_range(self.title, f"A{start_row}", self.last_letter)

    def column_range(self, field: str, start_row: int = 2) -> str:
        """A single open-ended column (e.g. Sales!G2:G)."""
        letter = self.letter(field)
        return build_range(self.title, f"{letter}{start_row}", letter)

    def cell(self, field: str, row: int) -> str:
        return build_range(self.title, f"{self.letter(field)}{row}")

    def span(self, first: str, last: str, start_row: int, end_row: int | None = None) -> str:
        """Range from field `first` to field `last`, e.g. I2:J2 or A2:E100."""
        end_suffix = "" if end_row is None else str(end_row)
        return build_range(
            self.title,
            f"{self.letter(first)}{start_row}",
            f"{self.letter(last)}{end_suffix}",
        )

    def pad(self, row: list) -> list:
        """Right-pad a (possibly short) row read back from the API to full width."""
        return list(row) + [""] * (self.width - len(row))


SALES = SheetSchema(
    title="Sales",
    fields=(
        "id",
        "date",
        "items",
        "total",
        "actual_amount",
        "discount",
        "payment_method",
        "hookup",
        "product_names",
        "sizes",
        "tips",
        "items_json",
    ),
    headers=(
        "ID",
        "Timestamp",
        "Items",
        "Total",
        "Actual Amount",
        "Discount",
        "Payment Method",
        "Hookup",
        "Product Names",
        "Sizes",
        "Tips",
        "Items JSON",
    ),
)

# Pre-discount-tracking Sales layout (A-F) and its first upgrade (A-H).
LEGACY_SALES_WIDTH = 6
MIGRATED_SALES_WIDTH = 8

PRODUCTS = SheetSchema(
    title="Products",
    fields=(
        "id",
        "name",
        "price",
        "category",
        "sizes",
        "image_url",
        "description",
        "inventory",
        "show_text",
        "currency_prices",
    ),
    headers=(
        "ID",
        "Name",
        "Price",
        "Category",
        "Sizes",
        "Image URL",
        "Description",
        "Inventory",
        "Show Text",
        "Currency Prices",
    ),
)

POS_SETTINGS = SheetSchema(
    title="POS Settings",
    fields=(
        "payment_type",
        "enabled",
        "display_name",
        "transaction_fee",
        "qr_code_url",
        "spacer",
        "categories",
        "theme",
        "currency",
        "exchange_rate",
        "email_signup_enabled",
        "email_prompt_message",
        "email_collect_name",
        "email_collect_phone",
        "email_auto_dismiss",
        "show_tip_jar",
    ),
    headers=(
        "Payment Type",
        "Enabled",
        "Display Name",
        "Transaction Fee %",
        "QR Code URL",
        "",
        "Categories",
        "Theme",
        "Currency",
        "Exchange Rate",
        "Email Signup Enabled",
        "Email Prompt Message",
        "Collect Name",
        "Collect Phone",
        "Auto Dismiss Seconds",
        "Show Tip Jar",
    ),
)

EMAIL_LIST = SheetSchema(
    title="Email List",
    fields=("timestamp", "email", "name", "phone", "source", "sale_id", "synced"),
    headers=("Timestamp", "Email", "Name", "Phone", "Source", "Sale ID", "Synced"),
)

# Insights: fixed leading columns; payment-method and trailing columns are
# computed per layout (see reconciler.InsightsLayout).
INSIGHTS_TITLE = "Insights"
INSIGHTS_LEADING_FIELDS = ("date", "number_of_sales", "revenue", "tips")
INSIGHTS_LEADING_HEADERS = ("Date", "Number of Sales", "Actual Revenue", "Tips")
INSIGHTS_TRAILING_HEADERS = ("Top Item", "Top Size")
INSIGHTS_METHOD_SUFFIX = " Revenue"
INSIGHTS_QUICK_STATS_RANGE = build_range(INSIGHTS_TITLE, "B5", "B7")
INSIGHTS_HEADER_ROW = 11
INSIGHTS_DATA_ROW = 12

ALL_SCHEMAS = (SALES, PRODUCTS, POS_SETTINGS, EMAIL_LIST)
