# Overview: Row codec between typed records and spreadsheet row arrays.

"""
Row encode/decode for the Products, Sales, Email List and POS Settings tabs.

Pure transforms: no API calls happen here. Every function takes or returns
plain lists of cell values in the column order defined by sheets.schema.

Cells are limited to 50,000 characters by the Sheets backend. Values that
would exceed it (inline data-URL images, QR codes) are rejected here with
CellTooLargeError, before any request is sent.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime

from ..records import (
    DEFAULT_CATEGORY,
    EmailSignupRecord,
    ProductRecord,
    RecordError,
    SaleRecord,
    default_pos_settings,
    normalize_pos_settings,
)
from ..time_utils import parse_iso_datetime, sheet_date, to_utc_z
from .item_summary import (
    decode_line_items,
    encode_item_summary,
    encode_line_items,
    normalize_date,
)
from .schema import EMAIL_LIST, POS_SETTINGS, PRODUCTS, SALES


logger = logging.getLogger(__name__)

CELL_CHARACTER_LIMIT = 50_000
TRUE_CELL = "TRUE"
FALSE_CELL = "FALSE"
YES_CELL = "Yes"
NO_CELL = "No"
HOOKUP_CELL = "Hookup"


class CellTooLargeError(ValueError):
    """Raised when a value would exceed the per-cell character limit."""

    def __init__(self, label: str, length: int):
        super().__init__(
            f"{label} is too large ({length:,} characters, limit {CELL_CHARACTER_LIMIT:,}). "
            "Upload the image and use a hosted URL instead of an inline data URL."
        )
        self.label = label
        self.length = length


def _guard_cell(value: str, label: str) -> str:
    if value and len(value) > CELL_CHARACTER_LIMIT:
        raise CellTooLargeError(label, len(value))
    return value


def _cell(row: list, index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index]).strip()
    return ""


def _number(value: str, default: float = 0.0) -> float:
    if value == "":
        return default
    try:
        number = float(value)
    except ValueError:
        return default
    # "inf", "1e400" and "NaN" all parse as floats
    return round(number, 2) if math.isfinite(number) else default


def _json_cell(value: str, label: str):
    if not value:
        return None
    try:
        return json.loads(value)
    except ValueError:
        logger.warning("Ignoring unparseable %s cell: %.80s", label, value)
        return None


def _is_yes(value: str) -> bool:
    return value.strip().upper() in ("YES", "TRUE")


def _money_cell(amount: float) -> float:
    return round(amount, 2)


# Products -----------------------------------------------------------------

def encode_product(product: ProductRecord) -> list:
    inventory = json.dumps(product.inventory) if product.inventory else ""
    currency_prices = json.dumps(product.currency_prices) if product.currency_prices else ""
    return [
        product.id,
        product.name,
        product.price,
        product.category,
        ",".join(product.sizes),
        _guard_cell(product.image_url or "", f"Image for product '{product.name}'"),
        product.description or "",
        inventory,
        FALSE_CELL if product.show_text_on_button is False else TRUE_CELL,
        currency_prices,
    ]


def decode_product(row: list) -> ProductRecord | None:
    """Products row -> record; None for blank rows."""
    product_id = _cell(row, PRODUCTS.index("id"))
    if not product_id:
        return None

    inventory = _json_cell(_cell(row, PRODUCTS.index("inventory")), "inventory")
    if not isinstance(inventory, dict):
        inventory = None
    currency_prices = _json_cell(_cell(row, PRODUCTS.index("currency_prices")), "currency prices")
    if not isinstance(currency_prices, dict):
        currency_prices = None

    sizes = _cell(row, PRODUCTS.index("sizes"))
    return ProductRecord(
        id=product_id,
        name=_cell(row, PRODUCTS.index("name")),
        price=_number(_cell(row, PRODUCTS.index("price"))),
        category=_cell(row, PRODUCTS.index("category")) or DEFAULT_CATEGORY,
        description=_cell(row, PRODUCTS.index("description")) or None,
        image_url=_cell(row, PRODUCTS.index("image_url")) or None,
        sizes=[s.strip() for s in sizes.split(",") if s.strip()],
        inventory={str(k): int(_number(str(v))) for k, v in inventory.items()} if inventory else None,
        currency_prices={str(k): _number(str(v)) for k, v in currency_prices.items()} if currency_prices else None,
        show_text_on_button=_cell(row, PRODUCTS.index("show_text")).upper() != FALSE_CELL,
    )


# Sales --------------------------------------------------------------------

def _unique(values) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


def encode_sale(sale: SaleRecord) -> list:
    return [
        sale.id,
        sheet_date(sale.timestamp),
        encode_item_summary(sale.items),
        _money_cell(sale.total),
        _money_cell(sale.actual_amount),
        _money_cell(sale.discount),
        sale.payment_method,
        HOOKUP_CELL if sale.is_hookup else "",
        ", ".join(_unique(item.product_name for item in sale.items)),
        ", ".join(_unique(item.size for item in sale.items)),
        _money_cell(sale.tip_amount),
        encode_line_items(sale.items),
    ]


def _sale_timestamp(value: str) -> datetime:
    try:
        parsed = parse_iso_datetime(normalize_date(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise RecordError(f"Unrecognised sale date: {value!r}", field="date")
    return parsed


def decode_sale(row: list) -> SaleRecord | None:
    """
    Sales row -> record (import path); None for blank rows.

    Line items come from the Items JSON column only. Rows that only have the
    display summary import with an empty item list.
    """
    sale_id = _cell(row, SALES.index("id"))
    if not sale_id:
        return None

    total = _number(_cell(row, SALES.index("total")))
    actual_cell = _cell(row, SALES.index("actual_amount"))
    return SaleRecord.build(
        id=sale_id,
        timestamp=_sale_timestamp(_cell(row, SALES.index("date"))),
        items=decode_line_items(_cell(row, SALES.index("items_json"))) or [],
        total=total,
        actual_amount=_number(actual_cell, default=total) if actual_cell else None,
        payment_method=_cell(row, SALES.index("payment_method")) or "cash",
        tip_amount=_number(_cell(row, SALES.index("tips"))),
        synced=True,
    )


def migrate_legacy_sale_row(row: list) -> list:
    """
    6-column row (ID, Timestamp, Items, Total, Payment Method, Hookup)
    -> 8-column row with Actual Amount = Total and Discount = 0.
    """
    padded = list(row) + [""] * (6 - len(row))
    sale_id, timestamp, items, total, payment_method, hookup = padded[:6]
    return [sale_id, timestamp, items, total, total or "0", "0", payment_method, hookup]


# Email list ---------------------------------------------------------------

def encode_email_signup(signup: EmailSignupRecord) -> list:
    return [
        to_utc_z(signup.timestamp),
        signup.email,
        signup.name or "",
        signup.phone or "",
        signup.source,
        signup.sale_id or "",
        YES_CELL,
    ]


def decode_email_signup(row: list) -> EmailSignupRecord | None:
    email = _cell(row, EMAIL_LIST.index("email"))
    if not email:
        return None
    try:
        return EmailSignupRecord.from_payload({
            "timestamp": _cell(row, EMAIL_LIST.index("timestamp")) or None,
            "email": email,
            "name": _cell(row, EMAIL_LIST.index("name")),
            "phone": _cell(row, EMAIL_LIST.index("phone")),
            "source": _cell(row, EMAIL_LIST.index("source")) or None,
            "saleId": _cell(row, EMAIL_LIST.index("sale_id")) or None,
            "synced": True,
        })
    except RecordError as exc:
        logger.warning("Skipping Email List row %r: %s", email, exc)
        return None


# POS Settings -------------------------------------------------------------

def encode_settings(settings: dict) -> dict[str, list[list]]:
    """
    Settings document -> {A1 range: rows} for each block of the tab.

    Ranges are anchored at row 2; the caller clears stale rows first.
    """
    payment_rows = []
    for setting in settings["paymentSettings"]:
        qr = _guard_cell(setting.get("qrCodeUrl") or "", f"QR code for '{setting['displayName']}'")
        fee = setting.get("transactionFee")
        payment_rows.append([
            setting["paymentType"],
            YES_CELL if setting["enabled"] else NO_CELL,
            setting["displayName"],
            "" if fee is None else str(fee),
            qr,
        ])

    email = settings["emailSignup"]
    currency = settings["currency"]
    return {
        POS_SETTINGS.span("payment_type", "qr_code_url", 2): payment_rows,
        POS_SETTINGS.span("categories", "categories", 2): [[c] for c in settings["categories"]],
        POS_SETTINGS.cell("theme", 2): [[settings["theme"]]],
        POS_SETTINGS.span("currency", "exchange_rate", 2, 2): [
            [currency["displayCurrency"], str(currency["exchangeRate"])]
        ],
        POS_SETTINGS.span("email_signup_enabled", "email_auto_dismiss", 2, 2): [[
            YES_CELL if email["enabled"] else NO_CELL,
            email["promptMessage"],
            YES_CELL if email["collectName"] else NO_CELL,
            YES_CELL if email["collectPhone"] else NO_CELL,
            str(email["autoDismissSeconds"]),
        ]],
        POS_SETTINGS.cell("show_tip_jar", 2): [[YES_CELL if settings["showTipJar"] else NO_CELL]],
    }


def settings_read_ranges() -> list[str]:
    """Ranges fetched in one batchGet when loading; order matches decode_settings()."""
    return [
        POS_SETTINGS.span("payment_type", "qr_code_url", 2, 20),
        POS_SETTINGS.span("categories", "categories", 2, 50),
        POS_SETTINGS.cell("theme", 2),
        POS_SETTINGS.span("currency", "exchange_rate", 2, 2),
        POS_SETTINGS.span("email_signup_enabled", "show_tip_jar", 2, 2),
    ]


def decode_settings(blocks: list[list[list]]) -> dict:
    """Values of settings_read_ranges(), in order -> full settings document."""
    payment_rows, category_rows, theme_rows, currency_rows, extra_rows = (
        list(blocks) + [[]] * 5
    )[:5]

    payload: dict = {}
    payment_settings = []
    for row in payment_rows:
        payment_type = _cell(row, 0)
        if not payment_type:
            continue
        setting = {
            "paymentType": payment_type,
            "enabled": _is_yes(_cell(row, 1)),
            "displayName": _cell(row, 2),
        }
        fee = _cell(row, 3)
        if fee:
            try:
                setting["transactionFee"] = float(fee)
                if not math.isfinite(setting["transactionFee"]):
                    raise ValueError(fee)
            except ValueError:
                setting.pop("transactionFee", None)
                logger.warning("Ignoring unparseable transaction fee %r for %s", fee, payment_type)
        if _cell(row, 4):
            setting["qrCodeUrl"] = _cell(row, 4)
        payment_settings.append(setting)
    if payment_settings:
        payload["paymentSettings"] = payment_settings

    categories = [_cell(row, 0) for row in category_rows if _cell(row, 0)]
    if categories:
        payload["categories"] = categories

    theme = _cell(theme_rows[0], 0) if theme_rows else ""
    if theme:
        payload["theme"] = theme

    currency = currency_rows[0] if currency_rows else []
    if _cell(currency, 0):
        payload["currency"] = {
            "displayCurrency": _cell(currency, 0),
            "exchangeRate": _number(_cell(currency, 1), default=0.0) or None,
        }

    extra = extra_rows[0] if extra_rows else []
    if _cell(extra, 0):
        payload["emailSignup"] = {
            "enabled": _is_yes(_cell(extra, 0)),
            "promptMessage": _cell(extra, 1) or default_pos_settings()["emailSignup"]["promptMessage"],
            "collectName": _is_yes(_cell(extra, 2)),
            "collectPhone": _is_yes(_cell(extra, 3)),
            "autoDismissSeconds": int(_number(_cell(extra, 4), default=10)),
        }
    if _cell(extra, 5):
        payload["showTipJar"] = _is_yes(_cell(extra, 5))

    # A hand-edited cell only costs its own block, which falls back to the default
    settings = default_pos_settings()
    for key, value in payload.items():
        try:
            settings[key] = normalize_pos_settings({key: value})[key]
        except RecordError as exc:
            logger.warning("Ignoring unreadable %s block in POS Settings: %s", key, exc)
    return settings
