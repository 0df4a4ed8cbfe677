# Overview: Typed domain records exchanged between routes, sheet codecs and services.

"""
Plain dataclass records for products, sales and email signups.

Routes receive camelCase JSON from the POS client; from_payload() validates
and converts it once, so the sheet codec and the database services work with
the same typed values. to_payload() produces the camelCase shape back.

Money is carried as float rounded to cents (USD base unit).
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from .currency import UnsupportedCurrencyError, default_rate
from .time_utils import parse_iso_datetime, to_utc_z, utcnow


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_SOURCES = ("post-checkout", "manual-entry")
DEFAULT_CATEGORY = "Other"
DEFAULT_SIZE_KEY = "default"

# Rounding tolerance when comparing client-computed money fields
_CENT = 0.005


class RecordError(ValueError):
    """Raised when a payload cannot be turned into a valid record."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


def to_money(value, field_name: str, default: float | None = None) -> float:
    if value is None or value == "":
        if default is None:
            raise RecordError(f"{field_name} is required", field=field_name)
        return default
    if isinstance(value, bool):
        raise RecordError(f"{field_name} must be a number", field=field_name)
    try:
        return round(float(value), 2)
    except (TypeError, ValueError):
        raise RecordError(f"{field_name} must be a number", field=field_name) from None


def _timestamp(value, field_name: str = "timestamp") -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        raise RecordError(f"{field_name} is required", field=field_name)
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise RecordError(f"{field_name} must be an ISO-8601 datetime", field=field_name) from None


def _int_map(raw, field_name: str) -> dict[str, int] | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise RecordError(f"{field_name} must be an object", field=field_name)
    result = {}
    for key, count in raw.items():
        try:
            result[str(key)] = max(0, int(count))
        except (TypeError, ValueError):
            raise RecordError(f"{field_name}.{key} must be an integer", field=field_name) from None
    return result


def _money_map(raw, field_name: str) -> dict[str, float] | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise RecordError(f"{field_name} must be an object", field=field_name)
    return {str(code).upper(): to_money(amount, f"{field_name}.{code}") for code, amount in raw.items()}


@dataclass
class ProductRecord:
    id: str
    name: str
    price: float
    category: str = DEFAULT_CATEGORY
    description: str | None = None
    image_url: str | None = None
    sizes: list[str] = field(default_factory=list)
    inventory: dict[str, int] | None = None
    currency_prices: dict[str, float] | None = None
    show_text_on_button: bool = True

    @classmethod
    def from_payload(cls, payload: dict) -> "ProductRecord":
        if not isinstance(payload, dict):
            raise RecordError("Product must be an object")
        product_id = str(payload.get("id") or "").strip()
        if not product_id:
            raise RecordError("Product id is required", field="id")
        name = str(payload.get("name") or "").strip()
        if not name:
            raise RecordError("Product name is required", field="name")

        sizes = payload.get("sizes") or []
        if not isinstance(sizes, list):
            raise RecordError("sizes must be a list", field="sizes")

        return cls(
            id=product_id,
            name=name,
            price=to_money(payload.get("price"), "price"),
            category=(payload.get("category") or "").strip() or DEFAULT_CATEGORY,
            description=payload.get("description") or None,
            image_url=payload.get("imageUrl") or None,
            sizes=[str(s).strip() for s in sizes if str(s).strip()],
            inventory=_int_map(payload.get("inventory"), "inventory"),
            currency_prices=_money_map(payload.get("currencyPrices"), "currencyPrices"),
            show_text_on_button=payload.get("showTextOnButton") is not False,
        )

    def to_payload(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "category": self.category,
            "showTextOnButton": self.show_text_on_button,
        }
        if self.description:
            data["description"] = self.description
        if self.image_url:
            data["imageUrl"] = self.image_url
        if self.sizes:
            data["sizes"] = list(self.sizes)
        if self.inventory is not None:
            data["inventory"] = dict(self.inventory)
        if self.currency_prices is not None:
            data["currencyPrices"] = dict(self.currency_prices)
        return data


@dataclass
class LineItem:
    product_id: str
    product_name: str
    quantity: int
    price: float
    size: str | None = None

    @property
    def size_key(self) -> str:
        return self.size or DEFAULT_SIZE_KEY

    @property
    def subtotal(self) -> float:
        return round(self.price * self.quantity, 2)

    @classmethod
    def from_payload(cls, payload: dict) -> "LineItem":
        if not isinstance(payload, dict):
            raise RecordError("Line item must be an object", field="items")
        try:
            quantity = int(payload.get("quantity"))
        except (TypeError, ValueError):
            raise RecordError("Line item quantity must be an integer", field="items") from None
        if quantity < 1:
            raise RecordError("Line item quantity must be at least 1", field="items")
        product_id = str(payload.get("productId") or "").strip()
        if not product_id:
            raise RecordError("Line item productId is required", field="items")
        return cls(
            product_id=product_id,
            product_name=str(payload.get("productName") or "").strip(),
            quantity=quantity,
            price=to_money(payload.get("price"), "items.price", default=0.0),
            size=(payload.get("size") or None),
        )

    def to_payload(self) -> dict:
        data = {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "price": self.price,
        }
        if self.size:
            data["size"] = self.size
        return data


@dataclass
class SaleRecord:
    """
    One completed checkout.

    INVARIANT: actual_amount == total - discount, discount >= 0.
    Hookup status is derived from the discount, never stored separately.
    """
    id: str
    timestamp: datetime
    items: list[LineItem]
    total: float
    actual_amount: float
    discount: float
    payment_method: str
    tip_amount: float = 0.0
    synced: bool = False

    @property
    def is_hookup(self) -> bool:
        return self.discount > 0

    @classmethod
    def build(
        cls,
        *,
        id: str,
        timestamp: datetime,
        items: list[LineItem],
        total: float,
        payment_method: str,
        actual_amount: float | None = None,
        discount: float | None = None,
        tip_amount: float = 0.0,
        synced: bool = False,
    ) -> "SaleRecord":
        """Derive the missing money field and enforce the discount invariant."""
        total = round(total, 2)
        if total < 0:
            raise RecordError("total cannot be negative", field="total")

        if actual_amount is None and discount is None:
            actual_amount, discount = total, 0.0
        elif actual_amount is None:
            actual_amount = round(total - discount, 2)
        elif discount is None:
            discount = round(total - actual_amount, 2)
        elif abs((total - discount) - actual_amount) > _CENT:
            raise RecordError("actualAmount must equal total minus discount", field="actualAmount")

        if discount < -_CENT:
            raise RecordError("actualAmount cannot exceed total", field="actualAmount")
        if tip_amount < 0:
            raise RecordError("tipAmount cannot be negative", field="tipAmount")

        return cls(
            id=id,
            timestamp=timestamp,
            items=items,
            total=total,
            actual_amount=round(actual_amount, 2),
            discount=max(0.0, round(discount, 2)),
            payment_method=payment_method,
            tip_amount=round(tip_amount, 2),
            synced=synced,
        )

    @classmethod
    def from_payload(cls, payload: dict) -> "SaleRecord":
        if not isinstance(payload, dict):
            raise RecordError("Sale must be an object")
        sale_id = str(payload.get("id") or "").strip()
        if not sale_id:
            raise RecordError("Sale id is required", field="id")
        items = payload.get("items") or []
        if not isinstance(items, list):
            raise RecordError("items must be a list", field="items")
        payment_method = str(payload.get("paymentMethod") or "").strip()
        if not payment_method:
            raise RecordError("paymentMethod is required", field="paymentMethod")

        actual = payload.get("actualAmount")
        discount = payload.get("discount")
        return cls.build(
            id=sale_id,
            timestamp=_timestamp(payload.get("timestamp")),
            items=[LineItem.from_payload(item) for item in items],
            total=to_money(payload.get("total"), "total"),
            payment_method=payment_method,
            actual_amount=None if actual is None else to_money(actual, "actualAmount"),
            discount=None if discount is None else to_money(discount, "discount"),
            tip_amount=to_money(payload.get("tipAmount"), "tipAmount", default=0.0),
            synced=bool(payload.get("synced", False)),
        )

    def to_payload(self) -> dict:
        data = {
            "id": self.id,
            "timestamp": to_utc_z(self.timestamp),
            "items": [item.to_payload() for item in self.items],
            "total": self.total,
            "actualAmount": self.actual_amount,
            "discount": self.discount,
            "paymentMethod": self.payment_method,
            "isHookup": self.is_hookup,
            "synced": self.synced,
        }
        if self.tip_amount:
            data["tipAmount"] = self.tip_amount
        return data


@dataclass
class EmailSignupRecord:
    id: str
    timestamp: datetime
    email: str
    source: str
    name: str | None = None
    phone: str | None = None
    sale_id: str | None = None
    synced: bool = False

    @classmethod
    def from_payload(cls, payload: dict) -> "EmailSignupRecord":
        if not isinstance(payload, dict):
            raise RecordError("Email signup must be an object")
        email = str(payload.get("email") or "").strip()
        if not email:
            raise RecordError("Email is required", field="email")
        if not EMAIL_PATTERN.match(email):
            raise RecordError("Invalid email address", field="email")

        sale_id = payload.get("saleId") or None
        source = payload.get("source") or ("post-checkout" if sale_id else "manual-entry")
        if source not in EMAIL_SOURCES:
            raise RecordError(f"source must be one of {', '.join(EMAIL_SOURCES)}", field="source")

        timestamp = payload.get("timestamp")
        return cls(
            id=str(payload.get("id") or "").strip() or f"email-{uuid.uuid4().hex[:12]}",
            timestamp=_timestamp(timestamp) if timestamp else utcnow(),
            email=email,
            source=source,
            name=(payload.get("name") or "").strip() or None,
            phone=(payload.get("phone") or "").strip() or None,
            sale_id=sale_id,
            synced=bool(payload.get("synced", False)),
        )

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "timestamp": to_utc_z(self.timestamp),
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "source": self.source,
            "saleId": self.sale_id,
            "synced": self.synced,
        }


DEFAULT_PAYMENT_SETTINGS = (
    {"paymentType": "cash", "enabled": True, "displayName": "Cash"},
    {"paymentType": "venmo", "enabled": True, "displayName": "Venmo"},
    {"paymentType": "credit", "enabled": False, "displayName": "Credit", "transactionFee": 0.03},
    {"paymentType": "other", "enabled": True, "displayName": "Other"},
    {"paymentType": "custom1", "enabled": False, "displayName": "Custom 1"},
    {"paymentType": "custom2", "enabled": False, "displayName": "Custom 2"},
    {"paymentType": "custom3", "enabled": False, "displayName": "Custom 3"},
)
DEFAULT_CATEGORIES = ("Apparel", "Merch", "Music")
DEFAULT_THEME = "default"
DEFAULT_SHOW_TIP_JAR = True
DEFAULT_EMAIL_SIGNUP = {
    "enabled": False,
    "promptMessage": "Join our mailing list!",
    "collectName": False,
    "collectPhone": False,
    "autoDismissSeconds": 10,
}


def default_pos_settings() -> dict:
    """Settings for an organization or spreadsheet that never saved any."""
    return {
        "paymentSettings": [dict(p) for p in DEFAULT_PAYMENT_SETTINGS],
        "categories": list(DEFAULT_CATEGORIES),
        "theme": DEFAULT_THEME,
        "showTipJar": DEFAULT_SHOW_TIP_JAR,
        "currency": {"displayCurrency": "USD", "exchangeRate": 1.0},
        "emailSignup": dict(DEFAULT_EMAIL_SIGNUP),
    }


def _payment_setting(raw) -> dict:
    if not isinstance(raw, dict):
        raise RecordError("Each payment setting must be an object", field="paymentSettings")
    payment_type = str(raw.get("paymentType") or "").strip()
    if not payment_type:
        raise RecordError("paymentType is required", field="paymentSettings")
    setting = {
        "paymentType": payment_type,
        "enabled": bool(raw.get("enabled", False)),
        "displayName": str(raw.get("displayName") or "").strip() or payment_type.title(),
    }
    fee = raw.get("transactionFee")
    if fee not in (None, ""):
        try:
            fee = float(fee)
        except (TypeError, ValueError):
            raise RecordError("transactionFee must be a number", field="paymentSettings") from None
        if fee < 0:
            raise RecordError("transactionFee cannot be negative", field="paymentSettings")
        setting["transactionFee"] = fee
    if raw.get("qrCodeUrl"):
        setting["qrCodeUrl"] = str(raw["qrCodeUrl"])
    return setting


def normalize_pos_settings(payload: dict) -> dict:
    """
    Validate a full settings document; omitted blocks take their defaults.

    Settings are saved wholesale, so the result is always complete.
    """
    if not isinstance(payload, dict):
        raise RecordError("Settings must be an object")
    settings = default_pos_settings()

    if payload.get("paymentSettings") is not None:
        if not isinstance(payload["paymentSettings"], list):
            raise RecordError("paymentSettings must be a list", field="paymentSettings")
        settings["paymentSettings"] = [_payment_setting(p) for p in payload["paymentSettings"]]

    if payload.get("categories") is not None:
        if not isinstance(payload["categories"], list):
            raise RecordError("categories must be a list", field="categories")
        categories = [str(c).strip() for c in payload["categories"] if str(c).strip()]
        settings["categories"] = categories or list(DEFAULT_CATEGORIES)

    if payload.get("theme"):
        settings["theme"] = str(payload["theme"])
    if "showTipJar" in payload:
        settings["showTipJar"] = payload["showTipJar"] is not False

    currency = payload.get("currency")
    if currency is not None:
        if not isinstance(currency, dict):
            raise RecordError("currency must be an object", field="currency")
        code = str(currency.get("displayCurrency") or "USD").upper()
        try:
            fallback = default_rate(code)
        except UnsupportedCurrencyError as exc:
            raise RecordError(str(exc), field="currency") from None
        try:
            rate = currency.get("exchangeRate")
            rate = fallback if rate in (None, "") else float(rate)
        except (TypeError, ValueError):
            raise RecordError("exchangeRate must be a number", field="currency") from None
        if rate <= 0:
            raise RecordError("exchangeRate must be positive", field="currency")
        settings["currency"] = {"displayCurrency": code, "exchangeRate": rate}

    email = payload.get("emailSignup")
    if email is not None:
        if not isinstance(email, dict):
            raise RecordError("emailSignup must be an object", field="emailSignup")
        merged = dict(DEFAULT_EMAIL_SIGNUP)
        merged.update({k: email[k] for k in DEFAULT_EMAIL_SIGNUP if k in email})
        try:
            merged["autoDismissSeconds"] = max(0, int(merged["autoDismissSeconds"]))
        except (TypeError, ValueError):
            raise RecordError("autoDismissSeconds must be an integer", field="emailSignup") from None
        for flag in ("enabled", "collectName", "collectPhone"):
            merged[flag] = bool(merged[flag])
        settings["emailSignup"] = merged

    return settings
