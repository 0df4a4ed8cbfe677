# Overview: Display-currency table and USD conversion helpers.

"""
Prices are stored in USD everywhere (sheet cells and database rows).
Display currencies convert with the organization's exchange rate, unless a
product carries an explicit per-currency override.
"""

from __future__ import annotations

from dataclasses import dataclass


BASE_CURRENCY = "USD"


@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    name: str
    symbol: str
    default_rate: float  # display units per 1 USD
    bill_denominations: tuple[int, ...]

    @property
    def decimals(self) -> int:
        return 0 if self.code == "JPY" else 2

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "symbol": self.symbol,
            "defaultRate": self.default_rate,
            "billDenominations": list(self.bill_denominations),
        }


CURRENCIES: dict[str, CurrencyInfo] = {
    info.code: info
    for info in (
        CurrencyInfo("USD", "US Dollar", "$", 1.0, (100, 50, 20, 10, 5, 1)),
        CurrencyInfo("CAD", "Canadian Dollar", "CA$", 1.35, (100, 50, 20, 10, 5)),
        CurrencyInfo("EUR", "Euro", "€", 0.92, (100, 50, 20, 10, 5)),
        CurrencyInfo("GBP", "British Pound", "£", 0.79, (50, 20, 10, 5)),
        CurrencyInfo("MXN", "Mexican Peso", "MX$", 17.0, (1000, 500, 200, 100, 50, 20)),
        CurrencyInfo("AUD", "Australian Dollar", "AU$", 1.52, (100, 50, 20, 10, 5)),
        CurrencyInfo("JPY", "Japanese Yen", "¥", 149.0, (10000, 5000, 2000, 1000)),
    )
}


class UnsupportedCurrencyError(ValueError):
    pass


def get_currency(code: str | None) -> CurrencyInfo:
    key = (code or BASE_CURRENCY).upper()
    info = CURRENCIES.get(key)
    if info is None:
        raise UnsupportedCurrencyError(f"Unsupported currency: {code}")
    return info


def default_rate(code: str | None) -> float:
    return get_currency(code).default_rate


def convert_from_usd(amount: float, rate: float, code: str | None = None) -> float:
    info = get_currency(code)
    return round(amount * rate, info.decimals)


def convert_to_usd(amount: float, rate: float) -> float:
    if rate <= 0:
        raise ValueError("Exchange rate must be positive")
    return round(amount / rate, 2)


def display_price(
    usd_price: float,
    code: str | None,
    rate: float | None = None,
    overrides: dict[str, float] | None = None,
) -> float:
    """Price in the display currency; per-product overrides win over conversion."""
    info = get_currency(code)
    if overrides and info.code in overrides:
        return overrides[info.code]
    return convert_from_usd(usd_price, info.default_rate if rate is None else rate, info.code)


def format_price(usd_amount: float, code: str | None = None, rate: float | None = None) -> str:
    info = get_currency(code)
    converted = usd_amount * (info.default_rate if rate is None else rate)
    return f"{info.symbol}{converted:.{info.decimals}f}"
