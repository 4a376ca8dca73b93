from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CurrencyOption:
    code: str
    symbol: str
    name: str


CURRENCY_OPTIONS = [
    CurrencyOption("USD", "$", "US Dollar"),
    CurrencyOption("EUR", "€", "Euro"),
    CurrencyOption("GBP", "£", "British Pound"),
    CurrencyOption("JPY", "¥", "Japanese Yen"),
]

_SYMBOLS = {option.code: option.symbol for option in CURRENCY_OPTIONS}


def get_currency_symbol(code: str | None) -> str:
    return _SYMBOLS.get((code or "").upper(), "$")


def format_currency(amount: float, code: str = "USD") -> str:
    """Sign is dropped; callers say who pays whom."""
    return f"{get_currency_symbol(code)}{abs(amount):,.2f}"
