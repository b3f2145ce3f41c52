"""Known display currencies and their symbols."""

from __future__ import annotations

import logging
from typing import Dict

from cryptoplace.schemas.market import Currency

logger = logging.getLogger("cryptoplace.currency")


DEFAULT_CURRENCY_CODE = "usd"

CURRENCIES: Dict[str, Currency] = {
    "usd": Currency(code="usd", symbol="$"),
    "eur": Currency(code="eur", symbol="€"),
    "inr": Currency(code="inr", symbol="₹"),
}

DEFAULT_CURRENCY = CURRENCIES[DEFAULT_CURRENCY_CODE]


def resolve_currency(code: str | None) -> Currency:
    """
    Map a currency code onto the known set.
    Unknown or empty input falls back to the default (usd / $).
    """
    key = (code or "").strip().lower()
    currency = CURRENCIES.get(key)
    if currency is None:
        logger.warning("unknown currency %r, falling back to %s", code, DEFAULT_CURRENCY_CODE)
        return DEFAULT_CURRENCY
    return currency
