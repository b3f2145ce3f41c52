"""Table-row rendering for the coin list."""

from __future__ import annotations

import math
from typing import Optional

from cryptoplace.schemas.market import CoinSummary, Currency, TableRow


def format_amount(value: float) -> str:
    """Thousands separators, at most 3 fraction digits, no trailing zeros."""
    text = f"{value:,.3f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def floor_change(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return math.floor(value * 100) / 100


def to_table_row(coin: CoinSummary, currency: Currency) -> TableRow:
    change = coin.price_change_percentage_24h
    return TableRow(
        rank=coin.market_cap_rank,
        id=coin.id,
        label=f"{coin.name} - {coin.symbol}",
        image=coin.image,
        price=f"{currency.symbol} {format_amount(coin.current_price)}",
        market_cap=f"{currency.symbol} {format_amount(coin.market_cap)}",
        change_24h=floor_change(change),
        trend="up" if change is not None and change > 0 else "down",
        path=f"/coin/{coin.id}",
    )
