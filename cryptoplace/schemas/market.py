"""Pydantic models for market data coming from CoinGecko and going out to clients."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cryptoplace.services.errors import MalformedResponse


class Currency(BaseModel):
    """Display currency: the CoinGecko ``vs_currency`` code plus its symbol."""

    model_config = ConfigDict(frozen=True)

    code: str
    symbol: str


class CoinSummary(BaseModel):
    """One row of ``/coins/markets``. Extra upstream fields are ignored."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    symbol: str
    image: Optional[str] = None
    current_price: float
    market_cap_rank: Optional[int] = None
    market_cap: float
    price_change_percentage_24h: Optional[float] = None


class CoinDetail(BaseModel):
    """Single-coin record from ``/coins/{id}``; market fields are keyed by currency code."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    symbol: str
    image: Optional[str] = None
    market_cap_rank: Optional[int] = None
    current_price: dict[str, float] = Field(default_factory=dict)
    market_cap: dict[str, float] = Field(default_factory=dict)
    high_24h: dict[str, float] = Field(default_factory=dict)
    low_24h: dict[str, float] = Field(default_factory=dict)


class PricePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp_ms: int
    price: float


# ----------------------------
# Payload parsing
# ----------------------------
def parse_coin_markets(payload: Any) -> list[CoinSummary]:
    if not isinstance(payload, list):
        raise MalformedResponse(
            "market list is not a JSON array",
            details={"type": type(payload).__name__},
        )
    try:
        return [CoinSummary.model_validate(item) for item in payload]
    except ValidationError as exc:
        raise MalformedResponse(
            "market list entry has an unexpected shape",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def _price_map(market_data: dict[str, Any], key: str) -> dict[str, Any]:
    value = market_data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedResponse(f"market_data.{key} is not an object")
    # CoinGecko sends null for currencies it has no quote for
    return {code: amount for code, amount in value.items() if amount is not None}


def parse_coin_detail(payload: Any) -> CoinDetail:
    if not isinstance(payload, dict):
        raise MalformedResponse("coin detail is not a JSON object")

    market_data = payload.get("market_data")
    if not isinstance(market_data, dict):
        raise MalformedResponse(
            "coin detail is missing market_data",
            details={"coin_id": payload.get("id")},
        )

    image = payload.get("image")
    try:
        return CoinDetail(
            id=payload.get("id"),
            name=payload.get("name"),
            symbol=payload.get("symbol"),
            image=image.get("large") if isinstance(image, dict) else None,
            market_cap_rank=payload.get("market_cap_rank"),
            current_price=_price_map(market_data, "current_price"),
            market_cap=_price_map(market_data, "market_cap"),
            high_24h=_price_map(market_data, "high_24h"),
            low_24h=_price_map(market_data, "low_24h"),
        )
    except ValidationError as exc:
        raise MalformedResponse(
            "coin detail has an unexpected shape",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def parse_market_chart(payload: Any) -> list[PricePoint]:
    """``{"prices": [[ts_ms, price], ...]}`` -> ordered PricePoints (no re-sorting)."""
    if not isinstance(payload, dict) or not isinstance(payload.get("prices"), list):
        raise MalformedResponse("market chart is missing the prices array")

    points: list[PricePoint] = []
    for item in payload["prices"]:
        if not isinstance(item, (list, tuple)) or len(item) < 2:
            raise MalformedResponse("market chart point is not a [timestamp, price] pair")
        try:
            points.append(PricePoint(timestamp_ms=int(item[0]), price=float(item[1])))
        except (TypeError, ValueError) as exc:
            raise MalformedResponse("market chart point is not numeric") from exc
    return points


# ----------------------------
# Response contracts
# ----------------------------
class TableRow(BaseModel):
    rank: Optional[int]
    id: str
    label: str
    image: Optional[str]
    price: str
    market_cap: str
    change_24h: Optional[float]
    trend: str
    path: str


class CoinTableResponse(BaseModel):
    currency: Currency
    query: str
    total_matches: int
    rows: list[TableRow]


class SuggestionResponse(BaseModel):
    query: str
    suggestions: list[CoinSummary]


class CurrencyRequest(BaseModel):
    code: str = Field(..., description="Display currency code, e.g. usd, eur, inr")


class StoreStatus(BaseModel):
    currency: Currency
    coins: int
    loaded: bool
    last_updated: Optional[str] = None
    last_error: Optional[dict[str, Any]] = None
    priced_in: Optional[Currency] = None


class ChartPoint(BaseModel):
    date: str
    price: float


class Chart(BaseModel):
    columns: list[str] = Field(default_factory=lambda: ["Date", "Prices"])
    has_data: bool
    points: list[ChartPoint]


class CoinView(BaseModel):
    """Everything the coin page renders for one coin in one currency."""

    id: str
    name: str
    symbol: str
    image: Optional[str]
    market_cap_rank: Optional[int]
    currency: Currency
    current_price: Optional[float]
    market_cap: Optional[float]
    high_24h: Optional[float]
    low_24h: Optional[float]
    chart: Chart
