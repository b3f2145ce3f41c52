from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from cryptoplace.config.settings import Settings
from cryptoplace.schemas.market import CoinDetail, CoinSummary, PricePoint


def _make_coin(
    coin_id: str,
    name: str | None = None,
    symbol: str | None = None,
    *,
    price: float = 1.0,
    rank: int | None = 1,
    market_cap: float = 1_000.0,
    change: float | None = 0.5,
) -> CoinSummary:
    return CoinSummary(
        id=coin_id,
        name=name or coin_id.title(),
        symbol=symbol or coin_id[:3],
        image=f"https://img.test/{coin_id}.png",
        current_price=price,
        market_cap_rank=rank,
        market_cap=market_cap,
        price_change_percentage_24h=change,
    )


class FakeSource:
    """
    In-memory market source. Values may be exceptions (raised on call).
    Register an asyncio.Event in ``gates`` to hold a call until it is set.
    """

    def __init__(self) -> None:
        self.markets: dict[str, Any] = {}
        self.details: dict[str, Any] = {}
        self.charts: dict[tuple[str, str], Any] = {}
        self.gates: dict[Any, asyncio.Event] = {}
        self.calls: list[tuple[str, ...]] = []
        self.closed = False

    async def _wait(self, key: Any) -> None:
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()

    @staticmethod
    def _result(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    async def coin_markets(self, vs_currency: str) -> list[CoinSummary]:
        self.calls.append(("markets", vs_currency))
        await self._wait(("markets", vs_currency))
        return self._result(self.markets[vs_currency])

    async def coin_detail(self, coin_id: str) -> CoinDetail:
        self.calls.append(("detail", coin_id))
        await self._wait(("detail", coin_id))
        return self._result(self.details[coin_id])

    async def market_chart(self, coin_id: str, vs_currency: str) -> list[PricePoint]:
        self.calls.append(("chart", coin_id, vs_currency))
        await self._wait(("chart", coin_id, vs_currency))
        return self._result(self.charts[(coin_id, vs_currency)])

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def make_coin() -> Callable[..., CoinSummary]:
    return _make_coin


@pytest.fixture()
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        COINGECKO_BASE_URL="https://api.test/v3",
        COINGECKO_API_KEY="",
        COINGECKO_KEY_HEADER="x-cg-demo-api-key",
        HTTP_TIMEOUT_SECONDS=5.0,
        DEFAULT_CURRENCY="usd",
        FETCH_ON_STARTUP=True,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture()
def bitcoin_detail() -> CoinDetail:
    return CoinDetail(
        id="bitcoin",
        name="Bitcoin",
        symbol="btc",
        image="https://img.test/bitcoin-large.png",
        market_cap_rank=1,
        current_price={"usd": 42000.5, "eur": 38000.0},
        market_cap={"usd": 820_000_000_000.0, "eur": 750_000_000_000.0},
        high_24h={"usd": 43000.0, "eur": 39000.0},
        low_24h={"usd": 41000.0, "eur": 37000.0},
    )


@pytest.fixture()
def two_day_series() -> list[PricePoint]:
    return [
        PricePoint(timestamp_ms=1700000000000, price=42000.5),
        PricePoint(timestamp_ms=1700086400000, price=42500.0),
    ]
