# cryptoplace/services/coin_detail.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from cryptoplace.schemas.market import CoinDetail, CoinView, Currency, PricePoint
from cryptoplace.services.chart import build_chart
from cryptoplace.services.currency import CurrencySelector
from cryptoplace.services.errors import MarketDataError

logger = logging.getLogger("cryptoplace.detail")


class DetailStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class DetailState:
    status: DetailStatus
    coin_id: Optional[str] = None
    currency: Optional[Currency] = None
    detail: Optional[CoinDetail] = None
    history: Tuple[PricePoint, ...] = ()
    error: Optional[MarketDataError] = None

    def view(self) -> CoinView:
        if self.status is not DetailStatus.READY or self.detail is None or self.currency is None:
            raise ValueError(f"coin view unavailable while {self.status.value}")
        code = self.currency.code
        detail = self.detail
        return CoinView(
            id=detail.id,
            name=detail.name,
            symbol=detail.symbol,
            image=detail.image,
            market_cap_rank=detail.market_cap_rank,
            currency=self.currency,
            current_price=detail.current_price.get(code),
            market_cap=detail.market_cap.get(code),
            high_24h=detail.high_24h.get(code),
            low_24h=detail.low_24h.get(code),
            chart=build_chart(self.history),
        )


class CoinDetailAggregator:
    """
    Detail record + 10 day daily history for one (coin, currency) pair.

    ``source`` needs ``async coin_detail(coin_id)`` and
    ``async market_chart(coin_id, vs_currency)``. Both calls run concurrently;
    the state stays PENDING until both are back. Either one failing gives
    FAILED instead of an endless pending state. Completions for a pair that
    has since been replaced are ignored.
    """

    def __init__(self, source: Any):
        self._source = source
        self._seq = 0
        self._key: Optional[Tuple[str, str]] = None
        self._task: Optional[asyncio.Task] = None
        self._state = DetailState(status=DetailStatus.PENDING)

    @property
    def state(self) -> DetailState:
        return self._state

    async def load(self, coin_id: str, currency: Currency) -> DetailState:
        """Always issue both calls for (coin_id, currency) and wait for the outcome."""
        return await self._start(coin_id, currency)

    async def ensure(self, coin_id: str, currency: Currency) -> DetailState:
        """Like load(), but reuse the current request when the pair hasn't changed."""
        if (
            self._task is not None
            and self._key == (coin_id, currency.code)
            and self._state.status is not DetailStatus.FAILED
        ):
            return await self._task
        return await self.load(coin_id, currency)

    def follow(self, selector: CurrencySelector) -> Callable[[], None]:
        """Re-issue the current coin's calls whenever the selector's currency changes."""

        def _on_change(currency: Currency) -> None:
            if self._key is None:
                return
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                # no loop to run on; the next ensure() sees the changed pair and reloads
                logger.debug("currency change without event loop | coin=%s", self._key[0])
                return
            task = self._start(self._key[0], currency)
            task.add_done_callback(self._log_task_failure)

        return selector.subscribe(_on_change)

    @staticmethod
    def _log_task_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("coin detail refresh crashed | %s", exc, exc_info=exc)

    def _start(self, coin_id: str, currency: Currency) -> asyncio.Task:
        self._seq += 1
        self._key = (coin_id, currency.code)
        self._state = DetailState(status=DetailStatus.PENDING, coin_id=coin_id, currency=currency)
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(self._seq, coin_id, currency))
        return self._task

    async def _run(self, seq: int, coin_id: str, currency: Currency) -> DetailState:
        t0 = time.time()
        detail, history = await asyncio.gather(
            self._source.coin_detail(coin_id),
            self._source.market_chart(coin_id, currency.code),
            return_exceptions=True,
        )

        if seq != self._seq:
            logger.debug("stale coin detail dropped | coin=%s | currency=%s", coin_id, currency.code)
            return self._state

        for outcome in (detail, history):
            if isinstance(outcome, MarketDataError):
                logger.warning(
                    "coin detail failed | coin=%s | currency=%s | %s | %s",
                    coin_id,
                    currency.code,
                    outcome.code,
                    outcome.message,
                )
                self._state = DetailState(
                    status=DetailStatus.FAILED,
                    coin_id=coin_id,
                    currency=currency,
                    error=outcome,
                )
                return self._state
            if isinstance(outcome, BaseException):
                raise outcome

        self._state = DetailState(
            status=DetailStatus.READY,
            coin_id=coin_id,
            currency=currency,
            detail=detail,
            history=tuple(history),
        )
        dt_ms = int((time.time() - t0) * 1000)
        logger.info(
            "coin detail ready | coin=%s | currency=%s | points=%s | %dms",
            coin_id,
            currency.code,
            len(history),
            dt_ms,
        )
        return self._state
