# cryptoplace/services/coin_store.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from cryptoplace.schemas.market import CoinSummary, Currency
from cryptoplace.services.currency import CurrencySelector
from cryptoplace.services.errors import MarketDataError
from cryptoplace.utils.time import iso_z, utcnow

logger = logging.getLogger("cryptoplace.store")


@dataclass(frozen=True)
class StoreState:
    coins: Tuple[CoinSummary, ...]
    currency: Currency
    loaded: bool = False
    last_updated: Optional[datetime] = None
    last_error: Optional[MarketDataError] = None
    # currency the held coins are quoted in; lags `currency` until a fetch succeeds
    priced_in: Optional[Currency] = None

    def status(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "coins": len(self.coins),
            "loaded": self.loaded,
            "last_updated": iso_z(self.last_updated),
            "last_error": self.last_error.to_dict() if self.last_error else None,
            "priced_in": self.priced_in,
        }


StoreListener = Callable[[StoreState], None]


class CoinStore:
    """
    Full coin list for the active currency.

    ``source`` is anything with ``async coin_markets(vs_currency) -> list[CoinSummary]``
    (normally a CoinGeckoClient). The store follows the selector: each currency
    change schedules exactly one list fetch. Every fetch is tagged with
    (sequence, currency code); a completion whose tag is no longer the latest
    is dropped, so a slow response for an old currency never overwrites a
    newer one. Failures keep the last good list.
    """

    def __init__(self, source: Any, selector: Optional[CurrencySelector] = None):
        self._source = source
        self._selector = selector or CurrencySelector()
        self._state = StoreState(coins=(), currency=self._selector.current)
        self._seq = 0
        self._pending: Optional[asyncio.Task] = None
        self._deferred = False
        self._listeners: List[StoreListener] = []
        self._selector.subscribe(self._on_currency_change)

    @property
    def selector(self) -> CurrencySelector:
        return self._selector

    def get_state(self) -> StoreState:
        return self._state

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Call ``listener`` with the new state after every list replacement."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ----------------------------
    # triggers
    # ----------------------------
    @property
    def needs_refresh(self) -> bool:
        """True when a currency change arrived with no event loop to fetch on."""
        return self._deferred

    def set_currency(self, currency: Union[Currency, str]) -> asyncio.Task:
        """Switch currency; returns the re-fetch task the change scheduled."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError("CoinStore.set_currency needs a running event loop") from None

        seq_before = self._seq
        self._selector.select(currency)
        if self._pending is None or self._seq == seq_before:
            raise RuntimeError("currency change did not schedule a coin list fetch")
        return self._pending

    async def refresh(self) -> StoreState:
        await self._schedule_fetch(self._selector.current)
        return self._state

    async def start(self) -> StoreState:
        """Initial load for the default currency. Never raises on fetch failure."""
        return await self.refresh()

    async def wait_idle(self) -> None:
        if self._pending is not None:
            await asyncio.gather(self._pending, return_exceptions=True)

    def _on_currency_change(self, currency: Currency) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # selector driven from sync code: stay consistent, fetch on next refresh()
            self._seq += 1
            self._deferred = True
            self._state = replace(self._state, currency=currency)
            logger.warning("currency change without event loop | currency=%s | fetch deferred", currency.code)
            return

        self._state = replace(self._state, currency=currency)
        self._schedule_fetch(currency, loop)

    def _schedule_fetch(
        self,
        currency: Currency,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> asyncio.Task:
        loop = loop or asyncio.get_running_loop()
        self._seq += 1
        self._deferred = False
        self._pending = loop.create_task(self._fetch(self._seq, currency.code))
        return self._pending

    # ----------------------------
    # fetch + apply
    # ----------------------------
    def _is_current(self, seq: int, code: str) -> bool:
        return seq == self._seq and code == self._selector.current.code

    async def _fetch(self, seq: int, code: str) -> bool:
        t0 = time.time()
        logger.info("coin list fetch | currency=%s | seq=%s", code, seq)
        try:
            coins = await self._source.coin_markets(code)
        except MarketDataError as exc:
            if not self._is_current(seq, code):
                logger.debug("stale coin list failure dropped | currency=%s | seq=%s", code, seq)
                return False
            dt_ms = int((time.time() - t0) * 1000)
            logger.warning(
                "coin list fetch failed | currency=%s | %s | %s | %dms",
                code,
                exc.code,
                exc.message,
                dt_ms,
            )
            self._state = replace(self._state, last_error=exc)
            return False

        if not self._is_current(seq, code):
            logger.debug("stale coin list dropped | currency=%s | seq=%s | latest=%s", code, seq, self._seq)
            return False

        self._state = StoreState(
            coins=tuple(coins),
            currency=self._selector.current,
            loaded=True,
            last_updated=utcnow(),
            last_error=None,
            priced_in=self._selector.current,
        )
        dt_ms = int((time.time() - t0) * 1000)
        logger.info("coin list replaced | currency=%s | coins=%s | %dms", code, len(coins), dt_ms)

        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("coin store listener failed")
        return True
