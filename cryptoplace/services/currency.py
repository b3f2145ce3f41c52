from __future__ import annotations

import logging
from typing import Callable, List, Union

from cryptoplace.config.currencies import DEFAULT_CURRENCY, resolve_currency
from cryptoplace.schemas.market import Currency

logger = logging.getLogger("cryptoplace.currency")

CurrencyListener = Callable[[Currency], None]


class CurrencySelector:
    """
    Holds the single active display currency.

    Every select() is a change event, even when the code is unchanged;
    listeners run synchronously in subscription order.
    """

    def __init__(self, initial: Union[Currency, str, None] = None):
        self._current = DEFAULT_CURRENCY if initial is None else self._resolve(initial)
        self._listeners: List[CurrencyListener] = []

    @staticmethod
    def _resolve(value: Union[Currency, str]) -> Currency:
        code = value.code if isinstance(value, Currency) else value
        return resolve_currency(code)

    @property
    def current(self) -> Currency:
        return self._current

    def select(self, value: Union[Currency, str]) -> Currency:
        currency = self._resolve(value)
        previous = self._current
        self._current = currency
        logger.info("currency selected | %s -> %s", previous.code, currency.code)

        for listener in list(self._listeners):
            listener(currency)
        return currency

    def subscribe(self, listener: CurrencyListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
