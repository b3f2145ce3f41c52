"""
Search and autocomplete over the coin list.

Matching is plain ``str.lower()`` containment/equality: no trimming, no
Unicode normalization, no ranking. Three policies coexist on purpose:

- suggestions: name OR symbol contains the query, first 10 in source order
- submit: name contains the query
- suggestion select: name equals the selected name
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Tuple

from cryptoplace.schemas.market import CoinSummary

logger = logging.getLogger("cryptoplace.search")

SUGGESTION_LIMIT = 10
TABLE_ROW_LIMIT = 15

Coins = Tuple[CoinSummary, ...]


def suggest(query: str, coins: Sequence[CoinSummary], limit: int = SUGGESTION_LIMIT) -> Coins:
    if query == "":
        return ()
    needle = query.lower()
    out = []
    for coin in coins:
        if needle in coin.name.lower() or needle in coin.symbol.lower():
            out.append(coin)
            if len(out) >= limit:
                break
    return tuple(out)


def filter_by_name(query: str, coins: Sequence[CoinSummary]) -> Coins:
    needle = query.lower()
    return tuple(c for c in coins if needle in c.name.lower())


def filter_by_exact_name(name: str, coins: Sequence[CoinSummary]) -> Coins:
    target = name.lower()
    return tuple(c for c in coins if c.name.lower() == target)


def table_rows(displayed: Sequence[CoinSummary]) -> Coins:
    """The results table only ever shows the first 15 entries."""
    return tuple(displayed[:TABLE_ROW_LIMIT])


@dataclass(frozen=True)
class SearchState:
    query: str = ""
    displayed: Coins = ()
    suggestions: Coins = ()


# ----------------------------
# Pure transitions
# ----------------------------
def on_query_change(state: SearchState, query: str, coins: Sequence[CoinSummary]) -> SearchState:
    if query == "":
        return SearchState(query="", displayed=tuple(coins), suggestions=())
    # displayed only moves on submit / select
    return SearchState(query=query, displayed=state.displayed, suggestions=suggest(query, coins))


def on_submit(state: SearchState, query: str, coins: Sequence[CoinSummary]) -> SearchState:
    return SearchState(query=query, displayed=filter_by_name(query, coins), suggestions=())


def on_select_suggestion(state: SearchState, name: str, coins: Sequence[CoinSummary]) -> SearchState:
    return SearchState(query=name, displayed=filter_by_exact_name(name, coins), suggestions=())


def on_collection_replaced(state: SearchState, coins: Sequence[CoinSummary]) -> SearchState:
    return SearchState(
        query=state.query,
        displayed=tuple(coins),
        suggestions=suggest(state.query, coins),
    )


@dataclass
class SearchSession:
    """Stateful wrapper: one search box bound to one coin collection."""

    coins: Coins = ()
    state: SearchState = field(default_factory=SearchState)
    _unsubscribe: Optional[Callable[[], None]] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.coins = tuple(self.coins)
        if not self.state.displayed and not self.state.query:
            self.state = SearchState(displayed=self.coins)

    def query_changed(self, query: str) -> SearchState:
        self.state = on_query_change(self.state, query, self.coins)
        return self.state

    def submit(self, query: Optional[str] = None) -> SearchState:
        self.state = on_submit(self.state, self.state.query if query is None else query, self.coins)
        logger.debug("search submit | q=%r | matches=%s", self.state.query, len(self.state.displayed))
        return self.state

    def select_suggestion(self, name: str) -> SearchState:
        self.state = on_select_suggestion(self.state, name, self.coins)
        return self.state

    def replace_coins(self, coins: Sequence[CoinSummary]) -> SearchState:
        self.coins = tuple(coins)
        self.state = on_collection_replaced(self.state, self.coins)
        return self.state

    def table(self) -> Coins:
        return table_rows(self.state.displayed)

    def follow(self, store) -> None:
        """Track a CoinStore: take its current list now and every replacement after."""
        self.replace_coins(store.get_state().coins)
        self._unsubscribe = store.subscribe(lambda s: self.replace_coins(s.coins))

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
