from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from cryptoplace.config.currencies import CURRENCIES
from cryptoplace.schemas.market import (
    CoinTableResponse,
    CoinView,
    Currency,
    CurrencyRequest,
    StoreStatus,
    SuggestionResponse,
)
from cryptoplace.services.coin_detail import CoinDetailAggregator, DetailStatus
from cryptoplace.services.coin_store import CoinStore
from cryptoplace.services.errors import MarketDataError, NetworkFailure
from cryptoplace.services.formatting import to_table_row
from cryptoplace.services.search import (
    SearchState,
    on_query_change,
    on_select_suggestion,
    on_submit,
    table_rows,
)


router = APIRouter(tags=["market"])


def get_store(request: Request) -> CoinStore:
    return request.app.state.store


def get_source(request: Request) -> Any:
    return request.app.state.source


def error_response(
    *,
    code: str,
    message: str,
    status_code: int = 400,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=payload)


def market_error_response(exc: MarketDataError) -> JSONResponse:
    if isinstance(exc, NetworkFailure) and exc.status_code == 404:
        return error_response(
            code="coin_not_found",
            message="CoinGecko has no coin with that id",
            status_code=404,
            details=exc.details,
        )
    return error_response(code=exc.code, message=exc.message, status_code=502, details=exc.details)


# ----------------------------
# Currency
# ----------------------------
@router.get("/currencies", response_model=list[Currency])
async def list_currencies():
    return list(CURRENCIES.values())


@router.get("/currency", response_model=Currency)
async def get_currency(store: CoinStore = Depends(get_store)):
    return store.get_state().currency


@router.put("/currency")
async def set_currency(payload: CurrencyRequest, store: CoinStore = Depends(get_store)):
    """Select the display currency and wait for the list re-fetch it triggers."""
    await store.set_currency(payload.code)
    state = store.get_state()
    return {
        "currency": state.currency.model_dump(),
        "store": StoreStatus(**state.status()).model_dump(),
    }


# ----------------------------
# Coin list / search
# ----------------------------
@router.get("/coins", response_model=CoinTableResponse)
async def list_coins(
    q: str = Query("", description="Submitted search text (name contains, case-insensitive)"),
    name: str | None = Query(None, description="Selected suggestion (exact name, case-insensitive)"),
    store: CoinStore = Depends(get_store),
):
    state = store.get_state()
    search = SearchState(displayed=state.coins)

    if name is not None:
        search = on_select_suggestion(search, name, state.coins)
    elif q != "":
        search = on_submit(search, q, state.coins)

    # label rows with the currency the list was fetched in, not the one just selected
    priced_in = state.priced_in or state.currency
    return CoinTableResponse(
        currency=priced_in,
        query=search.query,
        total_matches=len(search.displayed),
        rows=[to_table_row(c, priced_in) for c in table_rows(search.displayed)],
    )


@router.get("/suggestions", response_model=SuggestionResponse)
async def coin_suggestions(q: str = "", store: CoinStore = Depends(get_store)):
    coins = store.get_state().coins
    search = on_query_change(SearchState(displayed=coins), q, coins)
    return SuggestionResponse(query=q, suggestions=list(search.suggestions))


# ----------------------------
# Coin detail
# ----------------------------
@router.get("/coins/{coin_id}", response_model=CoinView)
async def coin_detail(
    coin_id: str,
    store: CoinStore = Depends(get_store),
    source: Any = Depends(get_source),
):
    aggregator = CoinDetailAggregator(source)
    result = await aggregator.load(coin_id, store.get_state().currency)

    if result.status is DetailStatus.FAILED and result.error is not None:
        return market_error_response(result.error)
    if result.status is not DetailStatus.READY:
        # superseded while in flight; nothing to show for this request
        return error_response(
            code="detail_pending",
            message="Coin detail is still loading",
            status_code=503,
            details={"coin_id": coin_id},
        )
    return result.view()
