from __future__ import annotations

import dataclasses

import httpx
import pytest

from cryptoplace.services.coingecko import CoinGeckoClient
from cryptoplace.services.errors import MalformedResponse, NetworkFailure

MARKETS_PAYLOAD = [
    {
        "id": "bitcoin",
        "symbol": "btc",
        "name": "Bitcoin",
        "image": "https://img.test/bitcoin.png",
        "current_price": 42000.5,
        "market_cap": 820000000000,
        "market_cap_rank": 1,
        "total_volume": 15000000000,
        "price_change_percentage_24h": 1.2345,
    },
    {
        "id": "some-new-coin",
        "symbol": "snc",
        "name": "Some New Coin",
        "image": "https://img.test/snc.png",
        "current_price": 0.0012,
        "market_cap": 0,
        "market_cap_rank": None,
        "price_change_percentage_24h": None,
    },
]

DETAIL_PAYLOAD = {
    "id": "bitcoin",
    "symbol": "btc",
    "name": "Bitcoin",
    "market_cap_rank": 1,
    "image": {"thumb": "t.png", "small": "s.png", "large": "https://img.test/bitcoin-large.png"},
    "market_data": {
        "current_price": {"usd": 42000.5, "eur": 38000, "xyz": None},
        "market_cap": {"usd": 820000000000, "eur": 750000000000},
        "high_24h": {"usd": 43000, "eur": 39000},
        "low_24h": {"usd": 41000, "eur": 37000},
    },
}


def _client(settings, handler) -> CoinGeckoClient:
    transport = httpx.MockTransport(handler)
    return CoinGeckoClient(settings, client=httpx.AsyncClient(transport=transport))


@pytest.mark.asyncio
async def test_coin_markets_request_and_parse(test_settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["headers"] = request.headers
        return httpx.Response(200, json=MARKETS_PAYLOAD)

    client = _client(test_settings, handler)
    coins = await client.coin_markets("eur")

    assert seen["url"].path == "/v3/coins/markets"
    assert seen["url"].params["vs_currency"] == "eur"
    assert seen["headers"]["accept"] == "application/json"
    assert "x-cg-demo-api-key" not in seen["headers"]
    assert [c.id for c in coins] == ["bitcoin", "some-new-coin"]
    assert coins[0].market_cap == 820000000000
    assert coins[1].market_cap_rank is None
    assert coins[1].price_change_percentage_24h is None


@pytest.mark.asyncio
async def test_api_key_header_sent_when_configured(test_settings):
    settings = dataclasses.replace(test_settings, COINGECKO_API_KEY="CG-demo")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers.get("x-cg-demo-api-key")
        return httpx.Response(200, json=[])

    await _client(settings, handler).coin_markets("usd")
    assert seen["key"] == "CG-demo"


@pytest.mark.asyncio
async def test_coin_detail_reads_market_data(test_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v3/coins/bitcoin"
        return httpx.Response(200, json=DETAIL_PAYLOAD)

    detail = await _client(test_settings, handler).coin_detail("bitcoin")

    assert detail.image == "https://img.test/bitcoin-large.png"
    assert detail.current_price == {"usd": 42000.5, "eur": 38000.0}
    assert detail.high_24h["eur"] == 39000.0
    assert detail.market_cap_rank == 1


@pytest.mark.asyncio
async def test_market_chart_fixed_lookback(test_settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(200, json={"prices": [[1700000000000, 42000.5], [1700086400000, 42500.0]]})

    points = await _client(test_settings, handler).market_chart("bitcoin", "inr")

    assert seen["url"].path == "/v3/coins/bitcoin/market_chart"
    assert seen["url"].params["vs_currency"] == "inr"
    assert seen["url"].params["days"] == "10"
    assert seen["url"].params["interval"] == "daily"
    assert [(p.timestamp_ms, p.price) for p in points] == [(1700000000000, 42000.5), (1700086400000, 42500.0)]


@pytest.mark.asyncio
async def test_non_2xx_is_network_failure(test_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"status": {"error_code": 429}})

    with pytest.raises(NetworkFailure) as excinfo:
        await _client(test_settings, handler).coin_markets("usd")
    assert excinfo.value.status_code == 429
    assert excinfo.value.to_dict()["code"] == "network_failure"


@pytest.mark.asyncio
async def test_transport_error_is_network_failure(test_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkFailure) as excinfo:
        await _client(test_settings, handler).coin_detail("bitcoin")
    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_invalid_json_is_malformed(test_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>rate limited</html>")

    with pytest.raises(MalformedResponse):
        await _client(test_settings, handler).coin_markets("usd")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"error": "coin not found"},
        [{"id": "bitcoin", "name": "Bitcoin", "symbol": "btc"}],
    ],
)
async def test_wrong_shape_market_list_is_malformed(test_settings, payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    with pytest.raises(MalformedResponse):
        await _client(test_settings, handler).coin_markets("usd")


@pytest.mark.asyncio
async def test_detail_without_market_data_is_malformed(test_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "bitcoin", "name": "Bitcoin", "symbol": "btc"})

    with pytest.raises(MalformedResponse):
        await _client(test_settings, handler).coin_detail("bitcoin")


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open(test_settings):
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])))
    client = CoinGeckoClient(test_settings, client=http)
    await client.close()
    assert http.is_closed is False
    await http.aclose()


@pytest.mark.asyncio
async def test_coin_id_stays_a_single_path_segment(test_settings):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        if request.url.raw_path.split(b"?")[0].endswith(b"/market_chart"):
            return httpx.Response(200, json={"prices": []})
        return httpx.Response(200, json=DETAIL_PAYLOAD)

    client = _client(test_settings, handler)
    await client.coin_detail("a/b?c")
    await client.market_chart("a/b?c", "usd")

    detail_url, chart_url = seen
    assert detail_url.raw_path == b"/v3/coins/a%2Fb%3Fc"
    assert detail_url.query == b""
    assert chart_url.raw_path.split(b"?")[0] == b"/v3/coins/a%2Fb%3Fc/market_chart"
    assert dict(chart_url.params) == {"vs_currency": "usd", "days": "10", "interval": "daily"}
