"""End-to-end HTTP tests for the proxy app"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from kline_proxy.api.server import CORS_HEADERS, create_app
from kline_proxy.core.exceptions import FetchFailureError
from kline_proxy.models.kline import UpstreamResponse


JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@pytest.fixture
def http(settings, upstream_client):
    return TestClient(create_app(settings=settings, client=upstream_client))


def _assert_cors(response):
    for name, value in CORS_HEADERS.items():
        assert response.headers[name] == value


def test_root_descriptor(http):
    response = http.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"] == JSON_CONTENT_TYPE
    _assert_cors(response)
    body = response.json()
    assert body["service"] == "binance-kline-api"
    assert set(body["endpoints"]) == {"health", "kline", "klines"}


def test_health(http):
    response = http.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    _assert_cors(response)


def test_kline_proxied(http, upstream_client, kline_row):
    response = http.get("/kline", params={"symbol": "btcusdt", "interval": "1m", "limit": "10"})

    assert response.status_code == 200
    assert response.headers["content-type"] == JSON_CONTENT_TYPE
    _assert_cors(response)
    assert response.json() == {
        "symbol": "BTCUSDT",
        "interval": "1m",
        "limit": 10,
        "source": "binance",
        "data": [kline_row],
    }
    upstream_client.fetch_klines.assert_awaited_once()


def test_klines_trailing_slash_not_redirected(http, upstream_client):
    response = http.get("/klines/?symbol=ethusdt&interval=5m&limit=200", follow_redirects=False)

    assert response.status_code == 200
    assert response.json()["symbol"] == "ETHUSDT"
    assert response.json()["limit"] == 200


def test_repeated_param_uses_first_value(http, upstream_client):
    response = http.get("/kline?symbol=ethusdt&symbol=btcusdt")

    assert response.json()["symbol"] == "ETHUSDT"


def test_limit_clamped(http):
    assert http.get("/kline?limit=5000").json()["limit"] == 1000
    assert http.get("/kline?limit=-5").json()["limit"] == 100
    assert http.get("/kline?limit=250.9").json()["limit"] == 250


@pytest.mark.parametrize(
    "query, error",
    [
        ("symbol=btc", "Invalid symbol format"),
        ("symbol=BTC_USDT", "Invalid symbol format"),
        ("symbol=BTCUSDT%0A", "Invalid symbol format"),
        ("interval=2m", "Invalid interval"),
        ("interval=1Y", "Invalid interval"),
        ("startTime=2000&endTime=1000", "startTime must be <= endTime"),
    ],
)
def test_validation_errors(http, upstream_client, query, error):
    response = http.get(f"/kline?{query}")

    assert response.status_code == 400
    assert response.headers["content-type"] == JSON_CONTENT_TYPE
    _assert_cors(response)
    assert response.json() == {"error": error}
    upstream_client.fetch_klines.assert_not_awaited()


def test_oversized_hex_values_fall_back(http, upstream_client):
    huge = "0x" + "f" * 300

    response = http.get(f"/kline?limit={huge}&startTime={huge}")

    assert response.status_code == 200
    assert response.headers["content-type"] == JSON_CONTENT_TYPE
    _assert_cors(response)
    assert response.json()["limit"] == 100
    query = upstream_client.fetch_klines.await_args.args[0]
    assert query.as_dict() == {"symbol": "BTCUSDT", "interval": "1m", "limit": "100"}


def test_ordered_range_accepted(http):
    response = http.get("/kline?startTime=1000&endTime=2000")

    assert response.status_code == 200


def test_not_found(http):
    response = http.get("/candles")

    assert response.status_code == 404
    _assert_cors(response)
    assert response.json()["error"] == "Not Found"


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE"])
@pytest.mark.parametrize("path", ["/", "/health", "/kline", "/nowhere"])
def test_method_not_allowed(http, method, path):
    response = http.request(method, path)

    assert response.status_code == 405
    _assert_cors(response)
    assert response.json() == {"error": "Method Not Allowed", "message": "Use GET requests only."}


def test_unrouted_method_uses_same_envelope(http):
    response = http.request("TRACE", "/kline")

    assert response.status_code == 405
    _assert_cors(response)
    assert response.json()["error"] == "Method Not Allowed"


@pytest.mark.parametrize("path", ["/", "/health", "/kline", "/nowhere"])
def test_options_preflight(http, upstream_client, path):
    response = http.options(path)

    assert response.status_code == 204
    assert response.content == b""
    _assert_cors(response)
    upstream_client.fetch_klines.assert_not_awaited()


def test_docs_routes_disabled(http):
    assert http.get("/docs").status_code == 404
    assert http.get("/openapi.json").status_code == 404


def test_upstream_error(settings):
    client = SimpleNamespace(
        fetch_klines=AsyncMock(
            return_value=UpstreamResponse(status=418, text='{"code":-1121,"msg":"Invalid symbol."}')
        )
    )
    http = TestClient(create_app(settings=settings, client=client))

    response = http.get("/kline?symbol=NOPEUSDT")

    assert response.status_code == 502
    _assert_cors(response)
    assert response.json() == {
        "error": "Upstream error",
        "status": 418,
        "details": {"code": -1121, "msg": "Invalid symbol."},
    }


def test_fetch_failure(settings):
    client = SimpleNamespace(
        fetch_klines=AsyncMock(side_effect=FetchFailureError("Connection refused"))
    )
    http = TestClient(create_app(settings=settings, client=client))

    response = http.get("/klines")

    assert response.status_code == 502
    assert response.json() == {
        "error": "Failed to fetch Binance kline data",
        "message": "Connection refused",
    }


def test_lifespan_closes_owned_client(settings, monkeypatch):
    closed = []

    async def fake_close(self):
        closed.append(self)

    monkeypatch.setattr("kline_proxy.proxy.upstream.BinanceKlineClient.close", fake_close)

    with TestClient(create_app(settings=settings)) as http:
        assert http.get("/health").status_code == 200

    assert len(closed) == 1


def test_lifespan_leaves_injected_client(settings):
    client = SimpleNamespace(fetch_klines=AsyncMock(), close=AsyncMock())

    with TestClient(create_app(settings=settings, client=client)):
        pass

    client.close.assert_not_awaited()
