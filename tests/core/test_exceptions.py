"""Tests for exception hierarchy"""

import aiohttp
import pytest

from kline_proxy.core.exceptions import (
    FetchFailureError,
    InvalidIntervalError,
    InvalidRangeError,
    InvalidSymbolError,
    KlineProxyError,
    MethodNotAllowedError,
    NotFoundError,
    UpstreamError,
    ValidationError,
    wrap_exception,
)


@pytest.mark.parametrize(
    "exc, status_code, error",
    [
        (MethodNotAllowedError("POST"), 405, "Method Not Allowed"),
        (NotFoundError("/nope"), 404, "Not Found"),
        (InvalidSymbolError(), 400, "Invalid symbol format"),
        (InvalidIntervalError(), 400, "Invalid interval"),
        (InvalidRangeError(), 400, "startTime must be <= endTime"),
        (UpstreamError(418, {"code": -1121}), 502, "Upstream error"),
        (FetchFailureError("boom"), 502, "Failed to fetch Binance kline data"),
    ],
)
def test_status_and_label(exc, status_code, error):
    assert isinstance(exc, KlineProxyError)
    assert exc.status_code == status_code
    assert exc.error == error


def test_validation_errors_share_base():
    for cls in (InvalidSymbolError, InvalidIntervalError, InvalidRangeError):
        assert issubclass(cls, ValidationError)


def test_message_includes_details():
    exc = InvalidSymbolError(details={"symbol": "BTC"})

    assert str(exc) == "Invalid symbol format (symbol=BTC)"
    assert exc.message is None


def test_upstream_error_keeps_status_and_body():
    body = {"code": -1121, "msg": "Invalid symbol."}
    exc = UpstreamError(418, body)

    assert exc.upstream_status == 418
    assert exc.body == body
    assert exc.details == {"status": 418}


def test_wrap_exception():
    original = aiohttp.ClientConnectionError("connection reset")

    wrapped = wrap_exception(original, FetchFailureError, url="https://example.com")

    assert isinstance(wrapped, FetchFailureError)
    assert wrapped.message == "connection reset"
    assert wrapped.original_exception is original
    assert wrapped.details == {"url": "https://example.com"}


def test_wrap_exception_custom_message():
    wrapped = wrap_exception(TimeoutError(), FetchFailureError, message="timed out")

    assert wrapped.message == "timed out"
