"""
Query parameter validation and normalization

Turns raw query-string values into a QueryParameters object and then into
the query forwarded upstream. Numbers are read the way a browser's
``Number()`` reads a string, so ``" 10 "``, ``"1e2"`` and ``"0x10"`` are
numbers while ``"10abc"`` and ``"1_000"`` are not.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Mapping, Optional

from kline_proxy.core.config import Settings
from kline_proxy.core.exceptions import (
    InvalidIntervalError,
    InvalidRangeError,
    InvalidSymbolError,
)
from kline_proxy.core.logger import get_logger
from kline_proxy.models.kline import QueryParameters, UpstreamQuery

logger = get_logger(__name__)

SYMBOL_PATTERN = re.compile(r"[A-Z0-9]{5,20}")

_DECIMAL_LITERAL = re.compile(
    r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)", re.ASCII
)
_RADIX_LITERAL = re.compile(
    r"0(?:[xX](?P<hex>[0-9a-fA-F]+)|[oO](?P<oct>[0-7]+)|[bB](?P<bin>[01]+))", re.ASCII
)


def _radix_value(digits: str, base: int) -> float:
    try:
        return float(int(digits, base))
    except OverflowError:
        # Too large for a double
        return math.inf


def parse_number(raw: Optional[str]) -> float:
    """
    Parse a query value as a number.

    Returns NaN when the value is not numeric. A missing or blank value
    reads as 0, matching Number(null) and Number(""). Literals too large
    for a float read as infinity.
    """
    if raw is None:
        return 0.0

    text = raw.strip()
    if not text:
        return 0.0

    if _DECIMAL_LITERAL.fullmatch(text):
        return float(text.replace("Infinity", "inf"))

    radix = _RADIX_LITERAL.fullmatch(text)
    if radix:
        if radix.group("hex"):
            return _radix_value(radix.group("hex"), 16)
        if radix.group("oct"):
            return _radix_value(radix.group("oct"), 8)
        return _radix_value(radix.group("bin"), 2)

    return math.nan


def clamp_limit(raw: Any, default: int = 100, maximum: int = 1000) -> int:
    """
    Normalize the ``limit`` parameter.

    Values are truncated toward zero and capped at ``maximum``. Absent,
    non-numeric or non-finite values, and values that truncate to zero or
    below, fall back to ``default``. The check runs after truncation so
    clamp_limit(clamp_limit(x)) == clamp_limit(x) also holds for 0 < x < 1.
    """
    parsed = raw if isinstance(raw, (int, float)) else parse_number(raw)
    if not math.isfinite(parsed):
        return default
    truncated = math.trunc(parsed)
    if truncated <= 0:
        return default
    return min(truncated, maximum)


def parse_time(raw: Optional[str]) -> Optional[int]:
    """Epoch-ms parameter, or None when absent, unparseable or negative"""
    if not raw:
        return None
    parsed = parse_number(raw)
    if not math.isfinite(parsed) or parsed < 0:
        return None
    return math.trunc(parsed)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def safe_parse_json(text: str) -> Any:
    """Parse JSON text, wrapping it as {"raw": text} if it is not strict JSON"""
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return {"raw": text}


def first_value(query: Mapping[str, Any], name: str) -> Optional[str]:
    """First value of a repeated query parameter, like URLSearchParams.get"""
    getlist = getattr(query, "getlist", None)
    if getlist is not None:
        values = getlist(name)
        return values[0] if values else None
    value = query.get(name)
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def validate_parameters(query: Mapping[str, Any], settings: Settings) -> QueryParameters:
    """
    Validate raw query parameters.

    Args:
        query: Raw query mapping (Starlette QueryParams or a plain dict)
        settings: Service configuration holding defaults and limits

    Returns:
        QueryParameters

    Raises:
        InvalidSymbolError: symbol fails ^[A-Z0-9]{5,20}$ after uppercasing
        InvalidIntervalError: interval not in the allowed set
        InvalidRangeError: startTime > endTime
    """
    symbol = (first_value(query, "symbol") or settings.default_symbol).upper()
    interval = first_value(query, "interval") or settings.default_interval
    limit = clamp_limit(
        first_value(query, "limit"),
        default=settings.default_limit,
        maximum=settings.max_limit,
    )
    start_time = parse_time(first_value(query, "startTime"))
    end_time = parse_time(first_value(query, "endTime"))

    if not SYMBOL_PATTERN.fullmatch(symbol):
        logger.info(f"Rejected symbol: {symbol!r}")
        raise InvalidSymbolError(details={"symbol": symbol})

    if interval not in settings.allowed_intervals:
        logger.info(f"Rejected interval: {interval!r}")
        raise InvalidIntervalError(details={"interval": interval})

    if start_time is not None and end_time is not None and start_time > end_time:
        logger.info(f"Rejected range: startTime={start_time} > endTime={end_time}")
        raise InvalidRangeError(details={"startTime": start_time, "endTime": end_time})

    return QueryParameters(
        symbol=symbol,
        interval=interval,
        limit=limit,
        start_time=start_time,
        end_time=end_time,
    )


def build_upstream_query(params: QueryParameters) -> UpstreamQuery:
    """Serialize validated parameters in upstream wire order"""
    pairs = [
        ("symbol", params.symbol),
        ("interval", params.interval),
        ("limit", str(params.limit)),
    ]
    if params.start_time is not None:
        pairs.append(("startTime", str(params.start_time)))
    if params.end_time is not None:
        pairs.append(("endTime", str(params.end_time)))
    return UpstreamQuery(params=tuple(pairs))
