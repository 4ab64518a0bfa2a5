"""
Kline proxy core: parameter validation, upstream client and request translator.
"""

from .params import (
    build_upstream_query,
    clamp_limit,
    parse_number,
    parse_time,
    safe_parse_json,
    validate_parameters,
)
from .translator import KlineTranslator, ProxyReply, error_envelope
from .upstream import BinanceKlineClient

__all__ = [
    "BinanceKlineClient",
    "KlineTranslator",
    "ProxyReply",
    "build_upstream_query",
    "clamp_limit",
    "error_envelope",
    "parse_number",
    "parse_time",
    "safe_parse_json",
    "validate_parameters",
]
