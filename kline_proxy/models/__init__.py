"""
Data models

Value objects and response envelopes used by the kline proxy.
"""

from .kline import (
    EndpointIndex,
    ErrorEnvelope,
    QueryParameters,
    ServiceDescriptor,
    SuccessEnvelope,
    UpstreamQuery,
    UpstreamResponse,
)

__all__ = [
    "EndpointIndex",
    "ErrorEnvelope",
    "QueryParameters",
    "ServiceDescriptor",
    "SuccessEnvelope",
    "UpstreamQuery",
    "UpstreamResponse",
]
