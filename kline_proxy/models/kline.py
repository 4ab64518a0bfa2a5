"""
Kline proxy models

Per-request value objects (query parameters, upstream query/response) and
the Pydantic response envelopes serialized back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class QueryParameters:
    """Validated kline query"""
    symbol: str                        # uppercased, ^[A-Z0-9]{5,20}$
    interval: str                      # one of the allowed intervals
    limit: int                         # 1..max_limit
    start_time: Optional[int] = None   # epoch ms
    end_time: Optional[int] = None     # epoch ms


@dataclass(frozen=True)
class UpstreamQuery:
    """Query-string pairs forwarded upstream, in wire order"""
    params: Tuple[Tuple[str, str], ...]

    def to_query_string(self) -> str:
        return urlencode(self.params)

    def as_dict(self) -> Dict[str, str]:
        return dict(self.params)


@dataclass(frozen=True)
class UpstreamResponse:
    """Raw upstream answer; body is never assumed to be JSON"""
    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class SuccessEnvelope(BaseModel):
    """Successful proxy response"""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Normalized symbol, e.g. BTCUSDT")
    interval: str = Field(..., description="Kline interval, e.g. 1m")
    limit: int = Field(..., description="Effective limit sent upstream")
    source: str = Field(..., description="Upstream provider tag")
    data: Any = Field(..., description="Upstream body, passed through verbatim")


class ErrorEnvelope(BaseModel):
    """Error response; unset optional fields are left out of the body"""

    model_config = ConfigDict(frozen=True)

    error: str
    message: Optional[str] = None
    status: Optional[int] = None
    details: Any = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class EndpointIndex(BaseModel):
    health: str
    kline: str
    klines: str


class ServiceDescriptor(BaseModel):
    """Static payload served at /"""

    service: str
    status: str
    endpoints: EndpointIndex
    note: str
