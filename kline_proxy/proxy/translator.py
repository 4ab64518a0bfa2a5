"""
Request translator

Maps one inbound request onto at most one upstream call and maps the result
back onto a response envelope. Dispatch is an ordered tuple of rules; each
rule either produces a reply or passes (returns None) to the next one.
Later rules rely on earlier ones having passed: the preflight rule assumes
the method is allowed, and the kline rule assumes the path was matched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Mapping,
    Optional,
    Protocol,
    Tuple,
)

from kline_proxy.core.config import Settings
from kline_proxy.core.exceptions import (
    FetchFailureError,
    KlineProxyError,
    MethodNotAllowedError,
    NotFoundError,
    UpstreamError,
    wrap_exception,
)
from kline_proxy.core.logger import get_logger
from kline_proxy.models.kline import (
    EndpointIndex,
    ErrorEnvelope,
    QueryParameters,
    ServiceDescriptor,
    SuccessEnvelope,
    UpstreamQuery,
    UpstreamResponse,
)
from kline_proxy.proxy.params import (
    build_upstream_query,
    safe_parse_json,
    validate_parameters,
)

logger = get_logger(__name__)

ALLOWED_METHODS = ("GET", "OPTIONS")
KLINE_PATHS = ("/kline", "/klines")

SERVICE_DESCRIPTOR = ServiceDescriptor(
    service="binance-kline-api",
    status="ok",
    endpoints=EndpointIndex(
        health="/health",
        kline="/kline?symbol=BTCUSDT&interval=1m&limit=100",
        klines="/klines?symbol=ETHUSDT&interval=5m&limit=200",
    ),
    note="Use /kline or /klines with query params: symbol, interval, limit, startTime, endTime",
)


class KlineClient(Protocol):
    async def fetch_klines(self, query: UpstreamQuery) -> UpstreamResponse: ...


@dataclass(frozen=True)
class InboundRequest:
    method: str
    path: str
    query: Mapping[str, Any]

    @property
    def normalized_path(self) -> str:
        """Path with a single trailing slash removed ("/" stays "/")"""
        if self.path.endswith("/") and self.path != "/":
            return self.path[:-1]
        return self.path


@dataclass(frozen=True)
class ProxyReply:
    """Status code plus JSON payload; payload None means no body"""
    status_code: int
    payload: Optional[Dict[str, Any]] = None


def error_envelope(exc: KlineProxyError) -> ErrorEnvelope:
    """Build the error envelope for a proxy exception"""
    if isinstance(exc, UpstreamError):
        return ErrorEnvelope(error=exc.error, status=exc.upstream_status, details=exc.body)
    if exc.message is not None:
        return ErrorEnvelope(error=exc.error, message=exc.message)
    return ErrorEnvelope(error=exc.error)


def error_reply(exc: KlineProxyError) -> ProxyReply:
    return ProxyReply(status_code=exc.status_code, payload=error_envelope(exc).to_payload())


Rule = Callable[[InboundRequest], Awaitable[Optional[ProxyReply]]]


class KlineTranslator:
    """
    Translate inbound kline requests into upstream calls.

    Holds only read-only collaborators (settings and the upstream client),
    so one instance serves any number of concurrent requests.
    """

    def __init__(self, settings: Settings, client: KlineClient):
        self.settings = settings
        self.client = client
        self._rules: Tuple[Rule, ...] = (
            self._reject_unsupported_method,
            self._acknowledge_preflight,
            self._describe_service,
            self._report_health,
            self._require_kline_path,
            self._proxy_klines,
        )

    async def handle(self, method: str, path: str, query: Mapping[str, Any]) -> ProxyReply:
        """
        Route one request through the rule chain.

        Args:
            method: HTTP method
            path: URL path
            query: Raw query parameters

        Returns:
            ProxyReply carrying exactly one envelope (or no body for OPTIONS)
        """
        request = InboundRequest(method=method.upper(), path=path, query=query)
        try:
            for rule in self._rules:
                reply = await rule(request)
                if reply is not None:
                    return reply
        except KlineProxyError as e:
            return error_reply(e)
        raise RuntimeError("kline rule chain produced no reply")

    async def _reject_unsupported_method(self, request: InboundRequest) -> Optional[ProxyReply]:
        if request.method not in ALLOWED_METHODS:
            raise MethodNotAllowedError(request.method)
        return None

    async def _acknowledge_preflight(self, request: InboundRequest) -> Optional[ProxyReply]:
        if request.method == "OPTIONS":
            return ProxyReply(status_code=204)
        return None

    async def _describe_service(self, request: InboundRequest) -> Optional[ProxyReply]:
        if request.path in ("/", ""):
            return ProxyReply(status_code=200, payload=SERVICE_DESCRIPTOR.model_dump())
        return None

    async def _report_health(self, request: InboundRequest) -> Optional[ProxyReply]:
        if request.path == "/health":
            return ProxyReply(status_code=200, payload={"status": "ok"})
        return None

    async def _require_kline_path(self, request: InboundRequest) -> Optional[ProxyReply]:
        if request.normalized_path not in KLINE_PATHS:
            raise NotFoundError(request.path)
        return None

    async def _proxy_klines(self, request: InboundRequest) -> Optional[ProxyReply]:
        params = validate_parameters(request.query, self.settings)
        envelope = await self.call_upstream(params)
        return ProxyReply(status_code=200, payload=envelope.model_dump())

    async def call_upstream(self, params: QueryParameters) -> SuccessEnvelope:
        """
        Fetch klines for validated parameters.

        Raises:
            UpstreamError: upstream answered with a non-2xx status
            FetchFailureError: the request could not be completed
        """
        query = build_upstream_query(params)
        logger.debug(f"Proxying klines: {query.to_query_string()}")

        try:
            response = await self.client.fetch_klines(query)
        except KlineProxyError:
            raise
        except Exception as e:
            logger.error(f"Unexpected upstream failure: {e!r}", exc_info=True)
            raise wrap_exception(
                e, FetchFailureError, message=str(e) or e.__class__.__name__
            ) from e

        body = safe_parse_json(response.text)

        if not response.ok:
            logger.warning(
                f"Upstream returned HTTP {response.status} for "
                f"{params.symbol} {params.interval}"
            )
            raise UpstreamError(response.status, body)

        return SuccessEnvelope(
            symbol=params.symbol,
            interval=params.interval,
            limit=params.limit,
            source=self.settings.source_name,
            data=body,
        )
