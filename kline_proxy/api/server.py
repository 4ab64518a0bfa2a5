"""
FastAPI application

Every path and verb is routed into a single catch-all endpoint that hands
the request to KlineTranslator, so route order, trailing-slash handling and
the error envelopes all come from the translator rather than the router.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from kline_proxy import __version__
from kline_proxy.core.config import Settings, get_config
from kline_proxy.core.exceptions import MethodNotAllowedError, NotFoundError
from kline_proxy.core.logger import get_logger
from kline_proxy.models.kline import ErrorEnvelope
from kline_proxy.proxy.translator import (
    KlineClient,
    KlineTranslator,
    ProxyReply,
    error_reply,
)
from kline_proxy.proxy.upstream import BinanceKlineClient

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# Verbs the catch-all route accepts; anything else is rejected by the router
# and mapped onto the same 405 envelope by the exception handler below.
ROUTED_METHODS = ["GET", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]


class EnvelopeResponse(JSONResponse):
    media_type = "application/json; charset=utf-8"


def render_reply(reply: ProxyReply) -> Response:
    """Turn a translator reply into an HTTP response with CORS headers"""
    if reply.payload is None:
        return Response(status_code=reply.status_code, headers=CORS_HEADERS)
    return EnvelopeResponse(
        content=reply.payload,
        status_code=reply.status_code,
        headers=CORS_HEADERS,
    )


def create_app(
    settings: Optional[Settings] = None,
    client: Optional[KlineClient] = None,
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        settings: Service configuration, defaults to the global config
        client: Upstream client; when omitted a BinanceKlineClient is created
            and closed together with the application

    Returns:
        FastAPI app
    """
    settings = settings or get_config()
    owns_client = client is None
    if client is None:
        client = BinanceKlineClient(settings)
    translator = KlineTranslator(settings, client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle"""
        logger.info(
            f"Starting kline proxy: upstream={settings.upstream_klines_url}, "
            f"timeout={settings.upstream_timeout}s"
        )
        yield
        logger.info("Shutting down kline proxy...")
        if owns_client:
            await client.close()

    app = FastAPI(
        title="Binance Kline Proxy",
        description="Validating proxy for Binance kline (candlestick) data",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )
    app.state.settings = settings
    app.state.translator = translator

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            return render_reply(error_reply(MethodNotAllowedError(request.method)))
        if exc.status_code == 404:
            return render_reply(error_reply(NotFoundError(request.url.path)))
        envelope = ErrorEnvelope(error=str(exc.detail))
        return EnvelopeResponse(
            content=envelope.to_payload(),
            status_code=exc.status_code,
            headers=CORS_HEADERS,
        )

    @app.api_route("/{path:path}", methods=ROUTED_METHODS, include_in_schema=False)
    async def proxy(request: Request) -> Response:
        reply = await translator.handle(
            request.method,
            request.url.path,
            request.query_params,
        )
        logger.debug(f"{request.method} {request.url.path} -> {reply.status_code}")
        return render_reply(reply)

    return app


app = create_app()
