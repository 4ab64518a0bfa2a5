"""
Binance kline upstream client

Issues exactly one GET per call against the configured klines endpoint and
reads the body as text whatever the status. There is no cache and no
retry: a transport failure is raised as FetchFailureError straight away.
"""

import asyncio
from typing import Optional

import aiohttp

from kline_proxy.core.config import Settings
from kline_proxy.core.exceptions import FetchFailureError, wrap_exception
from kline_proxy.core.logger import get_logger
from kline_proxy.models.kline import UpstreamQuery, UpstreamResponse

logger = get_logger(__name__)


class BinanceKlineClient:
    """Thin aiohttp wrapper around GET /api/v3/klines"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self):
        """Create the HTTP session on first use"""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.settings.upstream_timeout)
            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": self.settings.upstream_user_agent},
            )

    async def close(self):
        """Close the HTTP session"""
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    async def __aenter__(self) -> "BinanceKlineClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def build_url(self, query: UpstreamQuery) -> str:
        return f"{self.settings.upstream_klines_url}?{query.to_query_string()}"

    async def fetch_klines(self, query: UpstreamQuery) -> UpstreamResponse:
        """
        Fetch klines from upstream.

        Args:
            query: Serialized upstream query

        Returns:
            UpstreamResponse with the status code and raw body text

        Raises:
            FetchFailureError: the request could not be completed
        """
        await self._ensure_session()
        url = self.build_url(query)
        logger.debug(f"GET {url}")

        try:
            async with self.session.get(
                self.settings.upstream_klines_url,
                params=list(query.params),
            ) as response:
                text = await response.text(errors="replace")
                return UpstreamResponse(status=response.status, text=text)

        except asyncio.TimeoutError as e:
            logger.error(f"Upstream timed out after {self.settings.upstream_timeout}s: {url}")
            timeout_message = f"Upstream request timed out after {self.settings.upstream_timeout}s"
            raise wrap_exception(
                e,
                FetchFailureError,
                message=str(e) or timeout_message,
                url=url,
            ) from e

        except aiohttp.ClientError as e:
            logger.error(f"Upstream request failed: {e!r}")
            raise wrap_exception(
                e,
                FetchFailureError,
                message=str(e) or e.__class__.__name__,
                url=url,
            ) from e
