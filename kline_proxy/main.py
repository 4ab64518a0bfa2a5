#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Binance Kline Proxy
Main Entry Point

Initializes logging from configuration and serves the ASGI app with uvicorn.
"""

import uvicorn

from kline_proxy.core.config import get_config
from kline_proxy.core.logger import get_logger, init_logging_from_config


def main():
    """Run the proxy server"""
    init_logging_from_config()

    config = get_config()
    logger = get_logger(__name__)

    logger.info(f"✓ [proxy] listening on {config.api_host}:{config.api_port}")

    uvicorn.run(
        "kline_proxy.api.server:app",
        host=config.api_host,
        port=config.api_port,
        reload=config.api_reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
