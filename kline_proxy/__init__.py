"""
Binance kline proxy

Validates kline (candlestick) queries and forwards them to the Binance REST
API, relaying the upstream answer inside a normalized JSON envelope.
"""

__version__ = "1.0.0"
