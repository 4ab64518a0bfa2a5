"""Shared fixtures"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from kline_proxy.core.config import Settings
from kline_proxy.models.kline import UpstreamResponse


KLINE_ROW = [
    1499040000000, "0.01634790", "0.80000000", "0.01575800", "0.01577100",
    "148976.11427815", 1499644799999, "2434.19055334", 308, "1756.87402397",
    "28.46694368", "0",
]


@pytest.fixture
def settings():
    """Settings with defaults only (no .env file)"""
    return Settings(_env_file=None, environment="test")


@pytest.fixture
def upstream_client():
    """Fake upstream client answering 200 with one kline row"""
    return SimpleNamespace(
        fetch_klines=AsyncMock(
            return_value=UpstreamResponse(status=200, text=json.dumps([KLINE_ROW]))
        )
    )


@pytest.fixture
def kline_row():
    return list(KLINE_ROW)
