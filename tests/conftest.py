"""Pytest configuration for the price inquiry engine tests."""

import logging
import os
import sys
from datetime import date
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import structlog

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

TODAY = date(2024, 3, 20)

FUND_HTML = """
<html>
<head><title>华夏成长混合(000311)基金净值_估值_行情走势</title></head>
<body>
<h1>华夏成长混合</h1>
<table class="netvalue">
  <tr><th>净值日期</th><th>单位净值</th><th>累计净值</th></tr>
  <tr><td>2024-03-18</td><td>2.3001</td><td>3.0800</td></tr>
  <tr><td>2024-03-19</td><td>2.3456</td><td>3.1000</td></tr>
</table>
</body>
</html>
"""

# Page served for a code that is not a fund: no name, no net value
EMPTY_FUND_HTML = "<html><head><title>页面未找到</title></head><body></body></html>"

STOCK_NO_MATCH = 'v_pv_none_match="1";\n'


def stock_payload(symbol: str, name: str, price: str, trade_date: str = "") -> str:
    fields = ["1", name, symbol[2:], price] + ["0"] * 26
    if trade_date:
        fields.append(trade_date)
    return f'v_s_{symbol}="{"~".join(fields)}";\n'


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Session-wide environment defaults."""
    test_env = {
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "ERROR",
    }
    with patch.dict(os.environ, test_env, clear=False):
        yield


@pytest.fixture(autouse=True)
def configure_structlog_for_tests():
    """Configure structlog for test environment."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.root.setLevel(logging.WARNING)
    yield


@pytest.fixture
def settings():
    """Fast settings: tiny batch window, no backoff."""
    from price_inquiry.config import Settings

    return Settings(
        batch_delay=0.001,
        retry_delay=0,
        request_timeout=1.0,
        cache_cleanup_interval=60,
    )


@pytest.fixture
def pages():
    """URL -> body mapping consulted by the mock fetcher."""
    return {}


@pytest.fixture
def mock_fetcher(pages):
    """Fetcher double serving bodies from `pages`; unknown URLs are no-match quotes."""
    from price_inquiry.data.interfaces import Fetcher

    async def fake_fetch(url, options=None):
        body = pages.get(url, STOCK_NO_MATCH)
        if isinstance(body, BaseException):
            raise body
        return body

    fetcher = AsyncMock(spec=Fetcher)
    fetcher.fetch.side_effect = fake_fetch
    return fetcher


@pytest.fixture
def engine(settings, mock_fetcher):
    from price_inquiry.engine import Engine

    return Engine(settings, fetcher=mock_fetcher, today=lambda: TODAY, sleep=AsyncMock())
