import pytest
import respx
from httpx import Response

from src.feeds.spot import COINGECKO_SIMPLE_PRICE, SpotPriceFeed


@pytest.fixture
def mock_api():
    with respx.mock:
        yield respx


@pytest.mark.asyncio
async def test_get_price(mock_api):
    route = mock_api.get(COINGECKO_SIMPLE_PRICE).mock(
        return_value=Response(200, json={"ethereum": {"usd": 2345.67}})
    )
    feed = SpotPriceFeed(retry_delay=0.0)
    try:
        assert await feed.get_price() == 2345.67
    finally:
        await feed.close()
    request = route.calls.last.request
    assert request.url.params["ids"] == "ethereum"
    assert request.url.params["vs_currencies"] == "usd"


@pytest.mark.asyncio
async def test_server_error_yields_none(mock_api):
    route = mock_api.get(COINGECKO_SIMPLE_PRICE).mock(return_value=Response(503))
    feed = SpotPriceFeed(retry_delay=0.0)
    try:
        assert await feed.get_price() is None
    finally:
        await feed.close()
    assert route.call_count == 3


@pytest.mark.asyncio
async def test_malformed_payload_yields_none(mock_api):
    mock_api.get(COINGECKO_SIMPLE_PRICE).mock(
        return_value=Response(200, json={"ethereum": {"eur": 2000}})
    )
    feed = SpotPriceFeed(retry_delay=0.0)
    try:
        assert await feed.get_price() is None
    finally:
        await feed.close()


@pytest.mark.asyncio
async def test_non_positive_price_yields_none(mock_api):
    mock_api.get(COINGECKO_SIMPLE_PRICE).mock(
        return_value=Response(200, json={"ethereum": {"usd": 0}})
    )
    feed = SpotPriceFeed(retry_delay=0.0)
    try:
        assert await feed.get_price() is None
    finally:
        await feed.close()
