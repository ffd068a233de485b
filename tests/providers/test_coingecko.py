import httpx
import pytest

from voiceswap.providers.coingecko import CoingeckoProvider


@pytest.mark.asyncio
async def test_get_symbol_prices_maps_ids_back_to_symbols():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ethereum": {"usd": 3100.5}, "usd-coin": {"usd": 1.0}})

    provider = CoingeckoProvider(api_key="demo-key", transport=httpx.MockTransport(handler))
    prices = await provider.get_symbol_prices(["eth", "USDC", "PEPE"])

    assert prices["ETH"]["price_usd"] == 3100.5
    assert prices["USDC"]["price_usd"] == 1.0
    assert "PEPE" not in prices
    assert seen[0].url.path.endswith("/simple/price")
    assert seen[0].url.params["ids"] == "ethereum,usd-coin"
    assert seen[0].headers["X-CG-Demo-API-Key"] == "demo-key"


@pytest.mark.asyncio
async def test_unknown_symbols_skip_the_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    provider = CoingeckoProvider(api_key="", transport=httpx.MockTransport(handler))

    assert await provider.get_symbol_prices(["PEPE"]) == {}


@pytest.mark.asyncio
async def test_health_check():
    provider = CoingeckoProvider(
        api_key="",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"gecko_says": "(V3) To the Moon!"})),
    )

    assert (await provider.health_check())["status"] == "healthy"
