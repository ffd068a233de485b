"""
Tests for USD estimation used by session limit checks.
"""

from decimal import Decimal

import pytest
from unittest.mock import AsyncMock

from voiceswap.core.voice.pricing import (
    CoingeckoPriceEstimator,
    ProxyPriceEstimator,
    build_price_estimator,
)


@pytest.mark.asyncio
async def test_proxy_estimator():
    estimator = ProxyPriceEstimator(proxy_price=Decimal("2000"), stable_symbols=["USDC", "DAI"])

    assert await estimator.estimate_usd("USDC", "50") == Decimal("50")
    assert await estimator.estimate_usd("dai", "1.5") == Decimal("1.5")
    assert await estimator.estimate_usd("ETH", "0.1") == Decimal("200.0")


@pytest.mark.asyncio
async def test_non_numeric_amount_cannot_be_estimated():
    estimator = ProxyPriceEstimator(proxy_price=Decimal("2000"), stable_symbols=["USDC"])

    with pytest.raises(ValueError):
        await estimator.estimate_usd("ETH", "all")


@pytest.mark.asyncio
@pytest.mark.parametrize("amount_in", ["0", "-5", "-0.1"])
async def test_non_positive_amount_cannot_be_estimated(amount_in):
    estimator = ProxyPriceEstimator(proxy_price=Decimal("2000"), stable_symbols=["USDC"])

    with pytest.raises(ValueError):
        await estimator.estimate_usd("ETH", amount_in)


@pytest.mark.asyncio
async def test_coingecko_estimator_uses_live_price():
    provider = AsyncMock()
    provider.get_symbol_prices.return_value = {"ETH": {"price_usd": 3100.5, "_source": {"name": "coingecko"}}}
    estimator = CoingeckoPriceEstimator(provider=provider, fallback=ProxyPriceEstimator(proxy_price=Decimal("2000")))

    assert await estimator.estimate_usd("eth", "2") == Decimal("6201.0")
    provider.get_symbol_prices.assert_awaited_once_with(["ETH"])


@pytest.mark.asyncio
async def test_coingecko_estimator_falls_back_to_proxy():
    provider = AsyncMock()
    provider.get_symbol_prices.side_effect = RuntimeError("rate limited")
    estimator = CoingeckoPriceEstimator(
        provider=provider,
        fallback=ProxyPriceEstimator(proxy_price=Decimal("2000"), stable_symbols=["USDC"]),
    )

    assert await estimator.estimate_usd("ETH", "1") == Decimal("2000")

    provider.get_symbol_prices.side_effect = None
    provider.get_symbol_prices.return_value = {}
    assert await estimator.estimate_usd("USDC", "10") == Decimal("10")


def test_build_price_estimator():
    assert isinstance(build_price_estimator("proxy"), ProxyPriceEstimator)
    assert isinstance(build_price_estimator("coingecko"), CoingeckoPriceEstimator)
    assert isinstance(build_price_estimator("nonsense"), ProxyPriceEstimator)
