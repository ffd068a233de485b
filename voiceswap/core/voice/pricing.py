"""
USD value estimation for session-limit checks.

The estimate only decides whether a swap fits inside a session's spend
limits; it is not used for execution. Estimators are pluggable so a live
price source can replace the static proxy rate.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from ...config import settings
from ...providers.base import PriceProvider
from ...providers.coingecko import CoingeckoProvider

logger = logging.getLogger(__name__)


def _parse_amount(amount_in: str) -> Decimal:
    try:
        amount = Decimal(str(amount_in))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Cannot estimate USD value of amount '{amount_in}'")
    if not amount.is_finite() or amount <= 0:
        raise ValueError(f"Cannot estimate USD value of amount '{amount_in}'")
    return amount


class UsdPriceEstimator(ABC):
    """Estimate the USD value of `amount_in` units of `token_in`."""

    @abstractmethod
    async def unit_price(self, token_in: str) -> Decimal:
        pass

    async def estimate_usd(self, token_in: str, amount_in: str) -> Decimal:
        return _parse_amount(amount_in) * await self.unit_price(token_in)


class ProxyPriceEstimator(UsdPriceEstimator):
    """1.0 for stable reference assets, a configured proxy rate for everything else."""

    def __init__(
        self,
        proxy_price: Optional[Decimal] = None,
        stable_symbols: Optional[Iterable[str]] = None,
    ) -> None:
        self.proxy_price = Decimal(str(proxy_price if proxy_price is not None else settings.proxy_usd_price))
        symbols = stable_symbols if stable_symbols is not None else settings.stable_symbol_set
        self.stable_symbols = {s.upper() for s in symbols}

    async def unit_price(self, token_in: str) -> Decimal:
        if token_in.upper() in self.stable_symbols:
            return Decimal("1")
        return self.proxy_price


class CoingeckoPriceEstimator(UsdPriceEstimator):
    """Live Coingecko prices, falling back to the proxy estimator when a price is unavailable."""

    def __init__(
        self,
        provider: Optional[PriceProvider] = None,
        fallback: Optional[UsdPriceEstimator] = None,
    ) -> None:
        self.provider = provider or CoingeckoProvider()
        self.fallback = fallback or ProxyPriceEstimator()

    async def unit_price(self, token_in: str) -> Decimal:
        symbol = token_in.upper()
        try:
            prices = await self.provider.get_symbol_prices([symbol])
            price = (prices.get(symbol) or {}).get("price_usd")
            if price is not None:
                return Decimal(str(price))
            logger.info(f"No Coingecko price for {symbol}, using proxy estimate")
        except Exception as exc:
            logger.warning(f"Coingecko price lookup failed for {symbol}: {exc}")
        return await self.fallback.unit_price(token_in)


def build_price_estimator(source: Optional[str] = None) -> UsdPriceEstimator:
    resolved = (source or settings.price_source).strip().lower()
    if resolved == "coingecko":
        return CoingeckoPriceEstimator()
    if resolved != "proxy":
        logger.warning(f"Unknown price source '{resolved}', using proxy estimator")
    return ProxyPriceEstimator()


__all__ = [
    "UsdPriceEstimator",
    "ProxyPriceEstimator",
    "CoingeckoPriceEstimator",
    "build_price_estimator",
]
