import httpx
from typing import Any, Dict, List, Optional
from ..config import settings
from .base import PriceProvider


# Swap token symbols -> Coingecko coin ids
COINGECKO_IDS: Dict[str, str] = {
    "ETH": "ethereum",
    "WETH": "weth",
    "USDC": "usd-coin",
    "USDBC": "bridged-usd-coin-base",
    "USDT": "tether",
    "DAI": "dai",
    "WMON": "monad",
}


class CoingeckoProvider(PriceProvider):
    """Coingecko API provider for token prices"""

    name = "coingecko"
    timeout_s = 15

    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = settings.coingecko_api_key if api_key is None else api_key
        self.base_url = "https://api.coingecko.com/api/v3"
        self._transport = transport

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    async def ready(self) -> bool:
        return True  # API key is optional for basic tier

    async def health_check(self) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(
                    f"{self.base_url}/ping",
                    headers=self._build_headers(),
                    timeout=self.timeout_s
                )
                response.raise_for_status()
                return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def get_symbol_prices(self, symbols: List[str], vs_currency: str = "usd") -> Dict[str, Any]:
        """Get current prices for token symbols we know a Coingecko id for"""
        ids_by_symbol = {
            symbol.upper(): COINGECKO_IDS[symbol.upper()]
            for symbol in symbols
            if symbol.upper() in COINGECKO_IDS
        }
        if not ids_by_symbol:
            return {}

        params = {
            "ids": ",".join(sorted(set(ids_by_symbol.values()))),
            "vs_currencies": vs_currency,
        }

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}/simple/price",
                headers=self._build_headers(),
                params=params,
                timeout=self.timeout_s
            )
            response.raise_for_status()
            data = response.json()

        prices = {}
        for symbol, coin_id in ids_by_symbol.items():
            price_data = data.get(coin_id) or {}
            if vs_currency in price_data:
                prices[symbol] = {
                    "price_usd": price_data[vs_currency],
                    "_source": {"name": "coingecko", "url": "https://coingecko.com"}
                }

        return prices
