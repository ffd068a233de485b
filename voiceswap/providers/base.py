from abc import ABC, abstractmethod
from typing import Any, Dict, List


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class PriceProvider(Provider):
    """Provider for token price data"""

    @abstractmethod
    async def get_symbol_prices(self, symbols: List[str], vs_currency: str = "usd") -> Dict[str, Any]:
        """Get current prices keyed by upper-case token symbol"""
        pass
