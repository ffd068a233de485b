import os

from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Ensure we pick up legacy environment variable aliases."""

        super().model_post_init(__context)

        if not self.swap_backend_url:
            fallback = os.getenv("VOICESWAP_BACKEND_URL") or os.getenv("BACKEND_URL")
            object.__setattr__(self, "swap_backend_url", fallback or "http://localhost:4021")

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Swap backend (x402 swap executor)
    swap_backend_url: str = Field(
        default="",
        description="Base URL of the x402 swap executor backend",
    )
    request_timeout_seconds: int = Field(default=30, description="Request timeout")
    default_slippage_tolerance: float = Field(
        default=0.5,
        ge=0,
        le=50,
        description="Slippage tolerance in percent used for routes and executions",
    )

    # Wallet
    wallet_address: Optional[str] = Field(
        default=None,
        description="Connected wallet address that signs and receives swaps",
    )

    # Session delegation defaults ("quick swap")
    session_max_per_tx_usd: Decimal = Field(
        default=Decimal("100"),
        gt=0,
        description="Default per-transaction cap for a new session, in USD",
    )
    session_max_total_usd: Decimal = Field(
        default=Decimal("500"),
        gt=0,
        description="Default total spend cap for a new session, in USD",
    )
    session_duration_minutes: int = Field(
        default=120,
        ge=1,
        description="Default lifetime of a new session",
    )
    session_refresh_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="How often the session info cache is refreshed",
    )

    # Settlement polling
    settlement_poll_interval_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Delay between transaction status polls",
    )
    settlement_poll_max_attempts: int = Field(
        default=30,
        ge=1,
        description="Status polls per transaction before giving up silently",
    )

    # Gas Tank (prepaid x402 balance)
    gas_tank_initial_balance_usd: Decimal = Field(
        default=Decimal("1.00"),
        ge=0,
        description="Starting Gas Tank balance",
    )
    gas_tank_min_balance_warning_usd: Decimal = Field(
        default=Decimal("0.10"),
        description="Balance under which the Gas Tank is reported as low",
    )
    gas_tank_min_deposit_usd: Decimal = Field(default=Decimal("0.50"), description="Minimum deposit")
    gas_tank_suggested_deposit_usd: Decimal = Field(default=Decimal("5.00"), description="Suggested deposit")
    gas_tank_deposit_address: str = Field(
        default="0x742d35Cc6634C0532925a3b844Bc9e7595f5bA2a",
        description="USDC deposit address for Gas Tank refills",
    )
    gas_tank_deposit_network: str = Field(default="Base", description="Network for Gas Tank deposits")

    # Pricing used for session limit checks
    price_source: str = Field(
        default="proxy",
        description="USD estimator for session limits: 'proxy' or 'coingecko'",
    )
    proxy_usd_price: Decimal = Field(
        default=Decimal("2000"),
        gt=0,
        description="Unit USD price assumed for non-stable tokens by the proxy estimator",
    )
    stable_symbols: List[str] = Field(
        default_factory=lambda: ["USDC", "USDT", "DAI"],
        description="Symbols valued at 1 USD",
    )
    coingecko_api_key: str = Field(default="", description="Coingecko API key")

    # LLM intent parsing
    enable_llm_parser: bool = Field(default=True, description="Allow the LLM fallback parser")
    llm_provider: str = Field(default="anthropic", description="Default LLM provider")
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key",
        validation_alias=AliasChoices("anthropic_api_key", "ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
    )
    llm_model: str = Field(default="claude-3-5-haiku-latest", description="Primary intent parsing model")
    llm_fallback_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model retried when the primary parse fails",
    )
    intent_llm_threshold: float = Field(
        default=0.8,
        ge=0,
        le=1,
        description="Regex confidence under which the LLM parser is consulted",
    )

    # History
    history_max_entries: int = Field(default=50, ge=1, description="Swap history entries kept in memory")

    @property
    def has_anthropic_key(self) -> bool:
        return bool(self.anthropic_api_key)

    @property
    def has_llm_key(self) -> bool:
        """Check if we have an API key for the configured LLM provider"""
        if self.llm_provider.lower() in ["anthropic", "claude"]:
            return self.has_anthropic_key
        return False

    @property
    def stable_symbol_set(self) -> set[str]:
        return {symbol.upper() for symbol in self.stable_symbols}


# Global settings instance
settings = Settings()
