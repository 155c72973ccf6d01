from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class TrackerSettings(BaseSettings):
    """Core tracker configuration for wallet addresses and display currency."""

    # Wallet addresses, one per chain
    wallet_addresses: Dict[str, str] = Field(
        default_factory=dict,
        alias="WALLET_ADDRESSES",
        description="JSON object mapping chain ID to the wallet address on that chain"
    )

    currency: str = Field("usd", alias="TRACKER_CURRENCY", description="Currency used for valuations")
    token_registry_path: Optional[str] = Field(
        None,
        alias="TOKEN_REGISTRY_PATH",
        description="Path to a JSON file mapping raw denominations to canonical tokens"
    )
    max_workers: int = Field(8, alias="TRACKER_MAX_WORKERS", description="Parallel per-chain fetches")


class QuickStakeSettings(BaseSettings):
    """Validator selection parameters for quick stake."""

    max_commission: Decimal = Field(
        Decimal("0.05"),
        alias="QUICKSTAKE_MAX_COMMISSION",
        description="Validators charging more than this commission rate are never selected"
    )
    voting_power_include: Decimal = Field(
        Decimal("0.65"),
        alias="QUICKSTAKE_VOTING_POWER_INCLUDE",
        description="Cumulative voting power share covered by the eligible set, smallest validators first"
    )
    # Display-unit thresholds: below 100 -> 1 validator, below 1000 -> 2, below 10000 -> 3, else 4
    tiers: List[int] = Field(
        [100, 1000, 10000],
        alias="QUICKSTAKE_TIERS",
        description="Amount thresholds that decide how many validators a stake is split across"
    )


class LCDSettings(BaseSettings):
    """Cosmos SDK LCD endpoint configuration."""

    lcd_urls: Dict[str, str] = Field(
        default_factory=dict,
        alias="LCD_URLS",
        description="JSON object mapping chain ID to LCD base URL"
    )
    page_limit: int = Field(100, alias="LCD_PAGE_LIMIT", description="Page size for paginated queries")
    timeout_seconds: float = Field(20, alias="LCD_TIMEOUT_SECONDS", description="HTTP timeout per request")


class CoinGeckoSettings(BaseSettings):
    """CoinGecko API configuration."""

    base_url: str = Field(
        "https://api.coingecko.com/api/v3",
        alias="COINGECKO_BASE_URL",
        description="CoinGecko API base URL"
    )
    api_key: Optional[str] = Field(None, alias="COINGECKO_API_KEY", description="CoinGecko demo/pro API key")
    coingecko_ids: Dict[str, str] = Field(
        default_factory=dict,
        alias="COINGECKO_IDS",
        description="JSON object mapping canonical token key to CoinGecko coin id, e.g. {\"uatom\": \"cosmos\"}"
    )
