"""Environment configuration."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class HedgeTier(BaseModel):
    """Hedge a leg at `fraction` of the stake once its probability reaches the floor."""

    min_probability_percent: float = Field(gt=0, lt=100)
    fraction: float = Field(ge=0, le=1)


DEFAULT_HEDGE_TIERS = [
    HedgeTier(min_probability_percent=65.0, fraction=0.40),
    HedgeTier(min_probability_percent=55.0, fraction=0.25),
    HedgeTier(min_probability_percent=50.0, fraction=0.15),
]


class QuoteConfig(BaseModel):
    """Knobs for the quote engine."""

    quote_ttl_seconds: int = Field(default=300, gt=0)
    max_legs: int = Field(default=12, ge=1)
    # Substituted when the oracle recommends a non-positive payout percentage
    payout_floor_percentage: float = Field(default=85.0, gt=0, le=100)


class HedgingConfig(BaseModel):
    """Knobs for the hedging engine."""

    tiers: list[HedgeTier] = Field(default_factory=lambda: list(DEFAULT_HEDGE_TIERS))
    max_legs: int = Field(default=12, ge=1)
    top_scenarios: int = Field(default=5, ge=1)

    @field_validator("tiers")
    @classmethod
    def _sort_tiers(cls, tiers: list[HedgeTier]) -> list[HedgeTier]:
        # Highest floor first so the first match wins
        return sorted(tiers, key=lambda t: t.min_probability_percent, reverse=True)

    def fraction_for(self, probability_percent: float) -> float:
        """Hedge fraction of stake for a leg at the given probability."""
        for tier in self.tiers:
            if probability_percent >= tier.min_probability_percent:
                return tier.fraction
        return 0.0


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    anthropic_api_key: Optional[str] = None

    # LLM settings
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 2048
    oracle_timeout_seconds: float = 30.0

    # Kalshi API settings
    kalshi_api_base_url: str = "https://api.elections.kalshi.com/trade-api/v2"
    kalshi_trade_api_base_url: str = "https://demo-api.kalshi.co/trade-api/v2"
    kalshi_api_key_id: Optional[str] = None
    kalshi_private_key_path: Optional[str] = None
    dry_run: bool = True
    order_delay_seconds: float = 0.1

    # Storage
    db_path: str = "parlayhedge.db"

    # Pricing settings
    quote_ttl_seconds: int = 300
    max_legs: int = 12
    payout_floor_percentage: float = 85.0

    # Hedge settings
    hedge_tiers: list[HedgeTier] = Field(default_factory=lambda: list(DEFAULT_HEDGE_TIERS))
    top_scenarios: int = 5

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def quote_config(self) -> QuoteConfig:
        """Build the quote engine config from settings."""
        return QuoteConfig(
            quote_ttl_seconds=self.quote_ttl_seconds,
            max_legs=self.max_legs,
            payout_floor_percentage=self.payout_floor_percentage,
        )

    def hedging_config(self) -> HedgingConfig:
        """Build the hedging engine config from settings."""
        return HedgingConfig(
            tiers=self.hedge_tiers,
            max_legs=self.max_legs,
            top_scenarios=self.top_scenarios,
        )


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
