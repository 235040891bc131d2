"""Correlation judgment and quote data models."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from parlayhedge.models.parlay import Leg


class OracleJudgment(BaseModel):
    """Raw correlation judgment as returned by the oracle. Never priced from directly."""

    correlation_factor: float
    adjusted_probability: float
    recommended_payout_percentage: float
    correlation_analysis: str = ""
    reasoning: str = ""
    risk_assessment: str = ""
    confidence_level: str = ""


class ValidatedJudgment(BaseModel):
    """Oracle judgment after the house-favorable clamps have been applied."""

    raw: OracleJudgment
    correlation_factor: float = Field(ge=1)
    adjusted_probability: float = Field(gt=0, le=1)
    payout_percentage: float = Field(gt=0, le=100)
    adjusted_payout: float = Field(gt=0)
    adjustments: list[str] = Field(default_factory=list, description="Clamps applied to the raw judgment")


class Quote(BaseModel):
    """Priced parlay: naive and correlation-adjusted figures plus diagnostics."""

    stake: float
    legs: list[Leg]

    naive_probability: float = Field(gt=0, le=1)
    naive_payout: float = Field(gt=0)
    correlation_factor: float = Field(ge=1)
    adjusted_probability: float = Field(gt=0, le=1)
    adjusted_payout: float = Field(gt=0)
    payout_percentage: float = Field(gt=0, le=100, description="Percent of naive payout offered")
    potential_profit: float
    effective_odds: float

    correlation_analysis: str = ""
    reasoning: str = ""
    risk_assessment: str = ""
    confidence_level: str = ""
    adjustments: list[str] = Field(default_factory=list)

    timestamp: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        """Whether the quote is stale and must be re-priced."""
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at
