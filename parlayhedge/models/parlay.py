"""Leg and parlay data models."""

import math

from pydantic import BaseModel, Field

from parlayhedge.errors import DegenerateProbability, InvalidInput


class Leg(BaseModel):
    """A single binary-outcome bet within a parlay."""

    market_id: str = ""
    ticker: str | None = Field(default=None, description="Exchange-unique outcome identifier")
    option_label: str = ""
    market_title: str = ""
    probability_percent: float = Field(ge=0, le=100, description="Independent win probability (0-100)")
    side: str = Field(default="yes", description="Outcome polarity the user bet on")

    model_config = {"frozen": True}

    @property
    def probability(self) -> float:
        """Win probability as a fraction."""
        return self.probability_percent / 100

    @property
    def label(self) -> str:
        """Short human-readable name for logs and scenario text."""
        return self.option_label or self.market_title or self.ticker or self.market_id or "leg"


class Parlay(BaseModel):
    """An ordered set of legs sharing one flat stake."""

    legs: list[Leg] = Field(min_length=1)
    stake: float = Field(gt=0)


def validate_parlay(legs: list[Leg], stake: float, max_legs: int) -> None:
    """Reject empty, oversized or degenerate parlays.

    Raises:
        InvalidInput: stake is not a positive finite number, legs are empty or
            exceed max_legs
        DegenerateProbability: a leg sits at 0% or 100%
    """
    if not legs:
        raise InvalidInput("A parlay needs at least one leg")
    if stake is None or not math.isfinite(stake) or stake <= 0:
        raise InvalidInput(f"Stake must be positive, got {stake}")
    if len(legs) > max_legs:
        raise InvalidInput(f"Parlay has {len(legs)} legs, limit is {max_legs}")

    for i, leg in enumerate(legs, 1):
        if leg.probability_percent <= 0 or leg.probability_percent >= 100:
            raise DegenerateProbability(
                f"Leg {i} ({leg.label}) has degenerate probability {leg.probability_percent}%",
                leg_index=i,
            )
