"""Settlement data models."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from parlayhedge.models.parlay import Leg

MarketStatus = Literal["open", "settled"]
LegResult = Literal["pending", "win", "loss"]


class ParlayStatus(str, Enum):
    """Aggregate status of a purchased parlay."""

    PENDING = "pending"
    WON = "won"
    LOST = "lost"

    @property
    def is_terminal(self) -> bool:
        return self is not ParlayStatus.PENDING


class MarketSettlement(BaseModel):
    """Settlement state of a market as reported by the market data client."""

    status: MarketStatus
    settlement_price: float | None = Field(default=None, ge=0, le=100)
    result: Literal["yes", "no"] | None = None


class LegOutcome(BaseModel):
    """Settlement record for one leg of a purchase."""

    leg_number: int = Field(ge=1)
    ticker: str | None = None
    market_status: MarketStatus = "open"
    outcome: LegResult = "pending"
    settlement_price: float | None = None
    error: str | None = None

    @property
    def settled(self) -> bool:
        return self.market_status == "settled"


class Purchase(BaseModel):
    """A completed (paid) parlay purchase."""

    id: int | None = None
    session_id: str
    user_id: str
    stake: float = Field(gt=0)
    payout: float = Field(ge=0)
    legs: list[Leg] = Field(min_length=1)
    status: ParlayStatus = ParlayStatus.PENDING
    claimable_amount: float = 0.0
    claimed_at: datetime | None = None
    hedge_executed: bool = False


class StatusReport(BaseModel):
    """Result of a settlement check for one purchase."""

    purchase_id: int | None
    status: ParlayStatus
    claimable_amount: float
    all_settled: bool
    outcomes: list[LegOutcome]


class ClaimResult(BaseModel):
    """A committed claim."""

    purchase_id: int | None
    committed: bool
    amount: float
    claimed_at: datetime


class BatchReport(BaseModel):
    """Result of a batch settlement pass."""

    checked: int = 0
    failed: int = 0
    reports: list[StatusReport] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict, description="Session id -> error")
