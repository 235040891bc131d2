"""Hedging strategy data models."""

import math

from pydantic import BaseModel, Field


class HedgeDecision(BaseModel):
    """Hedge sizing for a single leg."""

    leg_index: int = Field(ge=1, description="1-based leg index")
    ticker: str | None = None
    side: str = "yes"
    probability_percent: float
    hedge_fraction: float = Field(ge=0, le=1, description="Fraction of stake hedged")
    hedge_amount: float = Field(ge=0)
    potential_win: float = Field(ge=0, description="Returned if the hedge wins")
    rationale: str = ""

    def to_order(self) -> "HedgeOrder":
        """Convert to an order filled at the market's quoted probability."""
        price = self.probability_percent / 100
        # Tolerate float noise like 14.999999999 contracts
        contracts = math.floor(self.hedge_amount / price + 1e-9) if price > 0 else 0
        limit_price_cents = min(max(int(round(self.probability_percent)), 1), 99)
        return HedgeOrder(
            leg_index=self.leg_index,
            ticker=self.ticker,
            side=self.side,
            size_in_contracts=contracts,
            limit_price_cents=limit_price_cents,
            hedge_amount=self.hedge_amount,
        )


class Scenario(BaseModel):
    """One win/loss combination across all legs."""

    outcome: str = Field(description="Bit pattern, leg 1 first, 1 = leg wins")
    leg_outcomes: list[bool]
    parlay_wins: bool
    probability: float = Field(ge=0, le=1)
    net_cash_flow: float
    description: str
    breakdown: list[str] = Field(default_factory=list)


class PositionStats(BaseModel):
    """House P&L statistics for one position."""

    ev: float
    edge_percent: float
    std_dev: float = Field(ge=0)
    variance: float = Field(ge=0)


class HedgeImpact(BaseModel):
    """Effect of hedging relative to the unhedged position."""

    variance_reduction_percent: float
    ev_change_percent: float


class HedgeOrder(BaseModel):
    """An order the trading client should place to open a hedge."""

    leg_index: int
    ticker: str | None
    side: str
    size_in_contracts: int = Field(ge=0)
    limit_price_cents: int = Field(ge=1, le=99)
    hedge_amount: float


class HedgingStrategy(BaseModel):
    """Complete hedge plan for a quoted parlay."""

    needs_hedging: bool
    decisions: list[HedgeDecision] = Field(default_factory=list)
    top_scenarios: list[Scenario] = Field(default_factory=list)
    scenario_count: int = 0
    total_hedge_cost: float = 0.0
    unhedged: PositionStats
    hedged: PositionStats | None = None
    impact: HedgeImpact | None = None
    reasoning: str = ""

    def orders(self) -> list[HedgeOrder]:
        """Orders for every leg with a non-zero hedge."""
        if not self.needs_hedging:
            return []
        return [d.to_order() for d in self.decisions if d.hedge_amount > 0]


class OrderResult(BaseModel):
    """Outcome of a single order placement."""

    success: bool
    order_id: str | None = None
    dry_run: bool = False
    error: str | None = None
    payload: dict = Field(default_factory=dict)


class HedgeExecutionResult(BaseModel):
    """Aggregate result of sending all hedge orders."""

    total_orders: int
    successful: int
    failed: int
    dry_run: bool = False
    results: list[OrderResult] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.successful == self.total_orders
