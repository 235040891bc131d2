"""Data models for ParlayHedge."""

from parlayhedge.models.parlay import Leg, Parlay
from parlayhedge.models.quote import OracleJudgment, ValidatedJudgment, Quote
from parlayhedge.models.hedge import (
    HedgeDecision,
    HedgeExecutionResult,
    HedgeImpact,
    HedgeOrder,
    HedgingStrategy,
    OrderResult,
    PositionStats,
    Scenario,
)
from parlayhedge.models.settlement import (
    BatchReport,
    ClaimResult,
    LegOutcome,
    MarketSettlement,
    ParlayStatus,
    Purchase,
    StatusReport,
)

__all__ = [
    "Leg",
    "Parlay",
    "OracleJudgment",
    "ValidatedJudgment",
    "Quote",
    "HedgeDecision",
    "HedgeExecutionResult",
    "HedgeImpact",
    "HedgeOrder",
    "HedgingStrategy",
    "OrderResult",
    "PositionStats",
    "Scenario",
    "BatchReport",
    "ClaimResult",
    "LegOutcome",
    "MarketSettlement",
    "ParlayStatus",
    "Purchase",
    "StatusReport",
]
