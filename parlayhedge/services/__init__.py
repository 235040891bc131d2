"""Services for ParlayHedge."""

from parlayhedge.services.quote_engine import QuoteEngine
from parlayhedge.services.hedging_engine import HedgingEngine
from parlayhedge.services.hedge_executor import HedgeExecutor
from parlayhedge.services.settlement_engine import SettlementEngine

__all__ = [
    "QuoteEngine",
    "HedgingEngine",
    "HedgeExecutor",
    "SettlementEngine",
]
