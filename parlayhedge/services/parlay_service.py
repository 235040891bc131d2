"""Orchestrates pricing, hedging, purchase and settlement."""

from datetime import datetime

from parlayhedge.config import Settings
from parlayhedge.errors import InvalidInput
from parlayhedge.logger import get_logger
from parlayhedge.models.hedge import HedgeExecutionResult, HedgingStrategy
from parlayhedge.models.parlay import Leg
from parlayhedge.models.quote import Quote
from parlayhedge.models.settlement import Purchase
from parlayhedge.services.hedge_executor import HedgeExecutor
from parlayhedge.services.hedging_engine import HedgingEngine
from parlayhedge.services.quote_engine import QuoteEngine
from parlayhedge.services.settlement_engine import SettlementEngine

logger = get_logger(__name__)


class ParlayService:
    """Wires the engines to their collaborators for one application."""

    def __init__(
        self,
        quote_engine: QuoteEngine,
        hedging_engine: HedgingEngine,
        hedge_executor: HedgeExecutor,
        settlement_engine: SettlementEngine,
    ):
        self.quote_engine = quote_engine
        self.hedging_engine = hedging_engine
        self.hedge_executor = hedge_executor
        self.settlement_engine = settlement_engine
        self.store = settlement_engine.store

    @classmethod
    def from_settings(cls, settings: Settings, with_oracle: bool = True) -> "ParlayService":
        """Build the production wiring: Claude oracle, Kalshi clients, SQLite store."""
        from parlayhedge.services.correlation_oracle import CorrelationOracle
        from parlayhedge.services.kalshi_client import KalshiMarketClient
        from parlayhedge.services.store import SettlementStore
        from parlayhedge.services.trade_client import KalshiTradeClient

        oracle = CorrelationOracle(settings) if with_oracle else None
        store = SettlementStore(settings.db_path)
        return cls(
            quote_engine=QuoteEngine(oracle, settings.quote_config()),
            hedging_engine=HedgingEngine(settings.hedging_config()),
            hedge_executor=HedgeExecutor(KalshiTradeClient(settings), settings.order_delay_seconds),
            settlement_engine=SettlementEngine(store, KalshiMarketClient(settings)),
        )

    def quote(self, legs: list[Leg], stake: float) -> tuple[Quote, HedgingStrategy]:
        """Price a parlay and plan its hedge."""
        quote = self.quote_engine.price_parlay(legs, stake)
        strategy = self.hedging_engine.build_strategy(
            quote.legs, quote.stake, quote.adjusted_payout, quote.adjusted_probability
        )
        return quote, strategy

    def confirm_purchase(
        self,
        quote: Quote,
        strategy: HedgingStrategy,
        session_id: str,
        user_id: str,
        now: datetime | None = None,
    ) -> tuple[Purchase, HedgeExecutionResult | None]:
        """Record a paid purchase and send its hedge orders.

        Raises:
            InvalidInput: the quote has expired and must be re-priced, or the
                session id was already recorded
        """
        if quote.is_expired(now):
            raise InvalidInput(f"Quote expired at {quote.expires_at.isoformat()}, re-price before purchase")

        purchase = self.store.save_purchase(
            Purchase(
                session_id=session_id,
                user_id=user_id,
                stake=quote.stake,
                payout=quote.adjusted_payout,
                legs=quote.legs,
            ),
            strategy,
        )

        if not strategy.needs_hedging:
            logger.info(f"No hedge needed for {session_id}: {strategy.reasoning}")
            return purchase, None

        execution = self.hedge_executor.execute(strategy, session_id)
        if execution.successful > 0:
            self.store.mark_hedge_executed(session_id)
            purchase = purchase.model_copy(update={"hedge_executed": True})
        if not execution.success:
            logger.warning(f"{execution.failed}/{execution.total_orders} hedge orders failed for {session_id}")
        return purchase, execution
