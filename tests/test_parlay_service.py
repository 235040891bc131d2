"""Tests for the purchase flow that ties the engines together."""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import FakeMarketData, FakeOracle, FakeTradeClient

from parlayhedge.errors import InvalidInput
from parlayhedge.models.parlay import Leg
from parlayhedge.services.hedge_executor import HedgeExecutor
from parlayhedge.services.hedging_engine import HedgingEngine
from parlayhedge.services.parlay_service import ParlayService
from parlayhedge.services.quote_engine import QuoteEngine
from parlayhedge.services.settlement_engine import SettlementEngine


@pytest.fixture
def trade_client() -> FakeTradeClient:
    return FakeTradeClient()


@pytest.fixture
def service(store, trade_client) -> ParlayService:
    return ParlayService(
        quote_engine=QuoteEngine(FakeOracle()),
        hedging_engine=HedgingEngine(),
        hedge_executor=HedgeExecutor(trade_client, order_delay_seconds=0),
        settlement_engine=SettlementEngine(store, FakeMarketData()),
    )


class TestParlayService:
    def test_quote_plans_hedge_on_adjusted_payout(self, service, two_legs) -> None:
        quote, strategy = service.quote(two_legs, 100)

        assert quote.adjusted_payout == pytest.approx(214.2857, abs=1e-3)
        assert strategy.needs_hedging is True
        assert strategy.unhedged.ev == pytest.approx(100 - 0.42 * quote.adjusted_payout)

    def test_confirm_saves_and_hedges(self, service, store, trade_client, two_legs) -> None:
        quote, strategy = service.quote(two_legs, 100)

        purchase, execution = service.confirm_purchase(quote, strategy, "sess-1", "user-1")

        assert purchase.id is not None
        assert purchase.hedge_executed is True
        assert execution.successful == 2
        assert len(trade_client.orders) == 2
        stored = store.get_purchase("sess-1")
        assert stored.payout == pytest.approx(quote.adjusted_payout)
        assert stored.hedge_executed is True

    def test_failed_hedges_do_not_undo_purchase(self, store, two_legs) -> None:
        client = FakeTradeClient(fail={"KXNBA-LAL", "KXNBA-BOS"})
        service = ParlayService(
            QuoteEngine(FakeOracle()),
            HedgingEngine(),
            HedgeExecutor(client, order_delay_seconds=0),
            SettlementEngine(store, FakeMarketData()),
        )
        quote, strategy = service.quote(two_legs, 100)

        purchase, execution = service.confirm_purchase(quote, strategy, "sess-1", "user-1")

        assert execution.failed == 2
        assert purchase.hedge_executed is False
        assert store.get_purchase("sess-1") is not None

    def test_no_hedge_needed(self, service, trade_client) -> None:
        legs = [Leg(ticker="KXLOW", probability_percent=30)]
        service.quote_engine.oracle = FakeOracle(
            FakeOracle().judgment.model_copy(update={"adjusted_probability": 0.3})
        )
        quote, strategy = service.quote(legs, 100)

        purchase, execution = service.confirm_purchase(quote, strategy, "sess-2", "user-1")

        assert execution is None
        assert trade_client.orders == []
        assert purchase.hedge_executed is False

    def test_expired_quote_is_rejected(self, service, store, two_legs) -> None:
        quote, strategy = service.quote(two_legs, 100)

        with pytest.raises(InvalidInput):
            service.confirm_purchase(quote, strategy, "sess-1", "user-1", now=quote.expires_at + timedelta(seconds=1))
        assert store.get_purchase("sess-1") is None
