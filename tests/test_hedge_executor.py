"""Tests for sending hedge orders."""

from __future__ import annotations

from conftest import FakeTradeClient

from parlayhedge.models.parlay import Leg
from parlayhedge.services.hedge_executor import HedgeExecutor
from parlayhedge.services.hedging_engine import HedgingEngine


def strategy_for(legs, stake=100.0):
    naive = 1.0
    for leg in legs:
        naive *= leg.probability
    return HedgingEngine().build_strategy(legs, stake, stake / naive * 0.9, naive)


class TestHedgeExecutor:
    def test_places_one_order_per_hedged_leg(self, two_legs) -> None:
        client = FakeTradeClient()
        result = HedgeExecutor(client, order_delay_seconds=0).execute(strategy_for(two_legs), "sess-1")

        assert client.orders == [("KXNBA-LAL", "yes", 41, 60), ("KXNBA-BOS", "yes", 57, 70)]
        assert result.total_orders == 2
        assert result.successful == 2
        assert result.success is True
        assert result.dry_run is False

    def test_partial_failure_keeps_other_orders(self, two_legs) -> None:
        client = FakeTradeClient(fail={"KXNBA-LAL"})
        result = HedgeExecutor(client, order_delay_seconds=0).execute(strategy_for(two_legs))

        assert len(client.orders) == 2
        assert result.successful == 1
        assert result.failed == 1
        assert result.success is False
        assert result.results[0].error == "insufficient liquidity"
        assert result.results[1].success is True

    def test_client_exception_recorded_as_failure(self, two_legs) -> None:
        client = FakeTradeClient(explode={"KXNBA-BOS"})
        result = HedgeExecutor(client, order_delay_seconds=0).execute(strategy_for(two_legs))

        assert result.successful == 1
        assert result.results[1].success is False
        assert "exchange unreachable" in result.results[1].error

    def test_missing_ticker_never_reaches_client(self) -> None:
        legs = [Leg(option_label="Mystery", probability_percent=70), Leg(ticker="KXB", probability_percent=60)]
        client = FakeTradeClient()
        result = HedgeExecutor(client, order_delay_seconds=0).execute(strategy_for(legs))

        assert client.orders == [("KXB", "yes", 41, 60)]
        assert result.results[0].success is False
        assert result.results[0].error == "Missing ticker symbol"

    def test_nothing_to_hedge(self) -> None:
        client = FakeTradeClient()
        result = HedgeExecutor(client, order_delay_seconds=0).execute(
            strategy_for([Leg(ticker="KXLOW", probability_percent=30)])
        )

        assert client.orders == []
        assert result.total_orders == 0
        assert result.success is True

    def test_tiny_hedge_rounds_to_zero_contracts(self) -> None:
        client = FakeTradeClient()
        result = HedgeExecutor(client, order_delay_seconds=0).execute(
            strategy_for([Leg(ticker="KXA", probability_percent=90)], stake=1.0)
        )

        # $0.40 at 90c buys no whole contract
        assert client.orders == []
        assert result.results[0].error == "Hedge rounds to zero contracts"
