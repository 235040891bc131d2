"""Shared fakes and fixtures."""

from __future__ import annotations

import pytest

from parlayhedge.errors import MarketLookupFailed
from parlayhedge.models.hedge import OrderResult
from parlayhedge.models.parlay import Leg
from parlayhedge.models.quote import OracleJudgment
from parlayhedge.models.settlement import MarketSettlement
from parlayhedge.services.store import SettlementStore


class FakeOracle:
    """Returns a fixed judgment (or raises) and records every call."""

    def __init__(self, judgment: OracleJudgment | None = None, error: Exception | None = None):
        self.judgment = judgment or OracleJudgment(
            correlation_factor=1.0,
            adjusted_probability=0.42,
            recommended_payout_percentage=90,
            correlation_analysis="Independent events",
            reasoning="No shared drivers",
            risk_assessment="low",
            confidence_level="high",
        )
        self.error = error
        self.calls: list[tuple] = []

    def judge(self, leg_descriptions, stake, naive_probability, naive_payout):
        self.calls.append((leg_descriptions, stake, naive_probability, naive_payout))
        if self.error is not None:
            raise self.error
        return self.judgment


class FakeMarketData:
    """Serves settlements from a dict; values may be exceptions to raise."""

    def __init__(self, markets: dict | None = None):
        self.markets = dict(markets or {})
        self.calls: list[str] = []

    def get_settlement(self, ticker: str) -> MarketSettlement:
        self.calls.append(ticker)
        value = self.markets.get(ticker)
        if value is None:
            raise MarketLookupFailed(f"Market {ticker} not found", ticker=ticker)
        if isinstance(value, Exception):
            raise value
        return value


class FakeTradeClient:
    """Records orders; fails for tickers in `fail` and raises for tickers in `explode`."""

    def __init__(self, fail: set[str] | None = None, explode: set[str] | None = None):
        self.fail = fail or set()
        self.explode = explode or set()
        self.orders: list[tuple] = []

    def place_order(self, ticker, side, size_in_contracts, limit_price_cents):
        self.orders.append((ticker, side, size_in_contracts, limit_price_cents))
        if ticker in self.explode:
            raise RuntimeError("exchange unreachable")
        if ticker in self.fail:
            return OrderResult(success=False, error="insufficient liquidity")
        return OrderResult(success=True, order_id=f"ord-{len(self.orders)}")


def settled(price: float | None = None, result: str | None = None) -> MarketSettlement:
    return MarketSettlement(status="settled", settlement_price=price, result=result)


OPEN = MarketSettlement(status="open")


@pytest.fixture
def two_legs() -> list[Leg]:
    return [
        Leg(market_id="m1", ticker="KXNBA-LAL", option_label="Lakers", market_title="Lakers win", probability_percent=60),
        Leg(market_id="m2", ticker="KXNBA-BOS", option_label="Celtics", market_title="Celtics win", probability_percent=70),
    ]


@pytest.fixture
def store(tmp_path) -> SettlementStore:
    return SettlementStore(tmp_path / "test.db")
