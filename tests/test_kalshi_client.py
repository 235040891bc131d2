"""Tests for the Kalshi market data and trade clients."""

from __future__ import annotations

import base64
import json

import httpx
import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from parlayhedge.config import Settings
from parlayhedge.errors import MarketLookupFailed
from parlayhedge.services.kalshi_client import KalshiMarketClient
from parlayhedge.services.trade_client import KalshiTradeClient

BASE_URL = "https://kalshi.test/trade-api/v2"


def make_settings(**overrides) -> Settings:
    values = {"kalshi_api_base_url": BASE_URL, "kalshi_trade_api_base_url": BASE_URL}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def market_client(handler) -> KalshiMarketClient:
    http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return KalshiMarketClient(make_settings(), client=http)


def serve(market: dict):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"market": market})

    return handler


# ---------------------------------------------------------------------------
# Market data
# ---------------------------------------------------------------------------


class TestKalshiMarketClient:
    def test_requests_uppercased_ticker(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"market": {"ticker": "KXA", "status": "active"}})

        market_client(handler).get_settlement("kxa")
        assert seen == ["/trade-api/v2/markets/KXA"]

    def test_settled_with_price(self) -> None:
        settlement = market_client(serve({"status": "settled", "settlement_price": 37.5})).get_settlement("KXA")
        assert settlement.status == "settled"
        assert settlement.settlement_price == 37.5

    @pytest.mark.parametrize("status", ["finalized", "determined", "closed", "SETTLED"])
    def test_settled_status_aliases(self, status) -> None:
        settlement = market_client(serve({"status": status, "settlementPrice": "0"})).get_settlement("KXA")
        assert settlement.status == "settled"
        assert settlement.settlement_price == 0

    def test_result_only(self) -> None:
        settlement = market_client(serve({"market_status": "finalized", "result": "YES"})).get_settlement("KXA")
        assert settlement.status == "settled"
        assert settlement.settlement_price is None
        assert settlement.result == "yes"

    def test_out_of_range_price_is_dropped(self) -> None:
        settlement = market_client(serve({"status": "settled", "settlement_price": 250, "result": "no"})).get_settlement("KXA")
        assert settlement.settlement_price is None
        assert settlement.result == "no"

    def test_open_market(self) -> None:
        settlement = market_client(serve({"status": "active", "result": ""})).get_settlement("KXA")
        assert settlement.status == "open"
        assert settlement.settlement_price is None

    def test_http_error(self) -> None:
        client = market_client(lambda request: httpx.Response(404, json={"error": "not found"}))
        with pytest.raises(MarketLookupFailed) as exc_info:
            client.get_settlement("KXA")
        assert exc_info.value.ticker == "KXA"
        assert exc_info.value.retryable is True

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(MarketLookupFailed):
            market_client(handler).get_settlement("KXA")

    def test_missing_market_key(self) -> None:
        client = market_client(lambda request: httpx.Response(200, json={"markets": []}))
        with pytest.raises(MarketLookupFailed):
            client.get_market("KXA")


# ---------------------------------------------------------------------------
# Trading
# ---------------------------------------------------------------------------


class TestKalshiTradeClient:
    def test_dry_run_sends_nothing(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("dry run must not hit the network")

        http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        result = KalshiTradeClient(make_settings(dry_run=True), client=http).place_order("KXA", "yes", 41, 60)

        assert result.success is True
        assert result.dry_run is True
        assert result.payload["count"] == 41
        assert result.payload["yes_price"] == 60
        assert result.payload["action"] == "buy"
        assert "no_price" not in result.payload

    def test_live_mode_requires_credentials(self) -> None:
        with pytest.raises(ValueError):
            KalshiTradeClient(make_settings(dry_run=False))
        with pytest.raises(ValueError):
            KalshiTradeClient(make_settings(dry_run=False, kalshi_api_key_id="key-1"))

    def test_live_order_is_signed(self) -> None:
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(201, json={"order": {"order_id": "ord-123"}})

        http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        client = KalshiTradeClient(
            make_settings(dry_run=False, kalshi_api_key_id="key-1"), client=http, private_key=private_key
        )
        result = client.place_order("KXA", "NO", 57, 30)

        assert result.success is True
        assert result.order_id == "ord-123"

        request = captured[0]
        assert request.url.path == "/trade-api/v2/portfolio/orders"
        assert request.headers["KALSHI-ACCESS-KEY"] == "key-1"
        body = json.loads(request.content)
        assert body["side"] == "no"
        assert body["no_price"] == 30

        message = f"{request.headers['KALSHI-ACCESS-TIMESTAMP']}POST/trade-api/v2/portfolio/orders".encode()
        # Raises InvalidSignature on mismatch
        private_key.public_key().verify(
            base64.b64decode(request.headers["KALSHI-ACCESS-SIGNATURE"]),
            message,
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.DIGEST_LENGTH),
            hashes.SHA256(),
        )

    def test_rejected_order_is_returned(self) -> None:
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        http = httpx.Client(
            base_url=BASE_URL,
            transport=httpx.MockTransport(lambda request: httpx.Response(400, text="insufficient balance")),
        )
        client = KalshiTradeClient(
            make_settings(dry_run=False, kalshi_api_key_id="key-1"), client=http, private_key=private_key
        )

        result = client.place_order("KXA", "yes", 10, 50)

        assert result.success is False
        assert "400" in result.error
        assert "insufficient balance" in result.error
