"""Market data client for the Kalshi trade API."""

import httpx

from parlayhedge.config import Settings
from parlayhedge.errors import MarketLookupFailed
from parlayhedge.logger import get_logger
from parlayhedge.models.settlement import MarketSettlement

logger = get_logger(__name__)

SETTLED_STATUSES = {"settled", "finalized", "determined", "closed"}


class KalshiMarketClient:
    """Fetches market settlement state from Kalshi."""

    def __init__(self, settings: Settings, client: httpx.Client | None = None):
        self.base_url = settings.kalshi_api_base_url
        self.client = client or httpx.Client(base_url=self.base_url, timeout=15.0)
        logger.info(f"KalshiMarketClient initialized with base URL: {self.base_url}")

    def get_market(self, ticker: str) -> dict:
        """Fetch the raw market record for a ticker.

        Raises:
            MarketLookupFailed: on transport errors, non-2xx responses or an
                unexpected payload
        """
        ticker = ticker.upper()
        try:
            response = self.client.get(f"/markets/{ticker}")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Kalshi returned {e.response.status_code} for {ticker}")
            raise MarketLookupFailed(
                f"Kalshi API error {e.response.status_code} for {ticker}", ticker=ticker
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching market {ticker}: {e}")
            raise MarketLookupFailed(f"Error fetching market {ticker}: {e}", ticker=ticker) from e

        market = data.get("market") if isinstance(data, dict) else None
        if not isinstance(market, dict):
            raise MarketLookupFailed(f"Market {ticker} not found in response", ticker=ticker)
        return market

    def get_settlement(self, ticker: str) -> MarketSettlement:
        """Current settlement state of a ticker."""
        market = self.get_market(ticker)
        settlement = self._parse_settlement(market)
        logger.debug(
            f"{ticker}: status={settlement.status}, price={settlement.settlement_price}, "
            f"result={settlement.result}"
        )
        return settlement

    def _parse_settlement(self, market: dict) -> MarketSettlement:
        """Map a raw market record onto open/settled."""
        status = str(market.get("status") or market.get("market_status") or "").lower()

        price = None
        for field in ("settlement_price", "settlementPrice", "settlement_value"):
            value = market.get(field)
            if value is None or value == "":
                continue
            try:
                price = float(value)
            except (TypeError, ValueError):
                logger.warning(f"Unparseable {field} {value!r} for {market.get('ticker')}")
                continue
            break

        result = str(market.get("result") or "").lower() or None
        if result not in ("yes", "no"):
            result = None

        if status not in SETTLED_STATUSES:
            return MarketSettlement(status="open")
        if price is not None and 0 <= price <= 100:
            return MarketSettlement(status="settled", settlement_price=price, result=result)
        return MarketSettlement(status="settled", result=result)

    def close(self):
        """Close the HTTP client."""
        self.client.close()
