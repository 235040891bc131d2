"""Order placement on the Kalshi trade API."""

import base64
import time
import uuid
from pathlib import Path
from urllib.parse import urlparse

import httpx
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from parlayhedge.config import Settings
from parlayhedge.logger import get_logger
from parlayhedge.models.hedge import OrderResult

logger = get_logger(__name__)


class KalshiTradeClient:
    """Places buy orders on Kalshi.

    Dry-run mode (the default) logs the order payload without sending it.
    Live mode signs each request with the account's RSA key (RSA-PSS, SHA-256).
    """

    def __init__(self, settings: Settings, client: httpx.Client | None = None, private_key=None):
        self.base_url = settings.kalshi_trade_api_base_url
        self.dry_run = settings.dry_run
        self.key_id = settings.kalshi_api_key_id
        self.private_key = private_key

        if not self.dry_run:
            if not self.key_id:
                raise ValueError("KALSHI_API_KEY_ID must be set when DRY_RUN is false")
            if self.private_key is None:
                if not settings.kalshi_private_key_path:
                    raise ValueError("KALSHI_PRIVATE_KEY_PATH must be set when DRY_RUN is false")
                self.private_key = self._load_private_key(Path(settings.kalshi_private_key_path))

        self.client = client or httpx.Client(base_url=self.base_url, timeout=15.0)
        logger.info(
            f"KalshiTradeClient initialized ({'DRY RUN' if self.dry_run else 'LIVE'}) "
            f"with base URL: {self.base_url}"
        )

    @staticmethod
    def _load_private_key(path: Path):
        return serialization.load_pem_private_key(path.read_bytes(), password=None)

    def _auth_headers(self, method: str, path: str) -> dict[str, str]:
        ts_ms = str(int(time.time() * 1000))
        signing_path = urlparse(self.base_url).path.rstrip("/") + path
        message = f"{ts_ms}{method.upper()}{signing_path}".encode("utf-8")
        signature = self.private_key.sign(
            message,
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.DIGEST_LENGTH),
            hashes.SHA256(),
        )
        return {
            "KALSHI-ACCESS-KEY": self.key_id,
            "KALSHI-ACCESS-TIMESTAMP": ts_ms,
            "KALSHI-ACCESS-SIGNATURE": base64.b64encode(signature).decode("utf-8"),
        }

    def place_order(
        self,
        ticker: str,
        side: str,
        size_in_contracts: int,
        limit_price_cents: int,
    ) -> OrderResult:
        """Place a limit buy order. Failures are returned, not raised."""
        side = side.lower()
        payload = {
            "ticker": ticker,
            "side": side,
            "action": "buy",
            "count": size_in_contracts,
            "type": "limit",
            "client_order_id": str(uuid.uuid4()),
        }
        if side == "yes":
            payload["yes_price"] = limit_price_cents
        else:
            payload["no_price"] = limit_price_cents

        logger.info(
            f"Order: buy {size_in_contracts} {side.upper()} {ticker} @ {limit_price_cents}c"
        )
        logger.debug(f"Order payload: {payload}")

        if self.dry_run:
            logger.info("DRY RUN: order logged but not placed")
            return OrderResult(success=True, dry_run=True, payload=payload)

        path = "/portfolio/orders"
        try:
            response = self.client.post(path, json=payload, headers=self._auth_headers("POST", path))
            response.raise_for_status()
            order = response.json().get("order") or {}
        except httpx.HTTPStatusError as e:
            logger.error(f"Order rejected for {ticker}: {e.response.status_code} {e.response.text}")
            return OrderResult(
                success=False,
                error=f"HTTP {e.response.status_code}: {e.response.text}",
                payload=payload,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error placing order for {ticker}: {e}")
            return OrderResult(success=False, error=str(e), payload=payload)

        order_id = order.get("order_id")
        logger.info(f"Order placed: {order_id}")
        return OrderResult(success=True, order_id=order_id, payload=payload)

    def close(self):
        """Close the HTTP client."""
        self.client.close()
