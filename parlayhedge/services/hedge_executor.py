"""Sends a hedging strategy's orders to the trading client."""

import time

from parlayhedge.logger import get_logger
from parlayhedge.models.hedge import HedgeExecutionResult, HedgingStrategy, OrderResult

logger = get_logger(__name__)


class HedgeExecutor:
    """Places hedge orders one at a time; a failed order never rolls back the others."""

    def __init__(self, trade_client, order_delay_seconds: float = 0.1):
        self.trade_client = trade_client
        self.order_delay_seconds = order_delay_seconds

    def execute(self, strategy: HedgingStrategy, session_id: str | None = None) -> HedgeExecutionResult:
        """Execute every non-zero hedge in the strategy."""
        orders = strategy.orders()
        logger.info(
            f"=== Executing hedges for {session_id or 'unknown session'}: "
            f"{len(orders)} orders, ${strategy.total_hedge_cost:.2f} total ==="
        )

        results = []
        for i, order in enumerate(orders):
            logger.info(f"Hedge {i + 1}/{len(orders)}: leg {order.leg_index}")

            if not order.ticker:
                logger.error(f"Leg {order.leg_index} has no ticker, cannot place hedge")
                results.append(OrderResult(success=False, error="Missing ticker symbol"))
                continue
            if order.size_in_contracts <= 0:
                logger.warning(f"Hedge on {order.ticker} rounds to zero contracts, skipped")
                results.append(OrderResult(success=False, error="Hedge rounds to zero contracts"))
                continue

            try:
                result = self.trade_client.place_order(
                    order.ticker,
                    order.side,
                    order.size_in_contracts,
                    order.limit_price_cents,
                )
            except Exception as e:
                logger.error(f"Hedge order for {order.ticker} failed: {e}", exc_info=True)
                result = OrderResult(success=False, error=str(e))
            results.append(result)

            # Stay under the exchange rate limit
            if i < len(orders) - 1 and self.order_delay_seconds > 0:
                time.sleep(self.order_delay_seconds)

        successful = sum(1 for r in results if r.success)
        execution = HedgeExecutionResult(
            total_orders=len(results),
            successful=successful,
            failed=len(results) - successful,
            dry_run=any(r.dry_run for r in results),
            results=results,
        )
        logger.info(f"Hedge execution: {successful}/{len(results)} orders succeeded")
        return execution
