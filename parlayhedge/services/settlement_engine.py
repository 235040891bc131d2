"""Leg settlement, parlay status aggregation and claiming."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from parlayhedge.errors import ClaimConflict, DataQualityFault, InvalidInput, MarketLookupFailed
from parlayhedge.logger import get_logger
from parlayhedge.models.settlement import (
    BatchReport,
    ClaimResult,
    LegOutcome,
    MarketSettlement,
    ParlayStatus,
    Purchase,
    StatusReport,
)

logger = get_logger(__name__)


def determine_outcome(settlement_price: float) -> str:
    """Each ticker is a YES bet on its outcome; any positive settlement means it happened."""
    return "win" if settlement_price > 0 else "loss"


def resolve_leg(leg_number: int, ticker: str, settlement: MarketSettlement) -> LegOutcome:
    """Map a market's settlement state onto a leg outcome."""
    if settlement.status != "settled":
        return LegOutcome(leg_number=leg_number, ticker=ticker)

    price = settlement.settlement_price
    if price is None:
        if settlement.result == "yes":
            price = 100.0
        elif settlement.result == "no":
            price = 0.0
        else:
            return LegOutcome(
                leg_number=leg_number,
                ticker=ticker,
                error="Settlement price not available",
            )

    return LegOutcome(
        leg_number=leg_number,
        ticker=ticker,
        market_status="settled",
        outcome=determine_outcome(price),
        settlement_price=price,
    )


class SettlementEngine:
    """Tracks purchased parlays through settlement to a claimable amount.

    `store` persists purchases and leg outcomes, `market_data` exposes
    `get_settlement(ticker)` and `wallet` exposes `credit(user_id, amount, reference)`.
    The store doubles as the wallet when none is given.
    """

    def __init__(self, store, market_data, wallet=None):
        self.store = store
        self.market_data = market_data
        self.wallet = wallet or store

    def check_parlay_status(self, purchase: Purchase) -> StatusReport:
        """Refresh every leg of a purchase and persist the aggregate status."""
        if purchase.id is None:
            raise InvalidInput(f"Purchase {purchase.session_id} has not been saved")

        logger.info(f"Checking parlay {purchase.session_id} ({len(purchase.legs)} legs)")
        stored = self.store.get_leg_outcomes(purchase.id)
        outcomes = []

        for leg_number, leg in enumerate(purchase.legs, 1):
            existing = stored.get(leg_number)
            if existing and existing.settled and existing.settlement_price is not None:
                outcomes.append(existing)
                continue

            if not leg.ticker:
                fault = DataQualityFault(f"Leg {leg_number} of {purchase.session_id} has no ticker")
                logger.warning(str(fault))
                outcomes.append(LegOutcome(leg_number=leg_number, error="No ticker available"))
                continue

            try:
                settlement = self.market_data.get_settlement(leg.ticker)
            except MarketLookupFailed as e:
                logger.warning(f"Lookup failed for {leg.ticker}, leaving leg {leg_number} pending: {e}")
                outcomes.append(LegOutcome(leg_number=leg_number, ticker=leg.ticker, error=str(e)))
                continue

            outcome = resolve_leg(leg_number, leg.ticker, settlement)
            self.store.upsert_leg_outcome(purchase.id, outcome)
            logger.debug(f"Leg {leg_number} ({leg.ticker}): {outcome.market_status}/{outcome.outcome}")
            outcomes.append(outcome)

        all_settled = all(o.settled for o in outcomes)
        if all_settled and all(o.outcome == "win" for o in outcomes):
            status, claimable = ParlayStatus.WON, purchase.payout
        elif all_settled:
            status, claimable = ParlayStatus.LOST, 0.0
        else:
            status, claimable = ParlayStatus.PENDING, 0.0

        self.store.update_parlay_status(purchase.id, status, claimable)
        logger.info(f"Parlay {purchase.session_id}: {status.value}, claimable ${claimable:.2f}")

        return StatusReport(
            purchase_id=purchase.id,
            status=status,
            claimable_amount=claimable,
            all_settled=all_settled,
            outcomes=outcomes,
        )

    def claim_winnings(self, purchase: Purchase) -> ClaimResult:
        """Claim a won parlay exactly once and credit the user's balance.

        Raises:
            ClaimConflict: the purchase is not won or was already claimed
        """
        if purchase.status is not ParlayStatus.WON:
            raise ClaimConflict(f"Parlay {purchase.session_id} is {purchase.status.value}, not won")
        if purchase.claimed_at is not None:
            raise ClaimConflict(f"Parlay {purchase.session_id} already claimed at {purchase.claimed_at}")

        claimed_at = datetime.now(timezone.utc)
        if not self.store.mark_claimed(purchase.id, claimed_at):
            logger.warning(f"Concurrent or stale claim rejected for {purchase.session_id}")
            raise ClaimConflict(f"Parlay {purchase.session_id} could not be claimed")

        amount = purchase.claimable_amount or purchase.payout
        try:
            self.wallet.credit(purchase.user_id, amount, reference=f"claim:{purchase.session_id}")
        except Exception:
            logger.error(f"Credit failed for {purchase.session_id}, releasing claim", exc_info=True)
            self.store.release_claim(purchase.id, claimed_at)
            raise
        logger.info(f"Parlay {purchase.session_id} claimed: ${amount:.2f} to {purchase.user_id}")
        return ClaimResult(purchase_id=purchase.id, committed=True, amount=amount, claimed_at=claimed_at)

    def check_all_active(self, max_workers: int = 1) -> BatchReport:
        """Run a settlement check on every pending or won purchase.

        Won purchases are rechecked because won is not claimed; their legs are
        already settled so the pass costs no market lookups. One failing
        purchase never aborts the batch.
        """
        purchases = self.store.get_active_purchases()
        logger.info(f"Checking {len(purchases)} active parlays (workers={max_workers})")

        if max_workers > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(self._check_isolated, purchases))
        else:
            results = [self._check_isolated(p) for p in purchases]

        report = BatchReport()
        for purchase, (status_report, error) in zip(purchases, results):
            report.checked += 1
            if error is not None:
                report.failed += 1
                report.errors[purchase.session_id] = error
            else:
                report.reports.append(status_report)

        logger.info(f"Finished checking {report.checked} parlays, {report.failed} failed")
        return report

    def _check_isolated(self, purchase: Purchase) -> tuple[StatusReport | None, str | None]:
        try:
            return self.check_parlay_status(purchase), None
        except Exception as e:
            logger.error(f"Error checking parlay {purchase.session_id}: {e}", exc_info=True)
            return None, str(e)
