"""Correlation-adjusted parlay pricing."""

import math
from datetime import datetime, timedelta, timezone

from parlayhedge.config import QuoteConfig
from parlayhedge.errors import DegenerateProbability, InvalidInput
from parlayhedge.logger import get_logger
from parlayhedge.models.parlay import Leg, validate_parlay
from parlayhedge.models.quote import OracleJudgment, Quote, ValidatedJudgment

logger = get_logger(__name__)


def naive_probability(legs: list[Leg]) -> float:
    """Combined probability assuming the legs are independent."""
    probability = 1.0
    for leg in legs:
        probability *= leg.probability
    return probability


def describe_legs(legs: list[Leg]) -> str:
    """Format the legs as context for the correlation oracle."""
    blocks = []
    for i, leg in enumerate(legs, 1):
        lines = [f"{i}. Market: {leg.market_title or 'Unknown'}"]
        if leg.option_label:
            lines.append(f"   Option: {leg.option_label}")
        if leg.ticker:
            lines.append(f"   Ticker: {leg.ticker}")
        if leg.market_id:
            lines.append(f"   Market ID: {leg.market_id}")
        lines.append(f"   Side: {leg.side}")
        lines.append(f"   Probability: {leg.probability_percent}%")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def validate_judgment(
    raw: OracleJudgment,
    naive_prob: float,
    naive_payout: float,
    payout_floor_percentage: float = 85.0,
) -> ValidatedJudgment:
    """Clamp an oracle judgment so it can never reduce the house edge.

    The adjusted probability is never below the naive one, the correlation
    factor never below 1.0, the payout percentage stays in (0, 100] and the
    adjusted payout never exceeds the naive payout.
    """
    adjustments = []

    adjusted_probability = raw.adjusted_probability
    if not math.isfinite(adjusted_probability) or adjusted_probability < naive_prob:
        adjustments.append(
            f"adjusted_probability {raw.adjusted_probability} raised to naive {naive_prob:.6f}"
        )
        adjusted_probability = naive_prob
    elif adjusted_probability > 1.0:
        adjustments.append(f"adjusted_probability {raw.adjusted_probability} capped at 1.0")
        adjusted_probability = 1.0

    correlation_factor = raw.correlation_factor
    if not math.isfinite(correlation_factor) or correlation_factor < 1.0:
        adjustments.append(f"correlation_factor {raw.correlation_factor} raised to 1.0")
        correlation_factor = 1.0

    payout_percentage = raw.recommended_payout_percentage
    if not math.isfinite(payout_percentage) or payout_percentage <= 0:
        adjustments.append(
            f"payout percentage {raw.recommended_payout_percentage} replaced by floor {payout_floor_percentage}"
        )
        payout_percentage = payout_floor_percentage
    elif payout_percentage > 100:
        adjustments.append(f"payout percentage {raw.recommended_payout_percentage} capped at 100")
        payout_percentage = 100.0

    adjusted_payout = min(naive_payout * payout_percentage / 100, naive_payout)

    for note in adjustments:
        logger.warning(f"Oracle output clamped: {note}")

    return ValidatedJudgment(
        raw=raw,
        correlation_factor=correlation_factor,
        adjusted_probability=adjusted_probability,
        payout_percentage=payout_percentage,
        adjusted_payout=adjusted_payout,
        adjustments=adjustments,
    )


class QuoteEngine:
    """Prices parlays from naive leg probabilities plus an oracle judgment."""

    def __init__(self, oracle, config: QuoteConfig | None = None):
        self.oracle = oracle
        self.config = config or QuoteConfig()
        logger.info(
            f"QuoteEngine initialized (ttl={self.config.quote_ttl_seconds}s, "
            f"max_legs={self.config.max_legs})"
        )

    def price_parlay(self, legs: list[Leg], stake: float) -> Quote:
        """Price a parlay.

        Raises:
            InvalidInput: empty legs, oversized parlay or non-positive stake
            DegenerateProbability: a leg at 0% or 100%
            OracleUnavailable: the correlation oracle could not be reached
        """
        logger.info(f"=== Pricing parlay: {len(legs) if legs else 0} legs, stake ${stake} ===")
        validate_parlay(legs, stake, self.config.max_legs)

        naive_prob = naive_probability(legs)
        if naive_prob <= 0:
            # Underflow on many tiny legs
            raise DegenerateProbability("Naive probability underflowed to zero")
        naive_payout = stake / naive_prob
        if not math.isfinite(naive_payout):
            raise InvalidInput("Naive payout is not finite")
        logger.info(f"Naive probability {naive_prob:.4%}, naive payout ${naive_payout:.2f}")

        raw = self.oracle.judge(describe_legs(legs), stake, naive_prob, naive_payout)
        judgment = validate_judgment(
            raw, naive_prob, naive_payout, self.config.payout_floor_percentage
        )

        timestamp = datetime.now(timezone.utc)
        quote = Quote(
            stake=stake,
            legs=list(legs),
            naive_probability=naive_prob,
            naive_payout=naive_payout,
            correlation_factor=judgment.correlation_factor,
            adjusted_probability=judgment.adjusted_probability,
            adjusted_payout=judgment.adjusted_payout,
            payout_percentage=judgment.payout_percentage,
            potential_profit=judgment.adjusted_payout - stake,
            effective_odds=judgment.adjusted_payout / stake,
            correlation_analysis=raw.correlation_analysis,
            reasoning=raw.reasoning,
            risk_assessment=raw.risk_assessment,
            confidence_level=raw.confidence_level,
            adjustments=judgment.adjustments,
            timestamp=timestamp,
            expires_at=timestamp + timedelta(seconds=self.config.quote_ttl_seconds),
        )
        logger.info(
            f"Quote: adjusted probability {quote.adjusted_probability:.4%}, "
            f"payout ${quote.adjusted_payout:.2f} ({quote.payout_percentage}% of naive)"
        )
        return quote
