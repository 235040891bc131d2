"""Tiered parlay hedging with exhaustive scenario analysis.

Enumerates all 2^n leg outcome combinations, so cost doubles with every leg.
Parlays are capped at `HedgingConfig.max_legs` to keep this bounded.
"""

import math

import numpy as np

from parlayhedge.config import HedgingConfig
from parlayhedge.errors import InvalidInput
from parlayhedge.logger import get_logger
from parlayhedge.models.hedge import (
    HedgeDecision,
    HedgeImpact,
    HedgingStrategy,
    PositionStats,
    Scenario,
)
from parlayhedge.models.parlay import Leg, validate_parlay

logger = get_logger(__name__)


class HedgingEngine:
    """Sizes per-leg hedges and scores hedged vs. unhedged house exposure."""

    def __init__(self, config: HedgingConfig | None = None):
        self.config = config or HedgingConfig()
        tiers = ", ".join(
            f">={t.min_probability_percent:g}%:{t.fraction:g}" for t in self.config.tiers
        )
        logger.info(f"HedgingEngine initialized with tiers [{tiers}]")

    def build_strategy(
        self,
        legs: list[Leg],
        stake: float,
        adjusted_payout: float,
        adjusted_probability: float,
    ) -> HedgingStrategy:
        """Build the hedging strategy for a quoted parlay."""
        logger.info(
            f"=== Building hedging strategy: {len(legs) if legs else 0} legs, "
            f"stake ${stake}, payout ${adjusted_payout} ==="
        )
        validate_parlay(legs, stake, self.config.max_legs)
        if not math.isfinite(adjusted_payout) or adjusted_payout <= 0:
            raise InvalidInput(f"Adjusted payout must be positive, got {adjusted_payout}")
        if not 0 < adjusted_probability <= 1:
            raise InvalidInput(f"Adjusted probability must be in (0, 1], got {adjusted_probability}")

        unhedged = self.unhedged_stats(stake, adjusted_payout, adjusted_probability)
        logger.info(
            f"Unhedged: EV ${unhedged.ev:.2f} ({unhedged.edge_percent:.2f}%), "
            f"std dev ${unhedged.std_dev:.2f}"
        )

        decisions = self.size_hedges(legs, stake)
        if not any(d.hedge_amount > 0 for d in decisions):
            floor = min((t.min_probability_percent for t in self.config.tiers), default=100.0)
            logger.info(f"No leg at or above {floor:g}%, no hedging needed")
            return HedgingStrategy(
                needs_hedging=False,
                decisions=decisions,
                unhedged=unhedged,
                reasoning=f"No leg reaches the {floor:g}% hedge threshold",
            )

        scenarios = self.enumerate_scenarios(legs, stake, adjusted_payout, decisions)
        hedged = self._scenario_stats(scenarios, stake)

        if unhedged.std_dev > 0:
            variance_reduction = (unhedged.std_dev - hedged.std_dev) / unhedged.std_dev * 100
        else:
            variance_reduction = 0.0
        if unhedged.ev != 0:
            ev_change = (hedged.ev - unhedged.ev) / abs(unhedged.ev) * 100
        else:
            ev_change = 0.0

        total_hedge_cost = sum(d.hedge_amount for d in decisions)
        top = sorted(scenarios, key=lambda s: s.probability, reverse=True)[: self.config.top_scenarios]
        hedged_count = sum(1 for d in decisions if d.hedge_amount > 0)

        logger.info(
            f"Hedging: {hedged_count} legs, ${total_hedge_cost:.2f} cost, "
            f"{variance_reduction:.1f}% std dev reduction, EV ${hedged.ev:.2f}"
        )

        return HedgingStrategy(
            needs_hedging=True,
            decisions=decisions,
            top_scenarios=top,
            scenario_count=len(scenarios),
            total_hedge_cost=total_hedge_cost,
            unhedged=unhedged,
            hedged=hedged,
            impact=HedgeImpact(
                variance_reduction_percent=variance_reduction,
                ev_change_percent=ev_change,
            ),
            reasoning=f"Tiered hedge on {hedged_count} of {len(legs)} legs",
        )

    def size_hedges(self, legs: list[Leg], stake: float) -> list[HedgeDecision]:
        """Assign each leg its tier's hedge fraction of the stake."""
        decisions = []
        for i, leg in enumerate(legs, 1):
            fraction = self.config.fraction_for(leg.probability_percent)
            hedge_amount = stake * fraction
            # Filled at the quoted probability, so each $1 returns 100/p
            potential_win = hedge_amount * (100 / leg.probability_percent)
            if fraction > 0:
                rationale = (
                    f"{leg.probability_percent:g}% leg hedged at {fraction:.0%} of stake"
                )
            else:
                rationale = f"{leg.probability_percent:g}% leg below hedge threshold"
            decisions.append(
                HedgeDecision(
                    leg_index=i,
                    ticker=leg.ticker,
                    side=leg.side,
                    probability_percent=leg.probability_percent,
                    hedge_fraction=fraction,
                    hedge_amount=hedge_amount,
                    potential_win=potential_win,
                    rationale=rationale,
                )
            )
            logger.debug(f"Leg {i} ({leg.label}): {rationale}")
        return decisions

    def enumerate_scenarios(
        self,
        legs: list[Leg],
        stake: float,
        adjusted_payout: float,
        decisions: list[HedgeDecision],
    ) -> list[Scenario]:
        """Score every win/loss combination of the legs.

        Bit i of the loop counter set means leg i+1 wins. Scenario weights use
        the naive per-leg probabilities so the tree sums to 1.
        """
        n = len(legs)
        hedges = [d for d in decisions if d.hedge_amount > 0]
        scenarios = []

        for mask in range(1 << n):
            leg_outcomes = [bool((mask >> i) & 1) for i in range(n)]
            parlay_wins = all(leg_outcomes)

            probability = 1.0
            for leg, wins in zip(legs, leg_outcomes):
                probability *= leg.probability if wins else 1 - leg.probability

            net = stake
            breakdown = [f"Collect from user: +${stake:.2f}"]
            if parlay_wins:
                net -= adjusted_payout
                breakdown.append(f"Pay user (parlay won): -${adjusted_payout:.2f}")
            else:
                breakdown.append("User's parlay failed: $0.00")

            for hedge in hedges:
                label = legs[hedge.leg_index - 1].label
                if leg_outcomes[hedge.leg_index - 1]:
                    net += hedge.potential_win
                    breakdown.append(f"Win {label} hedge: +${hedge.potential_win:.2f}")
                else:
                    net -= hedge.hedge_amount
                    breakdown.append(f"Lose {label} hedge: -${hedge.hedge_amount:.2f}")

            winners = [leg.label for leg, wins in zip(legs, leg_outcomes) if wins]
            if parlay_wins:
                description = "User's parlay WINS (all legs hit)"
            elif winners:
                description = f"Partial: {', '.join(winners)} win"
            else:
                description = "All legs lose"

            scenarios.append(
                Scenario(
                    outcome="".join("1" if w else "0" for w in leg_outcomes),
                    leg_outcomes=leg_outcomes,
                    parlay_wins=parlay_wins,
                    probability=probability,
                    net_cash_flow=net,
                    description=description,
                    breakdown=breakdown,
                )
            )

        logger.debug(f"Enumerated {len(scenarios)} scenarios for {n} legs")
        return scenarios

    @staticmethod
    def unhedged_stats(stake: float, adjusted_payout: float, adjusted_probability: float) -> PositionStats:
        """House EV and spread of the bare parlay: keep the stake, pay out on a win."""
        p = adjusted_probability
        # Two outcomes: keep the stake, or keep it and pay the payout (prob p)
        ev = stake - adjusted_payout * p
        variance = (adjusted_payout - stake) ** 2 * p + stake**2 * (1 - p) - ev**2
        variance = max(variance, 0.0)
        return PositionStats(
            ev=ev,
            edge_percent=ev / stake * 100,
            std_dev=math.sqrt(variance),
            variance=variance,
        )

    @staticmethod
    def _scenario_stats(scenarios: list[Scenario], stake: float) -> PositionStats:
        cash_flows = np.array([s.net_cash_flow for s in scenarios])
        weights = np.array([s.probability for s in scenarios])
        ev = float(np.sum(cash_flows * weights))
        variance = float(np.sum((cash_flows - ev) ** 2 * weights))
        return PositionStats(
            ev=ev,
            edge_percent=ev / stake * 100,
            std_dev=float(np.sqrt(variance)),
            variance=variance,
        )
