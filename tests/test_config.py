"""Tests for settings and hedge tier configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from parlayhedge.config import HedgeTier, HedgingConfig, Settings


class TestHedgingConfig:
    def test_tiers_sorted_highest_first(self) -> None:
        config = HedgingConfig(
            tiers=[
                HedgeTier(min_probability_percent=50, fraction=0.1),
                HedgeTier(min_probability_percent=80, fraction=0.5),
            ]
        )
        assert [t.min_probability_percent for t in config.tiers] == [80, 50]
        assert config.fraction_for(85) == 0.5
        assert config.fraction_for(60) == 0.1
        assert config.fraction_for(49) == 0.0

    def test_no_tiers_never_hedges(self) -> None:
        assert HedgingConfig(tiers=[]).fraction_for(99) == 0.0

    @pytest.mark.parametrize("floor, fraction", [(0, 0.2), (100, 0.2), (50, 1.5), (50, -0.1)])
    def test_invalid_tier(self, floor, fraction) -> None:
        with pytest.raises(ValidationError):
            HedgeTier(min_probability_percent=floor, fraction=fraction)


class TestSettings:
    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv("DRY_RUN", raising=False)
        settings = Settings(_env_file=None)
        assert settings.dry_run is True
        assert settings.quote_config().quote_ttl_seconds == 300
        assert settings.hedging_config().fraction_for(60) == 0.25

    def test_env_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("HEDGE_TIERS", '[{"min_probability_percent": 60, "fraction": 0.3}]')
        monkeypatch.setenv("MAX_LEGS", "4")
        monkeypatch.setenv("PAYOUT_FLOOR_PERCENTAGE", "80")

        settings = Settings(_env_file=None)
        hedging = settings.hedging_config()

        assert hedging.max_legs == 4
        assert hedging.fraction_for(65) == 0.3
        assert hedging.fraction_for(59) == 0.0
        assert settings.quote_config().payout_floor_percentage == 80
