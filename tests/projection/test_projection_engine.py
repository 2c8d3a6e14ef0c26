"""Tests for the projection and target engine."""

from __future__ import annotations

import pytest

from alphatrack.contracts.events import CompetitionConfig, TargetHistoryEntry
from alphatrack.contracts.types import CompetitionStatus
from alphatrack.projection.engine import (
    ProjectionConfig,
    ProjectionEngine,
    last_published_target,
    round_half_up,
)
from alphatrack.volume.ledger import AccumulatedVolume, accumulate
from alphatrack.volume.normalizer import DailyVolume
from alphatrack.volume.velocity import VelocityEstimate


def _competition(**overrides: object) -> CompetitionConfig:
    data: dict[str, object] = {
        "asset_id": "ALPHA_1",
        "start_date": "2025-03-10",
        "end_date": "2025-03-10",
        "end_time": "12:00",
        "rule_type": "buy_only",
        "winner_count": 5000,
    }
    data.update(overrides)
    return CompetitionConfig.model_validate(data)


def _volume(total: float, limit: float = 0.0, tx_count: int = 0) -> AccumulatedVolume:
    return accumulate(
        today=DailyVolume(total=total, limit=limit, tx_count=tx_count),
        today_date="2025-03-10",
    )


class TestRounding:
    """Tests for round_half_up and last_published_target."""

    def test_half_up(self) -> None:
        """Halves round up."""
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2

    def test_last_published_target_latest_positive(self) -> None:
        """The newest strictly positive target wins regardless of order."""
        history = (
            TargetHistoryEntry(date="2025-03-08", target=80.0),
            TargetHistoryEntry(date="2025-03-09", target=0.0),
            TargetHistoryEntry(date="2025-03-07", target=95.0),
        )
        assert last_published_target(history) == 80.0

    def test_last_published_target_none(self) -> None:
        """No positive target yields None."""
        assert last_published_target(()) is None
        assert last_published_target((TargetHistoryEntry(date="2025-03-08", target=0),)) is None


class TestProjectionEngine:
    """Tests for ProjectionEngine.predict."""

    @pytest.fixture
    def engine(self) -> ProjectionEngine:
        return ProjectionEngine(ProjectionConfig(base_constant=1.0, freeze_s=60))

    def test_buy_only_scenario(self, engine: ProjectionEngine) -> None:
        """1,000,000 projected, buy_only, K=1, 5000 winners gives 100."""
        competition = _competition()
        now = competition.end_ms() - 30_000

        result = engine.predict(competition, _volume(1_000_000.0), now)

        assert result.target == 100
        assert result.delta == 100
        assert result.effective_multiplier == 0.5

    def test_freeze_at_end_minus_60s(self, engine: ProjectionEngine) -> None:
        """At or after end-60s the result is final regardless of velocity."""
        competition = _competition()
        velocity = VelocityEstimate(volume_per_s=1e9, window_s=60)

        frozen = engine.predict(competition, _volume(1_000_000.0), competition.end_ms() - 60_000, velocity)
        assert frozen.is_finalized
        assert frozen.status == CompetitionStatus.FINALIZED
        assert frozen.projected_volume == 1_000_000.0

        live = engine.predict(competition, _volume(1_000_000.0), competition.end_ms() - 61_000, velocity)
        assert not live.is_finalized
        assert live.status == CompetitionStatus.LIVE

    def test_linear_extrapolation(self, engine: ProjectionEngine) -> None:
        """Velocity times seconds remaining is added to the basis."""
        competition = _competition(rule_type="trade_all", winner_count=1)
        now = competition.end_ms() - 1_000_000
        velocity = VelocityEstimate(volume_per_s=2.0, window_s=60)

        result = engine.predict(competition, _volume(1_000.0), now, velocity)

        assert result.projected_volume == pytest.approx(3_000.0)
        assert result.target == 3_000

    def test_limit_basis_scales_velocity(self, engine: ProjectionEngine) -> None:
        """With limit data the basis is the limit volume and velocity is scaled."""
        competition = _competition(rule_type="trade_all", winner_count=1)
        now = competition.end_ms() - 100_000
        velocity = VelocityEstimate(volume_per_s=10.0, window_s=60)

        result = engine.predict(competition, _volume(1_000.0, limit=250.0), now, velocity)

        assert result.used_limit_data
        assert result.projected_volume == pytest.approx(250.0 + 10.0 * 0.25 * 100)
        assert "limit orders only" in result.rule_description

    @pytest.mark.parametrize(
        ("rule_type", "expected"),
        [("trade_all", 200), ("buy_only", 100), ("trade_x4", 800)],
    )
    def test_rule_multipliers(self, engine: ProjectionEngine, rule_type: str, expected: int) -> None:
        """Each rule applies its multiplier."""
        competition = _competition(rule_type=rule_type)
        result = engine.predict(competition, _volume(1_000_000.0), competition.end_ms())
        assert result.target == expected

    def test_admin_factor_and_constant(self) -> None:
        """K and the admin factor multiply the target."""
        engine = ProjectionEngine(ProjectionConfig(base_constant=0.95))
        competition = _competition(rule_type="trade_all", winner_count=100, admin_factor=2.0)

        result = engine.predict(competition, _volume(10_000.0), competition.end_ms())

        assert result.effective_multiplier == pytest.approx(1.9)
        assert result.target == 190
        assert "admin x2" in result.rule_description

    def test_delta_against_history(self, engine: ProjectionEngine) -> None:
        """Delta is measured against the latest positive published target."""
        competition = _competition(
            target_history=[
                {"date": "2025-03-08", "target": 90},
                {"date": "2025-03-09", "target": 0},
            ]
        )
        result = engine.predict(competition, _volume(1_000_000.0), competition.end_ms())
        assert result.delta == 10

    def test_debug_summary(self, engine: ProjectionEngine) -> None:
        """Debug text has projected volume in billions and an average ticket size."""
        competition = _competition()
        result = engine.predict(
            competition, _volume(2_000_000_000.0, tx_count=1000), competition.end_ms()
        )
        assert "proj=2.000B" in result.debug_summary
        assert "ticket=2,000,000.00 (avg)" in result.debug_summary

    def test_ticket_falls_back_to_window(self, engine: ProjectionEngine) -> None:
        """Without trade counts the short-window ticket size is reported."""
        competition = _competition()
        velocity = VelocityEstimate(volume_per_s=5.0, ticket_size=12.5, window_s=30)
        result = engine.predict(competition, _volume(100.0), competition.end_ms(), velocity)
        assert "ticket=12.50 (30s)" in result.debug_summary


class TestProjectionConfig:
    """Tests for ProjectionConfig validation."""

    def test_rejects_non_positive_constant(self) -> None:
        with pytest.raises(ValueError, match="base_constant"):
            ProjectionConfig(base_constant=0)

    def test_rejects_negative_freeze(self) -> None:
        with pytest.raises(ValueError, match="freeze_s"):
            ProjectionConfig(freeze_s=-1)
