"""Tests for rolling-to-daily normalization."""

from __future__ import annotations

import random

from alphatrack.timeutil import MS_PER_MINUTE, instant_ms
from alphatrack.volume.normalizer import (
    normalize_asset,
    normalize_daily,
    reconcile_total_limit,
)
from alphatrack.volume.tail import EMPTY_TAIL, MinuteTailTable, build_tail_table

DAY = instant_ms("2025-03-09", "00:00")


def _flat_tail(total: float) -> MinuteTailTable:
    """Tail whose value is `total` at every minute up to 720, then zero."""
    return build_tail_table([(DAY + 720 * MS_PER_MINUTE, total)], day_start_ms=DAY)


class TestNormalizeDaily:
    """Tests for normalize_daily."""

    def test_scenario_subtracts_tail(self) -> None:
        """1,000,000 rolling minus 300,000 tail is 700,000 today."""
        tail = _flat_tail(300_000.0)
        assert normalize_daily(1_000_000.0, tail, 600) == 700_000.0

    def test_tail_gone_after_its_minute(self) -> None:
        """Past the last sampled minute the whole counter is today's."""
        tail = _flat_tail(300_000.0)
        assert normalize_daily(1_000_000.0, tail, 721) == 1_000_000.0

    def test_clamps_negative_to_zero(self) -> None:
        """A stale tail larger than the counter yields zero, not negative."""
        tail = _flat_tail(5_000.0)
        assert normalize_daily(1_000.0, tail, 0) == 0.0

    def test_never_negative_generated(self) -> None:
        """For any R >= 0 and any tail, daily >= 0."""
        rng = random.Random(7)
        for _ in range(200):
            tail = _flat_tail(rng.uniform(0, 1e7))
            rolling = rng.uniform(0, 1e7)
            minute = rng.randrange(1440)
            assert normalize_daily(rolling, tail, minute) >= 0.0


class TestReconcileTotalLimit:
    """Tests for reconcile_total_limit."""

    def test_total_raised_to_limit(self) -> None:
        """A total below the limit is raised to it."""
        assert reconcile_total_limit(90.0, 100.0) == (100.0, 100.0)

    def test_negatives_clamped(self) -> None:
        """Both values are clamped at zero."""
        assert reconcile_total_limit(-5.0, -1.0) == (0.0, 0.0)

    def test_consistent_pair_unchanged(self) -> None:
        """total >= limit passes through."""
        assert reconcile_total_limit(200.0, 50.0) == (200.0, 50.0)


class TestNormalizeAsset:
    """Tests for normalize_asset."""

    def test_no_tail_passes_counters_through(self) -> None:
        """With empty tails the rolling counters are today's values."""
        daily = normalize_asset(
            rolling_total=1_000.0,
            rolling_limit=400.0,
            rolling_tx_count=50,
            volume_tail=EMPTY_TAIL,
            tx_tail=EMPTY_TAIL,
            minute=10,
        )
        assert daily.total == 1_000.0
        assert daily.limit == 400.0
        assert daily.tx_count == 50

    def test_limit_tail_scaled_by_ratio(self) -> None:
        """Without a limit tail, the volume tail is scaled by limit/total."""
        daily = normalize_asset(
            rolling_total=1_000_000.0,
            rolling_limit=500_000.0,
            rolling_tx_count=0,
            volume_tail=_flat_tail(300_000.0),
            tx_tail=EMPTY_TAIL,
            minute=0,
        )
        assert daily.total == 700_000.0
        assert daily.limit == 350_000.0

    def test_explicit_limit_tail(self) -> None:
        """A limit tail is subtracted from the limit counter directly."""
        daily = normalize_asset(
            rolling_total=1_000.0,
            rolling_limit=600.0,
            rolling_tx_count=0,
            volume_tail=_flat_tail(100.0),
            tx_tail=EMPTY_TAIL,
            limit_tail=_flat_tail(500.0),
            minute=0,
        )
        assert daily.limit == 100.0
        assert daily.total == 900.0

    def test_tx_count_tail(self) -> None:
        """Trade counts are normalized with their own tail."""
        daily = normalize_asset(
            rolling_total=0.0,
            rolling_limit=0.0,
            rolling_tx_count=1_000,
            volume_tail=EMPTY_TAIL,
            tx_tail=_flat_tail(250.0),
            minute=5,
        )
        assert daily.tx_count == 750

    def test_total_never_below_limit_generated(self) -> None:
        """dailyTotal >= dailyLimit for generated counter pairs."""
        rng = random.Random(1234)
        for _ in range(300):
            daily = normalize_asset(
                rolling_total=rng.uniform(0, 1e6),
                rolling_limit=rng.uniform(0, 1.5e6),
                rolling_tx_count=rng.randint(0, 10_000),
                volume_tail=_flat_tail(rng.uniform(0, 1e6)),
                tx_tail=_flat_tail(rng.uniform(0, 5_000)),
                limit_tail=_flat_tail(rng.uniform(0, 1e6)) if rng.random() < 0.5 else None,
                minute=rng.randrange(1440),
            )
            assert daily.total >= daily.limit >= 0.0
            assert daily.tx_count >= 0
