"""Tests for day-one start offsets."""

from __future__ import annotations

from alphatrack.timeutil import instant_ms
from alphatrack.volume.offset import StartOffset, StartOffsetCache, compute_start_offset

DAY = instant_ms("2025-03-10", "00:00")
HOUR = 3_600_000


class TestComputeStartOffset:
    """Tests for compute_start_offset."""

    def test_sums_samples_before_start(self) -> None:
        """Only samples in [day_start, start) count."""
        start = DAY + 3 * HOUR
        samples = [
            (DAY - HOUR, 1_000.0),
            (DAY, 10_000.0),
            (DAY + HOUR, 15_000.0),
            (DAY + 2 * HOUR, 25_000.0),
            (DAY + 3 * HOUR, 99_000.0),
        ]
        assert compute_start_offset(samples, DAY, start) == 50_000.0

    def test_start_at_midnight_is_zero(self) -> None:
        """A competition starting at 00:00 has no offset."""
        assert compute_start_offset([(DAY, 5.0)], DAY, DAY) == 0.0

    def test_empty_samples(self) -> None:
        """No samples means no offset."""
        assert compute_start_offset([], DAY, DAY + HOUR) == 0.0


class TestStartOffsetCache:
    """Tests for StartOffsetCache."""

    def test_get_requires_matching_day(self) -> None:
        """An entry is valid only for its own day."""
        cache = StartOffsetCache()
        cache.put(StartOffset("ALPHA_1", "2025-03-10", 50_000.0, DAY))

        assert cache.get("ALPHA_1", "2025-03-10") is not None
        assert cache.get("ALPHA_1", "2025-03-11") is None
        assert not cache.needs_refresh("ALPHA_1", "2025-03-10")
        assert cache.needs_refresh("ALPHA_2", "2025-03-10")

    def test_prune_drops_other_days(self) -> None:
        """Pruning keeps only entries for the given date."""
        cache = StartOffsetCache()
        cache.put(StartOffset("ALPHA_1", "2025-03-09", 1.0, DAY))
        cache.put(StartOffset("ALPHA_2", "2025-03-10", 2.0, DAY))

        assert cache.prune("2025-03-10") == 1
        assert len(cache) == 1
        assert cache.get("ALPHA_2", "2025-03-10") is not None
