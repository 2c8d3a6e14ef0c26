"""Tests for the periodic loop scheduler."""

from __future__ import annotations

import asyncio

import pytest

from alphatrack.tracker.scheduler import LoopScheduler, LoopSpec
from alphatrack.tracker.state import AppState


async def _noop() -> None:
    return None


class TestLoopSpec:
    """Tests for LoopSpec validation."""

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError, match="interval_s"):
            LoopSpec("x", 0, _noop)

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValueError, match="timeout_s"):
            LoopSpec("x", 1.0, _noop, timeout_s=0)


class TestLoopScheduler:
    """Tests for LoopScheduler."""

    def test_duplicate_name_rejected(self) -> None:
        scheduler = LoopScheduler()
        scheduler.add(LoopSpec("realtime", 1.0, _noop))
        with pytest.raises(ValueError, match="Duplicate"):
            scheduler.add(LoopSpec("realtime", 2.0, _noop))

    @pytest.mark.asyncio
    async def test_run_once_success_updates_health(self) -> None:
        state = AppState()
        results: list[tuple[str, bool]] = []
        scheduler = LoopScheduler(
            health=state.loop_health,
            on_result=lambda name, ok: results.append((name, ok)),
            time_fn=lambda: 42,
        )

        assert await scheduler.run_once(LoopSpec("config", 1.0, _noop))

        health = state.loops["config"]
        assert health.runs == 1
        assert health.failures == 0
        assert health.last_success_ts == 42
        assert results == [("config", True)]

    @pytest.mark.asyncio
    async def test_run_once_failure_is_contained(self) -> None:
        """A raising body is counted, never propagated."""
        state = AppState()
        results: list[tuple[str, bool]] = []
        scheduler = LoopScheduler(
            health=state.loop_health,
            on_result=lambda name, ok: results.append((name, ok)),
        )

        async def boom() -> None:
            raise RuntimeError("upstream down")

        assert not await scheduler.run_once(LoopSpec("offsets", 1.0, boom))

        health = state.loops["offsets"]
        assert health.failures == 1
        assert health.last_success_ts == 0
        assert "upstream down" in health.last_error
        assert results == [("offsets", False)]

    @pytest.mark.asyncio
    async def test_run_once_timeout(self) -> None:
        state = AppState()
        scheduler = LoopScheduler(health=state.loop_health)

        async def slow() -> None:
            await asyncio.sleep(5)

        assert not await scheduler.run_once(LoopSpec("rollover", 1.0, slow, timeout_s=0.01))
        assert state.loops["rollover"].last_error.startswith("timeout")

    @pytest.mark.asyncio
    async def test_failing_loop_does_not_block_others(self) -> None:
        """One loop failing every run leaves the other running on schedule."""
        state = AppState()
        scheduler = LoopScheduler(health=state.loop_health)
        healthy_runs = 0

        async def healthy() -> None:
            nonlocal healthy_runs
            healthy_runs += 1
            if healthy_runs >= 3:
                scheduler.stop()

        async def broken() -> None:
            raise RuntimeError("always")

        scheduler.add(LoopSpec("realtime", 0.01, healthy))
        scheduler.add(LoopSpec("config", 0.01, broken))

        await asyncio.wait_for(scheduler.run(), timeout=2.0)

        assert healthy_runs == 3
        assert state.loops["realtime"].failures == 0
        assert state.loops["config"].failures >= 1
        assert scheduler.stopping

    @pytest.mark.asyncio
    async def test_stop_before_run(self) -> None:
        """A stop requested before run() ends every loop without running it."""
        runs = 0

        async def body() -> None:
            nonlocal runs
            runs += 1

        scheduler = LoopScheduler()
        scheduler.add(LoopSpec("realtime", 10.0, body))
        scheduler.stop()

        await asyncio.wait_for(scheduler.run(), timeout=2.0)
        assert runs == 0
