"""
Independent periodic loops.

Each loop runs its body on a fixed interval, bounded by a timeout. A body
that raises or times out is logged and counted; the loop is rescheduled
regardless, keeping whatever state the last good run produced. Loops never
wait on each other. Shutdown is a shared asyncio.Event.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from alphatrack.tracker.state import LoopHealth

logger = logging.getLogger(__name__)

LoopBody = Callable[[], Awaitable[None]]


@dataclass
class LoopSpec:
    """
    A scheduled loop.

    Attributes:
        name: Low-cardinality loop name (also the metrics label).
        interval_s: Seconds between the starts of consecutive runs.
        body: Coroutine function run each interval.
        timeout_s: Upper bound on one run.
        run_immediately: Run once at start instead of after one interval.
    """

    name: str
    interval_s: float
    body: LoopBody
    timeout_s: float = 60.0
    run_immediately: bool = True

    def __post_init__(self) -> None:
        if self.interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {self.interval_s}")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")


class LoopScheduler:
    """Runs LoopSpecs concurrently until stop() is called."""

    def __init__(
        self,
        health: Callable[[str], LoopHealth] | None = None,
        on_result: Callable[[str, bool], None] | None = None,
        time_fn: Callable[[], int] | None = None,
    ) -> None:
        """
        Args:
            health: Lookup of the LoopHealth record for a loop name.
            on_result: Called with (loop name, success) after every run.
            time_fn: Wall-clock provider in ms.
        """
        self._loops: list[LoopSpec] = []
        self._health = health
        self._on_result = on_result
        self._time_fn = time_fn or (lambda: int(time.time() * 1000))
        self._stop = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    def add(self, spec: LoopSpec) -> None:
        if any(loop.name == spec.name for loop in self._loops):
            raise ValueError(f"Duplicate loop name: {spec.name!r}")
        self._loops.append(spec)

    @property
    def loops(self) -> list[LoopSpec]:
        return list(self._loops)

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    async def run_once(self, spec: LoopSpec) -> bool:
        """
        Run one iteration of a loop body with its timeout.

        Returns:
            True on success. Failures are logged and never raised, except
            cancellation.
        """
        health = self._health(spec.name) if self._health else LoopHealth()
        health.runs += 1
        try:
            await asyncio.wait_for(spec.body(), timeout=spec.timeout_s)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            health.failures += 1
            health.last_error = f"timeout after {spec.timeout_s}s"
            logger.warning("Loop run timed out", extra={"loop": spec.name})
            ok = False
        except Exception as e:
            health.failures += 1
            health.last_error = repr(e)[:200]
            logger.exception("Loop run failed", extra={"loop": spec.name})
            ok = False
        else:
            health.last_success_ts = self._time_fn()
            ok = True

        if self._on_result is not None:
            self._on_result(spec.name, ok)
        return ok

    async def _run_loop(self, spec: LoopSpec) -> None:
        logger.info("Loop started", extra={"loop": spec.name, "interval_s": spec.interval_s})
        if not spec.run_immediately and await self._wait(spec.interval_s):
            return
        while not self._stop.is_set():
            started = time.monotonic()
            await self.run_once(spec)
            remaining = spec.interval_s - (time.monotonic() - started)
            if await self._wait(max(0.0, remaining)):
                break
        logger.info("Loop stopped", extra={"loop": spec.name})

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; True if stop was requested meanwhile."""
        if seconds <= 0:
            await asyncio.sleep(0)
            return self._stop.is_set()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        return self._stop.is_set()

    async def run(self) -> None:
        """Run all loops until stop() is called."""
        self._tasks = [
            asyncio.create_task(self._run_loop(spec), name=f"loop:{spec.name}")
            for spec in self._loops
        ]
        try:
            await asyncio.gather(*self._tasks)
        finally:
            for task in self._tasks:
                task.cancel()
            for task in self._tasks:
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            self._tasks = []

    def stop(self) -> None:
        """Request all loops to stop after their current run."""
        self._stop.set()
