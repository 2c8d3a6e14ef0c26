"""
Short-window volume velocity.

The window length is a tunable; 60s is the default. A drop in the observed
daily volume (day rollover, counter reset) clears the window so that a
negative velocity is never reported.
"""

from __future__ import annotations

from dataclasses import dataclass

from alphatrack.volume.ring_buffer import RingBuffer


@dataclass(frozen=True)
class VolumeSample:
    """Normalized daily volume and trade count at one poll."""

    volume: float
    tx_count: int


@dataclass(frozen=True)
class VelocityEstimate:
    """
    Short-window activity estimate.

    Attributes:
        volume_per_s: Volume per second over the window (>= 0).
        ticket_size: Volume per trade over the window, 0 if unknown.
        window_s: Seconds actually covered by the samples.
    """

    volume_per_s: float = 0.0
    ticket_size: float = 0.0
    window_s: float = 0.0


ZERO_VELOCITY = VelocityEstimate()


class VelocityTracker:
    """Per-asset velocity from the trailing window of poll samples."""

    def __init__(self, window_s: float = 60.0, max_samples: int = 1024) -> None:
        self._window_ms = int(window_s * 1000)
        self._max_samples = max_samples
        self._buffers: dict[str, RingBuffer[VolumeSample]] = {}

    def record(self, asset_id: str, ts: int, volume: float, tx_count: int) -> None:
        """
        Record a normalized daily sample for an asset.

        Args:
            asset_id: Asset identifier.
            ts: Sample timestamp (ms).
            volume: Today's normalized volume.
            tx_count: Today's normalized trade count.
        """
        buf = self._buffers.get(asset_id)
        if buf is None:
            buf = RingBuffer(window_ms=self._window_ms, max_size=self._max_samples)
            self._buffers[asset_id] = buf

        last = buf.last()
        if last is not None:
            if ts <= last.ts:
                return
            if volume < last.value.volume:
                buf.clear()
        buf.push(ts, VolumeSample(volume=volume, tx_count=tx_count))

    def estimate(self, asset_id: str, now_ts: int) -> VelocityEstimate:
        """
        Velocity over the trailing window.

        Returns:
            ZERO_VELOCITY if fewer than two samples are in the window.
        """
        buf = self._buffers.get(asset_id)
        if buf is None:
            return ZERO_VELOCITY
        window = buf.get_window(now_ts)
        if len(window) < 2:
            return ZERO_VELOCITY

        first, last = window[0], window[-1]
        elapsed_s = (last.ts - first.ts) / 1000
        if elapsed_s <= 0:
            return ZERO_VELOCITY

        d_volume = max(0.0, last.value.volume - first.value.volume)
        d_tx = last.value.tx_count - first.value.tx_count
        ticket = d_volume / d_tx if d_tx > 0 else 0.0
        return VelocityEstimate(
            volume_per_s=d_volume / elapsed_s,
            ticket_size=ticket,
            window_s=elapsed_s,
        )

    def forget(self, asset_id: str) -> None:
        """Drop all samples of an asset."""
        self._buffers.pop(asset_id, None)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._buffers
