"""Finalization state machine for competitions."""

from alphatrack.finalization.machine import Finalizer, FinalizerMetrics

__all__ = ["Finalizer", "FinalizerMetrics"]
