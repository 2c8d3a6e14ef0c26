"""Tracker service: shared state, loop scheduling and metrics."""

from alphatrack.tracker.exporter import TrackerExporter
from alphatrack.tracker.scheduler import LoopScheduler, LoopSpec
from alphatrack.tracker.service import TrackerService
from alphatrack.tracker.state import AppState, LoopHealth

__all__ = [
    "AppState",
    "LoopHealth",
    "LoopScheduler",
    "LoopSpec",
    "TrackerExporter",
    "TrackerService",
]
