"""Projection of competition volume to a per-winner reward target."""

from alphatrack.projection.engine import (
    ProjectionConfig,
    ProjectionEngine,
    last_published_target,
    round_half_up,
)
from alphatrack.projection.rules import rule_label, rule_multiplier

__all__ = [
    "ProjectionConfig",
    "ProjectionEngine",
    "last_published_target",
    "round_half_up",
    "rule_label",
    "rule_multiplier",
]
