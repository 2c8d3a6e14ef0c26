"""
Projection and reward-target engine.

Extrapolates accumulated volume to the competition end using the
short-window velocity, applies the rule multiplier, the base constant K and
the optional admin factor, and divides by the number of winners.

Within freeze_s of the end the projection stops: the current accumulated
volume is final and the result is flagged for finalization.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from alphatrack.contracts.events import CompetitionConfig, PredictionResult, TargetHistoryEntry
from alphatrack.contracts.types import CompetitionStatus
from alphatrack.projection.rules import rule_label, rule_multiplier
from alphatrack.volume.ledger import AccumulatedVolume
from alphatrack.volume.velocity import ZERO_VELOCITY, VelocityEstimate


@dataclass(frozen=True)
class ProjectionConfig:
    """
    Tunables for the projection engine.

    Attributes:
        base_constant: Empirical constant K applied to every target.
        freeze_s: Seconds before the end at which projection stops.
    """

    base_constant: float = 1.0
    freeze_s: int = 60

    def __post_init__(self) -> None:
        if self.base_constant <= 0:
            raise ValueError(f"base_constant must be > 0, got {self.base_constant}")
        if self.freeze_s < 0:
            raise ValueError(f"freeze_s must be >= 0, got {self.freeze_s}")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from -inf."""
    return math.floor(value + 0.5)


def last_published_target(history: tuple[TargetHistoryEntry, ...]) -> float | None:
    """Most recent strictly-positive published target, by date."""
    for entry in sorted(history, key=lambda h: h.date, reverse=True):
        if entry.target > 0:
            return entry.target
    return None


class ProjectionEngine:
    """Computes a PredictionResult per competition per poll cycle."""

    def __init__(self, config: ProjectionConfig | None = None) -> None:
        self._config = config or ProjectionConfig()

    @property
    def config(self) -> ProjectionConfig:
        return self._config

    def freeze_ms(self, competition: CompetitionConfig) -> int:
        """Instant at which the competition's target freezes."""
        return competition.end_ms() - self._config.freeze_s * 1000

    def is_frozen(self, competition: CompetitionConfig, now_ms: int) -> bool:
        return now_ms >= self.freeze_ms(competition)

    def predict(
        self,
        competition: CompetitionConfig,
        volume: AccumulatedVolume,
        now_ms: int,
        velocity: VelocityEstimate = ZERO_VELOCITY,
    ) -> PredictionResult:
        """
        Project the final target of a competition.

        Args:
            competition: Competition definition.
            volume: Accumulated volume for this cycle.
            now_ms: Current timestamp.
            velocity: Short-window velocity of the all-trades volume.

        Returns:
            PredictionResult; is_finalized is True at or after the freeze instant.
        """
        used_limit = volume.limit > 0
        basis = volume.limit if used_limit else volume.total
        # Only the limit share of the all-trades velocity counts when limit data is used
        ratio = volume.limit / volume.total if used_limit and volume.total > 0 else 1.0

        frozen = self.is_frozen(competition, now_ms)
        end_ms = competition.end_ms()
        if frozen:
            projected = basis
        else:
            remaining_s = max(0.0, (end_ms - now_ms) / 1000)
            projected = basis + velocity.volume_per_s * ratio * remaining_s

        rule_mult = rule_multiplier(competition.rule_type)
        admin = competition.admin_factor if competition.admin_factor is not None else 1.0
        effective = rule_mult * self._config.base_constant * admin

        target = round_half_up(projected * effective / competition.winner_count)
        previous = last_published_target(competition.target_history)
        delta = target if previous is None else target - round_half_up(previous)

        return PredictionResult(
            target=target,
            delta=delta,
            rule_description=self._describe(competition, effective, used_limit),
            effective_multiplier=effective,
            is_finalized=frozen,
            status=CompetitionStatus.FINALIZED if frozen else CompetitionStatus.LIVE,
            projected_volume=projected,
            used_limit_data=used_limit,
            debug_summary=self._debug(projected, volume, velocity),
        )

    def _describe(self, competition: CompetitionConfig, effective: float, used_limit: bool) -> str:
        source = "limit orders only" if used_limit else "all trades"
        text = f"{rule_label(competition.rule_type)} x{effective:.4g} ({source})"
        if competition.admin_factor is not None:
            text += f" admin x{competition.admin_factor:.4g}"
        return text

    @staticmethod
    def _debug(projected: float, volume: AccumulatedVolume, velocity: VelocityEstimate) -> str:
        if volume.tx_count > 0:
            ticket = volume.total / volume.tx_count
            ticket_src = "avg"
        else:
            ticket = velocity.ticket_size
            ticket_src = f"{velocity.window_s:.0f}s"
        return (
            f"proj={projected / 1e9:.3f}B vel={velocity.volume_per_s:,.0f}/s "
            f"ticket={ticket:,.2f} ({ticket_src})"
        )
