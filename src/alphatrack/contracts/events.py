"""
Data contracts for the Alpha competition tracker.

These are the canonical records passed between the volume engine, the
projection engine, the finalizer, storage and the outbound API. All records
are immutable: each poll cycle replaces them wholesale.
"""

from __future__ import annotations

import re
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from alphatrack.contracts.types import CompetitionStatus, PriceStatus, RuleType
from alphatrack.timeutil import instant_ms

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")


class _JsonModel(BaseModel):
    """Base model with orjson helpers."""

    def to_json(self) -> bytes:
        """Serialize to JSON bytes using orjson."""
        return orjson.dumps(self.model_dump(mode="json"))

    @classmethod
    def from_json(cls, data: bytes | str) -> Any:
        """Deserialize from JSON."""
        if isinstance(data, str):
            data = data.encode()
        return cls.model_validate(orjson.loads(data))


class AssetRollingSnapshot(_JsonModel):
    """
    Per-asset sample taken on each poll.

    Attributes:
        asset_id: Exchange asset identifier (e.g., "ALPHA_118").
        symbol: Display symbol.
        price: Last price.
        rolling_volume_24h: Exchange-reported volume over the trailing 24h.
        rolling_tx_count_24h: Exchange-reported trade count over the trailing 24h.
        timestamp_ms: Local sample timestamp (ms).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    asset_id: str = Field(..., min_length=1)
    symbol: str = ""
    price: float = Field(default=0.0, ge=0)
    rolling_volume_24h: float = Field(default=0.0, ge=0)
    rolling_tx_count_24h: int = Field(default=0, ge=0)
    timestamp_ms: int = Field(..., ge=0)


class TargetHistoryEntry(_JsonModel):
    """A previously published target."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    date: str
    target: float = 0.0

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        if not _DATE_RE.match(v):
            raise ValueError(f"date must be YYYY-MM-DD, got {v!r}")
        return v


class VolumeHistoryEntry(_JsonModel):
    """Accumulated volume attributed to one calendar day."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    date: str
    volume: float = Field(default=0.0, ge=0)


class CompetitionConfig(_JsonModel):
    """
    A tournament definition owned by the external configuration store.

    Dates are YYYY-MM-DD and times HH:MM[:SS], both in UTC. Both instants
    must exist on the calendar and the end must be after the start.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    asset_id: str = Field(..., min_length=1)
    name: str = ""
    start_date: str
    start_time: str = "00:00"
    end_date: str
    end_time: str = "23:59"
    rule_type: RuleType = RuleType.TRADE_ALL
    winner_count: int = Field(..., gt=0)
    admin_factor: float | None = Field(default=None, gt=0)
    target_history: tuple[TargetHistoryEntry, ...] = ()
    status: CompetitionStatus = CompetitionStatus.LIVE

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_dates(cls, v: str) -> str:
        if not _DATE_RE.match(v):
            raise ValueError(f"date must be YYYY-MM-DD, got {v!r}")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_times(cls, v: str) -> str:
        if not _TIME_RE.match(v):
            raise ValueError(f"time must be HH:MM or HH:MM:SS, got {v!r}")
        return v

    @model_validator(mode="after")
    def validate_window(self) -> CompetitionConfig:
        try:
            start = self.start_ms()
            end = self.end_ms()
        except ValueError as e:
            raise ValueError(f"invalid competition date or time: {e}") from e
        if end <= start:
            raise ValueError(
                f"end {self.end_date} {self.end_time} must be after "
                f"start {self.start_date} {self.start_time}"
            )
        return self

    def start_ms(self) -> int:
        """Competition start instant (ms)."""
        return instant_ms(self.start_date, self.start_time)

    def end_ms(self) -> int:
        """Competition end instant (ms)."""
        return instant_ms(self.end_date, self.end_time)


class BaseVolumeRecord(_JsonModel):
    """Finalized volume of prior days, sourced from the archive."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    base_volume: float = Field(default=0.0, ge=0)
    base_limit_volume: float = Field(default=0.0, ge=0)
    base_tx_count: int = Field(default=0, ge=0)
    history: tuple[VolumeHistoryEntry, ...] = ()


class PredictionResult(_JsonModel):
    """Output of the projection engine for one poll cycle."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: int
    delta: int
    rule_description: str
    effective_multiplier: float
    is_finalized: bool
    status: CompetitionStatus = CompetitionStatus.LIVE
    projected_volume: float = Field(default=0.0, ge=0)
    used_limit_data: bool = False
    debug_summary: str = ""


class AccumulatedVolumeView(_JsonModel):
    """Serializable view of the accumulation ledger output."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total: float = Field(..., ge=0)
    limit: float = Field(..., ge=0)
    tx_count: int = Field(..., ge=0)
    today_volume: float = Field(default=0.0, ge=0)
    today_limit_volume: float = Field(default=0.0, ge=0)
    today_tx_count: int = Field(default=0, ge=0)
    offset_applied: bool = False


class FinalizedRecord(_JsonModel):
    """Immutable snapshot written once when a competition finalizes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    config: CompetitionConfig
    volume: AccumulatedVolumeView
    history: tuple[VolumeHistoryEntry, ...] = ()
    prediction: PredictionResult
    finalized_ts: int = Field(..., ge=0)


class MarketView(_JsonModel):
    """Outbound per-asset market data."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    asset_id: str
    symbol: str = ""
    price: float = 0.0
    price_change: float = 0.0
    price_status: PriceStatus = PriceStatus.NORMAL
    rolling_volume_24h: float = 0.0
    daily_volume: float = 0.0
    daily_limit_volume: float = 0.0
    daily_tx_count: int = 0
    velocity: float = 0.0
    updated_ts: int = 0


class CompetitionView(_JsonModel):
    """Outbound per-competition view."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    config: CompetitionConfig
    volume: AccumulatedVolumeView
    history: tuple[VolumeHistoryEntry, ...] = ()
    prediction: PredictionResult
    updated_ts: int = 0
