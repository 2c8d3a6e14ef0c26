"""Tests for tracker data contracts."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from alphatrack.contracts.events import (
    AssetRollingSnapshot,
    BaseVolumeRecord,
    CompetitionConfig,
    MarketView,
)
from alphatrack.contracts.types import CompetitionStatus, RuleType
from alphatrack.timeutil import instant_ms


class TestCompetitionConfig:
    """Tests for CompetitionConfig."""

    def test_defaults(self) -> None:
        config = CompetitionConfig(
            asset_id="ALPHA_1", start_date="2025-03-10", end_date="2025-03-12", winner_count=10
        )
        assert config.rule_type == RuleType.TRADE_ALL
        assert config.status == CompetitionStatus.LIVE
        assert config.start_ms() == instant_ms("2025-03-10", "00:00")
        assert config.end_ms() == instant_ms("2025-03-12", "23:59")

    def test_unknown_fields_ignored(self) -> None:
        """Config store documents may carry fields the tracker does not use."""
        config = CompetitionConfig.model_validate(
            {
                "asset_id": "ALPHA_1",
                "start_date": "2025-03-10",
                "end_date": "2025-03-12",
                "winner_count": 10,
                "banner_url": "x",
            }
        )
        assert config.asset_id == "ALPHA_1"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"start_date": "10/03/2025"},
            {"end_time": "25h"},
            {"winner_count": 0},
            {"admin_factor": 0},
            {"rule_type": "sell_only"},
            {"asset_id": ""},
            {"end_time": "25:00"},
            {"start_date": "2025-02-30"},
            {"end_date": "2025-03-09"},
            {"end_date": "2025-03-10", "start_time": "12:00", "end_time": "12:00"},
        ],
    )
    def test_invalid_values(self, overrides: dict[str, object]) -> None:
        data: dict[str, object] = {
            "asset_id": "ALPHA_1",
            "start_date": "2025-03-10",
            "end_date": "2025-03-12",
            "winner_count": 10,
        }
        data.update(overrides)
        with pytest.raises(ValidationError):
            CompetitionConfig.model_validate(data)

    def test_seconds_in_time(self) -> None:
        config = CompetitionConfig(
            asset_id="ALPHA_1",
            start_date="2025-03-10",
            end_date="2025-03-10",
            end_time="12:00:30",
            winner_count=10,
        )
        assert config.end_ms() == instant_ms("2025-03-10", "12:00") + 30_000

    def test_frozen(self) -> None:
        config = CompetitionConfig(
            asset_id="ALPHA_1", start_date="2025-03-10", end_date="2025-03-12", winner_count=10
        )
        with pytest.raises(ValidationError):
            config.winner_count = 5  # type: ignore[misc]


class TestSerialization:
    """orjson helpers."""

    def test_snapshot_json(self) -> None:
        snap = AssetRollingSnapshot(asset_id="ALPHA_1", rolling_volume_24h=5.0, timestamp_ms=1)
        assert AssetRollingSnapshot.from_json(snap.to_json()) == snap
        assert AssetRollingSnapshot.from_json(snap.to_json().decode()) == snap

    def test_snapshot_rejects_negative_volume(self) -> None:
        with pytest.raises(ValidationError):
            AssetRollingSnapshot(asset_id="ALPHA_1", rolling_volume_24h=-1.0, timestamp_ms=1)

    def test_market_view_forbids_extra(self) -> None:
        with pytest.raises(ValidationError):
            MarketView.model_validate({"asset_id": "ALPHA_1", "unknown": 1})

    def test_base_volume_defaults(self) -> None:
        record = BaseVolumeRecord.model_validate({"base_volume": 10})
        assert record.base_limit_volume == 0.0
        assert record.history == ()
