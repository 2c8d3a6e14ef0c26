"""
Config validation tests for TrackerConfig.

Covers __post_init__ bounds, environment loading and redaction.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from alphatrack.config import TrackerConfig


class TestConfigValidation:
    """TrackerConfig.__post_init__ validation."""

    def test_default_config_valid(self) -> None:
        config = TrackerConfig()
        assert config.realtime_interval_s == 3.0
        assert config.velocity_window_s == 60.0
        assert config.freeze_s == 60
        assert config.request_timeout_ms == 2500

    @pytest.mark.parametrize(
        "field",
        ["realtime_interval_s", "config_refresh_s", "rollover_check_s", "loop_timeout_s"],
    )
    def test_non_positive_interval(self, field: str) -> None:
        with pytest.raises(ValueError, match=field):
            TrackerConfig(**{field: 0})

    def test_velocity_window_shorter_than_poll(self) -> None:
        with pytest.raises(ValueError, match="velocity_window_s"):
            TrackerConfig(realtime_interval_s=5.0, velocity_window_s=3.0)

    def test_invalid_base_constant(self) -> None:
        with pytest.raises(ValueError, match="base_constant"):
            TrackerConfig(base_constant=0)

    def test_negative_freeze(self) -> None:
        with pytest.raises(ValueError, match="freeze_s"):
            TrackerConfig(freeze_s=-1)

    def test_invalid_offset_interval(self) -> None:
        with pytest.raises(ValueError, match="offset_interval"):
            TrackerConfig(offset_interval="3m")

    def test_invalid_port(self) -> None:
        with pytest.raises(ValueError, match="api_port"):
            TrackerConfig(api_port=70000)

    def test_port_zero_disables_api(self) -> None:
        assert TrackerConfig(api_port=0).api_port == 0

    def test_paths_coerced(self) -> None:
        config = TrackerConfig(data_dir="archive", config_path="archive/c.json")  # type: ignore[arg-type]
        assert config.data_dir == Path("archive")
        assert config.config_path == Path("archive/c.json")


class TestFromEnv:
    """TrackerConfig.from_env."""

    def test_reads_prefixed_variables(self) -> None:
        config = TrackerConfig.from_env(
            {
                "ALPHATRACK_REALTIME_INTERVAL_S": "5",
                "ALPHATRACK_FREEZE_S": "30",
                "ALPHATRACK_JSON_LOGS": "false",
                "ALPHATRACK_DATA_DIR": "/tmp/alpha",
                "ALPHATRACK_API_KEY": "k",
                "UNRELATED": "x",
            }
        )
        assert config.realtime_interval_s == 5.0
        assert config.freeze_s == 30
        assert config.json_logs is False
        assert config.data_dir == Path("/tmp/alpha")
        assert config.api_key == "k"

    def test_overrides_win_and_none_is_ignored(self) -> None:
        config = TrackerConfig.from_env(
            {"ALPHATRACK_API_PORT": "9000", "ALPHATRACK_BASE_CONSTANT": "1.2"},
            api_port=9100,
            base_constant=None,
        )
        assert config.api_port == 9100
        assert config.base_constant == 1.2

    def test_unparseable_value(self) -> None:
        with pytest.raises(ValueError, match="ALPHATRACK_API_PORT"):
            TrackerConfig.from_env({"ALPHATRACK_API_PORT": "eighty"})

    def test_invalid_value_fails_validation(self) -> None:
        with pytest.raises(ValueError, match="base_constant"):
            TrackerConfig.from_env({"ALPHATRACK_BASE_CONSTANT": "-1"})


class TestRedacted:
    def test_api_key_redacted(self) -> None:
        out = TrackerConfig(api_key="s3cret").redacted()
        assert out["api_key"] == "[REDACTED]"
        assert out["data_dir"] == "data"

    def test_empty_key_left_empty(self) -> None:
        assert TrackerConfig().redacted()["api_key"] == ""
