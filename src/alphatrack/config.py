"""
Tracker configuration.

Defaults suit production polling of the public Alpha endpoints. Every value
can be overridden from ALPHATRACK_* environment variables and, in turn, by
command-line flags of scripts/run_tracker.py.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

# Env vars that must never be logged
REDACTED_ENV_VARS = frozenset({"ALPHATRACK_API_KEY"})

ENV_PREFIX = "ALPHATRACK_"


@dataclass
class TrackerConfig:
    """
    Configuration for the tracker service.

    Attributes:
        realtime_interval_s: Ticker poll cadence.
        config_refresh_s: Competition config refresh cadence.
        offset_refresh_s: Day-one start offset retry cadence.
        base_refresh_s: Archived base-volume refresh cadence.
        rollover_check_s: Cadence of the UTC day-change check.
        velocity_window_s: Trailing window for the velocity estimate.
        freeze_s: Seconds before the end at which targets freeze.
        base_constant: Empirical constant K applied to targets.
        batch_delay_s: Pause between items of a per-asset batch.
        loop_timeout_s: Upper bound on a single loop iteration.
        request_timeout_ms: Per-HTTP-call timeout.
        offset_interval: Kline interval for start offsets.
        data_dir: Directory of the file archive.
        config_path: JSON file holding competition configs.
        api_host: Bind address of the outbound API (empty = disabled).
        api_port: Port of the outbound API (0 = disabled).
        api_key: Required X-API-Key for /api routes (empty = open).
        json_logs: Emit JSON log lines.
        log_level: Root log level.
    """

    realtime_interval_s: float = 3.0
    config_refresh_s: float = 300.0
    offset_refresh_s: float = 600.0
    base_refresh_s: float = 1800.0
    rollover_check_s: float = 60.0
    velocity_window_s: float = 60.0
    freeze_s: int = 60
    base_constant: float = 1.0
    batch_delay_s: float = 0.2
    loop_timeout_s: float = 120.0
    request_timeout_ms: int = 2500
    offset_interval: str = "1m"
    data_dir: Path = Path("data")
    config_path: Path = Path("data/competitions.json")
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    api_key: str = ""
    json_logs: bool = True
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate config values at construction time."""
        self.data_dir = Path(self.data_dir)
        self.config_path = Path(self.config_path)

        for name in (
            "realtime_interval_s",
            "config_refresh_s",
            "offset_refresh_s",
            "base_refresh_s",
            "rollover_check_s",
            "loop_timeout_s",
        ):
            value = getattr(self, name)
            if value <= 0:
                msg = f"{name} must be > 0, got {value}"
                raise ValueError(msg)
        if self.velocity_window_s < self.realtime_interval_s:
            msg = (
                f"velocity_window_s must be >= realtime_interval_s, "
                f"got {self.velocity_window_s} < {self.realtime_interval_s}"
            )
            raise ValueError(msg)
        if self.freeze_s < 0:
            msg = f"freeze_s must be >= 0, got {self.freeze_s}"
            raise ValueError(msg)
        if self.base_constant <= 0:
            msg = f"base_constant must be > 0, got {self.base_constant}"
            raise ValueError(msg)
        if self.batch_delay_s < 0:
            msg = f"batch_delay_s must be >= 0, got {self.batch_delay_s}"
            raise ValueError(msg)
        if self.request_timeout_ms <= 0:
            msg = f"request_timeout_ms must be > 0, got {self.request_timeout_ms}"
            raise ValueError(msg)
        if self.offset_interval not in ("1m", "5m", "15m", "1h"):
            msg = f"offset_interval must be one of 1m/5m/15m/1h, got {self.offset_interval!r}"
            raise ValueError(msg)
        if not 0 <= self.api_port <= 65535:
            msg = f"api_port must be 0..65535, got {self.api_port}"
            raise ValueError(msg)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides: Any) -> TrackerConfig:
        """
        Build a config from ALPHATRACK_* environment variables.

        Args:
            environ: Environment mapping (default: os.environ).
            **overrides: Values that take precedence over the environment.

        Returns:
            Validated TrackerConfig.

        Raises:
            ValueError: If a variable cannot be converted or fails validation.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            values[f.name] = _convert(f.name, f.type, raw)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def redacted(self) -> dict[str, Any]:
        """Config as a dict safe to log."""
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        if out["api_key"]:
            out["api_key"] = "[REDACTED]"
        return {k: str(v) if isinstance(v, Path) else v for k, v in out.items()}


def _convert(name: str, type_name: Any, raw: str) -> Any:
    """Convert an env string to the annotated field type."""
    type_str = str(type_name)
    try:
        if type_str == "bool":
            return raw.strip().lower() in ("1", "true", "yes", "on")
        if type_str == "int":
            return int(raw)
        if type_str == "float":
            return float(raw)
        if type_str == "Path":
            return Path(raw)
    except ValueError as e:
        msg = f"{ENV_PREFIX}{name.upper()} is not a valid {type_str}: {raw!r}"
        raise ValueError(msg) from e
    return raw
