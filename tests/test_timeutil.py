"""Tests for UTC calendar helpers."""

from __future__ import annotations

import pytest

from alphatrack.timeutil import (
    MS_PER_DAY,
    day_start_ms,
    instant_ms,
    minute_of_day,
    previous_date,
    utc_date,
)

DAY = instant_ms("2025-03-10", "00:00")


class TestTimeutil:
    def test_minute_of_day(self) -> None:
        assert minute_of_day(DAY) == 0
        assert minute_of_day(instant_ms("2025-03-10", "12:00")) == 720
        assert minute_of_day(DAY + MS_PER_DAY - 1) == 1439

    def test_day_start(self) -> None:
        assert day_start_ms(instant_ms("2025-03-10", "17:45:12")) == DAY

    def test_utc_date(self) -> None:
        assert utc_date(DAY) == "2025-03-10"
        assert utc_date(DAY - 1) == "2025-03-09"

    @pytest.mark.parametrize(
        ("date", "expected"),
        [("2025-03-10", "2025-03-09"), ("2025-03-01", "2025-02-28"), ("2024-01-01", "2023-12-31")],
    )
    def test_previous_date(self, date: str, expected: str) -> None:
        assert previous_date(date) == expected

    def test_instant_ms(self) -> None:
        assert DAY == 1741564800000
        assert instant_ms("2025-03-10", "00:00:01") == DAY + 1000

    def test_instant_ms_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            instant_ms("2025-03-10", "noon")
