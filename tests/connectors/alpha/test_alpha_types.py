"""Tests for Alpha connector types."""

import pytest

from alphatrack.connectors.alpha.types import ConnectorConfig, Kline, TokenTicker


class TestTokenTicker:
    """Tests for TokenTicker.from_raw."""

    def test_parses_string_numbers(self) -> None:
        ticker = TokenTicker.from_raw(
            {
                "alphaId": "ALPHA_118",
                "symbol": " koge ",
                "price": "48.01",
                "volume24h": "123456.5",
                "count24h": "789",
            }
        )
        assert ticker.asset_id == "ALPHA_118"
        assert ticker.symbol == "KOGE"
        assert ticker.price == 48.01
        assert ticker.volume_24h == 123456.5
        assert ticker.count_24h == 789

    def test_missing_counters_default_to_zero(self) -> None:
        ticker = TokenTicker.from_raw({"alphaId": "ALPHA_1", "price": None})
        assert ticker.price == 0.0
        assert ticker.volume_24h == 0.0
        assert ticker.count_24h == 0

    def test_missing_id_raises(self) -> None:
        with pytest.raises(KeyError):
            TokenTicker.from_raw({"symbol": "X"})


class TestKline:
    """Tests for Kline.from_raw."""

    def test_parses_row(self) -> None:
        row = [1741564800000, "1", "2", "0.5", "1.5", "100", 1741564859999, "2500.5", 42]
        kline = Kline.from_raw(row)
        assert kline.open_time == 1741564800000
        assert kline.quote_volume == 2500.5
        assert kline.trades == 42

    def test_short_row_rejected(self) -> None:
        with pytest.raises(ValueError, match="fields"):
            Kline.from_raw([1, 2, 3])


class TestConnectorConfig:
    """Tests for ConnectorConfig validation."""

    def test_defaults(self) -> None:
        config = ConnectorConfig()
        assert config.request_timeout_ms == 2500
        assert config.user_agent == "Mozilla/5.0"

    def test_invalid_timeout(self) -> None:
        with pytest.raises(ValueError, match="request_timeout_ms"):
            ConnectorConfig(request_timeout_ms=0)
