"""
Types and configuration for the Binance Alpha public REST feeds.

Two feeds are consumed:
- token list: one row per Alpha token with price and rolling 24h counters,
  requested once for all trades and once for limit-order-only trades
- klines: per-interval volume and trade counts for one token and range
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ConnectorConfig:
    """
    Endpoints and limits for the Alpha REST client.

    Attributes:
        base_url: REST host.
        token_list_path: All-trades token list.
        limit_token_list_path: Limit-order-only token list.
        klines_path: Historical klines.
        request_timeout_ms: Per-call timeout, applied to every request.
        klines_page_size: Max rows per kline request.
        user_agent: User-Agent header sent with every request.
    """

    base_url: str = "https://www.binance.com"
    token_list_path: str = "/bapi/defi/v1/public/wallet-direct/buw/wallet/cex/alpha/all/token/list"
    limit_token_list_path: str = (
        "/bapi/defi/v1/public/wallet-direct/buw/wallet/cex/alpha/all/token/list/limit"
    )
    klines_path: str = "/bapi/defi/v1/public/alpha-trade/klines"
    request_timeout_ms: int = 2500
    klines_page_size: int = 1000
    user_agent: str = "Mozilla/5.0"

    def __post_init__(self) -> None:
        if self.request_timeout_ms <= 0:
            raise ValueError(f"request_timeout_ms must be > 0, got {self.request_timeout_ms}")
        if not 1 <= self.klines_page_size <= 1500:
            raise ValueError(f"klines_page_size must be 1..1500, got {self.klines_page_size}")


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class TokenTicker:
    """
    One row of the token list.

    Attributes:
        asset_id: Alpha token id (e.g., "ALPHA_118").
        symbol: Display symbol, upper-cased.
        price: Last price.
        volume_24h: Rolling 24h quote volume.
        count_24h: Rolling 24h trade count.
    """

    asset_id: str
    symbol: str
    price: float
    volume_24h: float
    count_24h: int

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> TokenTicker:
        """
        Parse a raw token row.

        Raises:
            KeyError: If the row has no alphaId.
        """
        asset_id = str(raw["alphaId"]).strip()
        if not asset_id:
            raise KeyError("alphaId")
        return cls(
            asset_id=asset_id,
            symbol=str(raw.get("symbol") or "").upper().strip(),
            price=max(0.0, _to_float(raw.get("price"))),
            volume_24h=max(0.0, _to_float(raw.get("volume24h"))),
            count_24h=max(0, _to_int(raw.get("count24h"))),
        )


@dataclass(frozen=True)
class Kline:
    """
    One historical interval.

    Attributes:
        open_time: Interval start (ms).
        quote_volume: Volume traded during the interval.
        trades: Trade count during the interval.
    """

    open_time: int
    quote_volume: float
    trades: int

    @classmethod
    def from_raw(cls, raw: list[Any]) -> Kline:
        """
        Parse a kline row [openTime, open, high, low, close, volume, closeTime,
        quoteVolume, trades, ...].

        Raises:
            ValueError: If the row is too short.
        """
        if len(raw) < 9:
            raise ValueError(f"kline row has {len(raw)} fields, expected >= 9")
        return cls(
            open_time=_to_int(raw[0]),
            quote_volume=max(0.0, _to_float(raw[7])),
            trades=max(0, _to_int(raw[8])),
        )
