"""Binance Alpha REST connector."""

from alphatrack.connectors.alpha.rest_client import AlphaResponseError, AlphaRestClient
from alphatrack.connectors.alpha.types import ConnectorConfig, Kline, TokenTicker

__all__ = [
    "AlphaResponseError",
    "AlphaRestClient",
    "ConnectorConfig",
    "Kline",
    "TokenTicker",
]
