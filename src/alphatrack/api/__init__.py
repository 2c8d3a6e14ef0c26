"""Outbound HTTP surface."""

from alphatrack.api.server import (
    API_KEY_HEADER,
    TrackerViews,
    create_api_app,
    start_api_server,
    stop_api_server,
)

__all__ = [
    "API_KEY_HEADER",
    "TrackerViews",
    "create_api_app",
    "start_api_server",
    "stop_api_server",
]
