#!/usr/bin/env python3
"""
Live competition volume tracker.

Polls the Binance Alpha token list, normalizes rolling 24h volume to the
calendar day, projects competition targets and finalizes competitions once
they freeze. Serves the results on an HTTP API.

Usage:
    python -m scripts.run_tracker
    python -m scripts.run_tracker --config data/competitions.json --port 8080
    python -m scripts.run_tracker --duration-s 60 --no-json-logs

Every flag can also be set through ALPHATRACK_* environment variables; flags
take precedence.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from prometheus_client.registry import CollectorRegistry

from alphatrack.api.server import start_api_server, stop_api_server
from alphatrack.config import TrackerConfig
from alphatrack.connectors.alpha.rest_client import AlphaRestClient
from alphatrack.connectors.alpha.types import ConnectorConfig
from alphatrack.logging_config import setup_logging
from alphatrack.storage.archive import FileArchiveStore
from alphatrack.storage.config_store import FileConfigStore
from alphatrack.tracker.exporter import TrackerExporter
from alphatrack.tracker.service import TrackerService

logger = logging.getLogger(__name__)


def setup_signal_handlers(service: TrackerService) -> None:
    """
    Route SIGINT/SIGTERM to a graceful shutdown request.

    The handler only flags the scheduler; close() runs in run_tracker's
    finally block.
    """

    def signal_handler(sig: int, frame: object) -> None:
        logger.info("Received signal %s, initiating shutdown", signal.Signals(sig).name)
        service.request_shutdown()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def build_service(config: TrackerConfig, registry: CollectorRegistry) -> TrackerService:
    """Wire the tracker with file-backed stores and the live REST client."""
    client = AlphaRestClient(ConnectorConfig(request_timeout_ms=config.request_timeout_ms))
    return TrackerService(
        config=config,
        client=client,
        archive=FileArchiveStore(config.data_dir),
        config_store=FileConfigStore(config.config_path),
        exporter=TrackerExporter(registry=registry),
    )


async def run_tracker(config: TrackerConfig, duration_s: float | None = None) -> int:
    """
    Run the tracker until a signal or the optional duration elapses.

    Returns:
        Exit code (0 = success).
    """
    registry = CollectorRegistry()
    service = build_service(config, registry)

    runner = None
    if config.api_host and config.api_port > 0:
        runner = await start_api_server(
            service,
            registry,
            host=config.api_host,
            port=config.api_port,
            api_key=config.api_key,
        )

    setup_signal_handlers(service)

    stopper: asyncio.TimerHandle | None = None
    if duration_s is not None:
        stopper = asyncio.get_running_loop().call_later(duration_s, service.request_shutdown)

    try:
        await service.run()
        return 0
    except Exception as e:
        logger.exception("Tracker failed: %s", e)
        return 1
    finally:
        if stopper is not None:
            stopper.cancel()
        await service.close()
        if runner is not None:
            await stop_api_server(runner)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run the Alpha competition volume tracker.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Competition config JSON file")
    parser.add_argument("--data-dir", type=Path, help="Archive directory")
    parser.add_argument("--host", type=str, help="API bind address")
    parser.add_argument("--port", type=int, help="API port (0 to disable)")
    parser.add_argument("--interval", type=float, help="Realtime poll interval in seconds")
    parser.add_argument("--base-constant", type=float, help="Target constant K")
    parser.add_argument("--velocity-window-s", type=float, help="Velocity window in seconds")
    parser.add_argument(
        "--duration-s",
        type=float,
        default=None,
        help="Run for N seconds then stop gracefully (default: until SIGINT/SIGTERM)",
    )
    parser.add_argument(
        "--no-json-logs",
        action="store_true",
        help="Human-readable logs instead of JSON",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    try:
        config = TrackerConfig.from_env(
            config_path=args.config,
            data_dir=args.data_dir,
            api_host=args.host,
            api_port=args.port,
            realtime_interval_s=args.interval,
            base_constant=args.base_constant,
            velocity_window_s=args.velocity_window_s,
            json_logs=False if args.no_json_logs else None,
            log_level="DEBUG" if args.verbose else None,
        )
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(level=config.log_level, json_format=config.json_logs)
    return asyncio.run(run_tracker(config, duration_s=args.duration_s))


if __name__ == "__main__":
    sys.exit(main())
