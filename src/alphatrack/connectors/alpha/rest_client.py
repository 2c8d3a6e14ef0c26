"""
Async REST client for the Binance Alpha public feeds.

Every call runs under the session's total timeout, so a hung upstream never
blocks a polling loop for longer than request_timeout_ms per attempt.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

import aiohttp

from alphatrack.connectors.alpha.types import ConnectorConfig, Kline, TokenTicker
from alphatrack.connectors.backoff import (
    BackoffConfig,
    BackoffState,
    CircuitBreaker,
    RateLimitError,
    RateLimitKind,
    compute_backoff_delay,
    handle_error_response,
)

logger = logging.getLogger(__name__)

MS_PER_INTERVAL = {"1m": 60_000, "5m": 300_000, "15m": 900_000, "1h": 3_600_000}


class AlphaResponseError(Exception):
    """Raised when the upstream answers with an unusable payload."""


class AlphaRestClient:
    """Client for the token list and kline endpoints."""

    def __init__(
        self,
        config: ConnectorConfig | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        backoff_config: BackoffConfig | None = None,
    ) -> None:
        """
        Initialize the REST client.

        Args:
            config: Connector configuration.
            circuit_breaker: Shared circuit breaker.
            backoff_config: Retry policy for a single call.
        """
        self._config = config or ConnectorConfig()
        self._circuit_breaker = circuit_breaker or CircuitBreaker()
        self._backoff_config = backoff_config or BackoffConfig()
        self._session: aiohttp.ClientSession | None = None

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._config.request_timeout_ms / 1000)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": self._config.user_agent},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _request(self, path: str, params: dict[str, str] | None = None) -> Any:
        """
        GET a JSON document with retry, backoff and circuit breaker.

        Raises:
            RateLimitError: If rate limited or the circuit is open.
            AlphaResponseError: If a 2xx body is not JSON.
            aiohttp.ClientError: On network errors once retries are exhausted.
            asyncio.TimeoutError: On timeout once retries are exhausted.
        """
        url = f"{self._config.base_url}{path}"
        state = BackoffState()
        retry_after_ms: int | None = None

        while True:
            if not self._circuit_breaker.can_execute():
                raise RateLimitError(
                    "Circuit breaker open",
                    retry_after_ms=self._circuit_breaker.recovery_timeout_ms,
                    kind=RateLimitKind.CIRCUIT_OPEN,
                )

            delay_ms = compute_backoff_delay(self._backoff_config, state, retry_after_ms)
            if delay_ms > 0:
                await asyncio.sleep(delay_ms / 1000)

            try:
                session = await self._get_session()
                async with session.request("GET", url, params=params) as response:
                    retry_after_ms = None
                    if "Retry-After" in response.headers:
                        with contextlib.suppress(ValueError):
                            retry_after_ms = int(response.headers["Retry-After"]) * 1000

                    rate_limit_error = handle_error_response(response.status, retry_after_ms)
                    if rate_limit_error is not None:
                        self._circuit_breaker.record_failure(
                            is_rate_limit=True,
                            is_ip_ban=rate_limit_error.is_ip_ban,
                        )
                        logger.warning(
                            "Rate limit hit",
                            extra={"status": response.status, "retry_after_ms": retry_after_ms},
                        )
                        raise rate_limit_error

                    if response.status >= 400:
                        text = await response.text()
                        raise aiohttp.ClientResponseError(
                            response.request_info,
                            response.history,
                            status=response.status,
                            message=text[:200],
                        )

                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        self._circuit_breaker.record_failure()
                        raise AlphaResponseError(f"Non-JSON response from {path}") from e
                    self._circuit_breaker.record_success()
                    return data

            except asyncio.CancelledError:
                self._circuit_breaker.release_probe()
                raise
            except (RateLimitError, AlphaResponseError):
                raise
            except aiohttp.ClientResponseError as e:
                self._circuit_breaker.record_failure()
                state.record_error()
                logger.warning(
                    "HTTP error",
                    extra={"url": url, "status": e.status, "attempt": state.attempt},
                )
                # Client errors other than rate limits are not retried
                if e.status < 500 or state.attempt > self._backoff_config.max_retries:
                    raise
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self._circuit_breaker.record_failure()
                state.record_error()
                logger.warning(
                    "Request failed",
                    extra={"url": url, "error": repr(e), "attempt": state.attempt},
                )
                if state.attempt > self._backoff_config.max_retries:
                    raise

    @staticmethod
    def _unwrap(data: Any) -> Any:
        if not isinstance(data, dict) or data.get("success") is False:
            raise AlphaResponseError("Upstream reported failure or returned a non-object")
        if "data" not in data:
            raise AlphaResponseError("Upstream payload has no data field")
        return data["data"]

    async def get_token_tickers(self, *, limit_only: bool = False) -> dict[str, TokenTicker]:
        """
        Fetch the rolling 24h snapshot of every Alpha token.

        Args:
            limit_only: Query the limit-order-only variant.

        Returns:
            Dict mapping asset id to TokenTicker.
        """
        path = self._config.limit_token_list_path if limit_only else self._config.token_list_path
        rows = self._unwrap(await self._request(path))
        if not isinstance(rows, list):
            raise AlphaResponseError("Token list data is not a list")

        tickers: dict[str, TokenTicker] = {}
        for raw in rows:
            if not isinstance(raw, dict):
                continue
            try:
                ticker = TokenTicker.from_raw(raw)
            except KeyError:
                continue
            tickers[ticker.asset_id] = ticker

        logger.debug(
            "Fetched token list",
            extra={"count": len(tickers), "limit_only": limit_only},
        )
        return tickers

    async def get_klines(
        self,
        asset_id: str,
        start_ms: int,
        end_ms: int,
        interval: str = "1m",
    ) -> list[Kline]:
        """
        Fetch klines with open time in [start_ms, end_ms), paginating as needed.

        Args:
            asset_id: Alpha token id.
            start_ms: Range start (inclusive).
            end_ms: Range end (exclusive).
            interval: Kline interval ("1m", "5m", "15m", "1h").

        Returns:
            Klines ordered by open time, deduplicated by open time.
        """
        step_ms = MS_PER_INTERVAL.get(interval)
        if step_ms is None:
            raise ValueError(f"Unsupported kline interval: {interval!r}")

        by_open: dict[int, Kline] = {}
        cursor = start_ms
        page_size = self._config.klines_page_size
        while cursor < end_ms:
            params = {
                "symbol": f"{asset_id}USDT",
                "interval": interval,
                "startTime": str(cursor),
                "endTime": str(end_ms - 1),
                "limit": str(page_size),
            }
            rows = self._unwrap(await self._request(self._config.klines_path, params))
            if not isinstance(rows, list):
                raise AlphaResponseError("Kline data is not a list")

            page = []
            for raw in rows:
                try:
                    page.append(Kline.from_raw(raw))
                except (ValueError, TypeError):
                    continue
            for kline in page:
                if start_ms <= kline.open_time < end_ms:
                    by_open[kline.open_time] = kline

            if len(rows) < page_size or not page:
                break
            cursor = max(k.open_time for k in page) + step_ms

        return [by_open[k] for k in sorted(by_open)]
