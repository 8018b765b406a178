"""Bybit v5 REST client for paged historical kline requests."""

import asyncio
import aiohttp
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from ..config.settings import BybitConfig, RetryConfig, RateLimitConfig
from ..exceptions import APIError, MalformedPayloadError, RateLimitExceeded, TransportError
from ..models import Kline, KlineResponse
from ..utils.retry import linear_backoff

logger = logging.getLogger(__name__)


class BybitRESTClient:
    """Bybit REST API client fetching one page of klines per call."""

    def __init__(
        self,
        config: BybitConfig,
        retry_config: RetryConfig,
        rate_limit_config: RateLimitConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time
    ):
        self.config = config
        self.retry_config = retry_config
        self.rate_limit_config = rate_limit_config
        self.session: Optional[aiohttp.ClientSession] = None
        self._sleep = sleep
        self._clock = clock
        self.rate_limit_waits = 0

    async def __aenter__(self):
        """Async context manager entry."""
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(
                total=self.config.request_timeout_seconds,
                sock_read=self.config.socket_timeout_seconds
            )
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.session:
            await self.session.close()
            self.session = None

    async def _make_request(self, params: Dict[str, Any]) -> Tuple[Any, Mapping[str, str]]:
        """Make an HTTP GET, retrying rate-limited responses with linear backoff."""
        if not self.session:
            raise RuntimeError("Client not initialized. Use async context manager.")

        url = self.config.kline_url

        async def _request():
            try:
                async with self.session.get(url, params=params) as response:
                    if response.status in self.retry_config.retry_statuses:
                        logger.warning(f"Rate limit exceeded (HTTP {response.status})")
                        raise RateLimitExceeded(
                            f"HTTP {response.status}: too many requests",
                            status=response.status
                        )

                    if response.status >= 400:
                        body = await response.text()
                        raise TransportError(
                            f"HTTP {response.status}: {body[:200]}",
                            status=response.status
                        )

                    try:
                        payload = await response.json(content_type=None)
                    except ValueError as e:
                        raise MalformedPayloadError(f"Response is not valid JSON: {e}") from e

                    return payload, response.headers

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise TransportError(f"Request to {url} failed: {e!r}") from e

        return await linear_backoff(
            _request,
            max_retries=self.retry_config.max_retries,
            step_seconds=self.retry_config.backoff_step_seconds,
            exceptions=(RateLimitExceeded,),
            sleep=self._sleep
        )

    @staticmethod
    def _header_int(headers: Mapping[str, str], name: str) -> Optional[int]:
        try:
            return int(headers.get(name))
        except (TypeError, ValueError):
            return None

    async def _respect_rate_limit(self, headers: Mapping[str, str]) -> None:
        """Sleep until the quota resets when the remaining quota is nearly spent."""
        cfg = self.rate_limit_config
        remaining = self._header_int(headers, cfg.remaining_header)
        reset = self._header_int(headers, cfg.reset_header)

        if remaining is None or reset is None:
            if not cfg.treat_missing_as_exhausted:
                logger.debug("Rate-limit headers missing; skipping reactive wait")
                return
            remaining = 1 if remaining is None else remaining
            reset = 1 if reset is None else reset

        if remaining >= cfg.min_remaining:
            return

        wait_ms = reset * cfg.reset_multiplier - int(self._clock() * 1000)
        if wait_ms > 0:
            wait_ms = max(wait_ms, int(cfg.min_wait_seconds * 1000))
            logger.warning(f"Approaching rate limit ({remaining} left). Waiting {wait_ms}ms")
            self.rate_limit_waits += 1
            await self._sleep(wait_ms / 1000)

    @staticmethod
    def _parse_klines(payload: Any) -> List[Kline]:
        try:
            response = KlineResponse.model_validate(payload)
        except ValidationError as e:
            raise MalformedPayloadError(f"Unexpected kline response schema: {e}") from e

        if not response.is_success:
            raise APIError(response.ret_code, response.ret_msg)

        return response.to_klines()

    async def get_klines(
        self,
        symbol: str,
        category: str,
        interval: str,
        start: int,
        end: int
    ) -> List[Kline]:
        """Get one page of klines for [start, end] in the order the API reports them."""
        params = {
            'category': category,
            'symbol': symbol,
            'interval': interval,
            'start': start,
            'end': end,
            'limit': self.config.page_size
        }

        logger.debug(f"Fetching klines for {symbol}: {params}")

        try:
            payload, headers = await self._make_request(params)
            await self._respect_rate_limit(headers)
            klines = self._parse_klines(payload)
            logger.debug(f"Retrieved {len(klines)} klines for {symbol}")
            return klines
        except Exception as e:
            logger.error(f"Failed to fetch klines for {symbol} [{start}, {end}]: {e}")
            raise
