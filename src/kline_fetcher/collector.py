"""Historical kline collection: chunk the window, fetch each page, merge."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, Iterator, List, Optional, Tuple

from .clients.bybit_rest import BybitRESTClient
from .config.settings import KlineFetcherSettings, PacingConfig
from .models import FetchStats, Kline
from .utils.timeutils import lookback_window, ms_to_iso8601


logger = logging.getLogger(__name__)


def plan_chunks(start: int, end: int, chunk_ms: int) -> Iterator[Tuple[int, int]]:
    """
    Split the window [start, end) into consecutive inclusive sub-ranges of at
    most `chunk_ms` milliseconds. A final partial chunk is clamped to `end`.

    Yields ceil((end - start) / chunk_ms) ranges; nothing when start >= end.
    """
    if chunk_ms <= 0:
        raise ValueError("chunk_ms must be > 0")

    current = start
    while current < end:
        chunk_end = min(current + chunk_ms - 1, end)
        yield current, chunk_end
        current = chunk_end + 1


def pacing_delay(request_count: int, pacing: PacingConfig) -> float:
    """Seconds to pause after the `request_count`-th request."""
    if request_count % 20 == 0:
        return pacing.every_20th_delay_seconds
    if request_count % 5 == 0:
        return pacing.every_5th_delay_seconds
    return pacing.base_delay_seconds


def merge_klines(klines: Iterable[Kline]) -> List[Kline]:
    """Collapse duplicate start times (last one wins) and sort ascending."""
    by_start = {kline.start: kline for kline in klines}
    return sorted(by_start.values(), key=lambda k: k.start)


class HistoricalKlineCollector:
    """Drives the REST client across the full historical window."""

    def __init__(
        self,
        settings: KlineFetcherSettings,
        client_factory: Callable[..., BybitRESTClient] = BybitRESTClient,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time
    ):
        self.settings = settings
        self.client_factory = client_factory
        self._sleep = sleep
        self._clock = clock
        self.stats: Optional[FetchStats] = None

        logger.info("HistoricalKlineCollector initialized")

    def _default_window(self) -> Tuple[int, int]:
        return lookback_window(self.settings.fetch.lookback_days, int(self._clock() * 1000))

    async def fetch_historical_klines(
        self,
        symbol: str,
        interval: str,
        base_url: Optional[str] = None,
        start: Optional[int] = None,
        end: Optional[int] = None
    ) -> List[Kline]:
        """
        Fetch every page of the window and return the merged series.

        Any error raised by the client aborts the whole run.
        """
        bybit = self.settings.bybit.model_copy(update={'symbol': symbol, 'interval': interval})
        if base_url:
            bybit = bybit.model_copy(update={'rest_base_url': base_url})

        default_start, default_end = self._default_window()
        start = default_start if start is None else start
        end = default_end if end is None else end

        stats = FetchStats(symbol=symbol, interval=interval, window_start=start, window_end=end)
        self.stats = stats
        collected: List[Kline] = []

        logger.info(
            f"Fetching {symbol} {interval} klines from {ms_to_iso8601(start)} "
            f"to {ms_to_iso8601(end)} via {bybit.kline_url}"
        )

        client = self.client_factory(
            bybit,
            self.settings.retry,
            self.settings.rate_limit,
            sleep=self._sleep,
            clock=self._clock
        )

        async with client:
            for chunk_start, chunk_end in plan_chunks(start, end, bybit.chunk_millis):
                stats.requests += 1
                logger.info(
                    f"Fetching chunk {stats.requests}: {ms_to_iso8601(chunk_start)} "
                    f"to {ms_to_iso8601(chunk_end)}"
                )

                chunk = await client.get_klines(
                    symbol=symbol,
                    category=bybit.category,
                    interval=interval,
                    start=chunk_start,
                    end=chunk_end
                )
                collected.extend(chunk)

                await self._sleep(pacing_delay(stats.requests, self.settings.pacing))

            stats.rate_limit_waits = client.rate_limit_waits

        stats.raw_records = len(collected)
        logger.info(f"Fetched {stats.raw_records} raw klines in {stats.requests} requests")

        merged = merge_klines(collected)
        stats.unique_records = len(merged)
        logger.info(f"Deduplicated to {stats.unique_records} klines ({stats.duplicates} duplicates)")

        return merged
