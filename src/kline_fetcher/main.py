"""Kline Fetcher - one-shot download of historical klines to CSV."""

import asyncio
import logging
import os
import sys
from typing import Optional

from .collector import HistoricalKlineCollector
from .config.settings import KlineFetcherSettings, load_settings
from .exceptions import KlineFetchError
from .utils.logging import setup_logging
from .writers.csv_writer import save_klines_to_csv


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config/local.yaml"


class KlineFetcherService:
    """Fetches the configured symbol's history once and writes it to CSV."""

    def __init__(
        self,
        settings: KlineFetcherSettings,
        collector: Optional[HistoricalKlineCollector] = None
    ):
        self.config = settings
        self.collector = collector or HistoricalKlineCollector(settings)

        setup_logging(self.config.logging, self.config.service_name)
        logger.info("Kline Fetcher Service initialized")

    async def run(self) -> int:
        """Run one fetch-and-write cycle and return a process exit code."""
        bybit = self.config.bybit
        output_path = self.config.output.path

        logger.info("Starting historical data fetch...")

        try:
            klines = await self.collector.fetch_historical_klines(
                symbol=bybit.symbol,
                interval=bybit.interval,
                base_url=bybit.rest_base_url
            )
        except KlineFetchError as e:
            logger.error(f"Error fetching data: {e}")
            return 1
        except Exception as e:
            logger.error(f"Unexpected error fetching data: {e}", exc_info=True)
            return 1

        if not save_klines_to_csv(klines, output_path):
            logger.error(f"Failed to save klines to {output_path}")
            return 1

        logger.info(f"Successfully saved {len(klines)} klines to {output_path}")
        return 0


def _resolve_config_file() -> Optional[str]:
    config_file = os.getenv("CONFIG_FILE")
    if config_file:
        return config_file
    return DEFAULT_CONFIG_FILE if os.path.exists(DEFAULT_CONFIG_FILE) else None


async def main() -> int:
    """Main entry point."""
    try:
        settings = load_settings(_resolve_config_file())
    except (FileNotFoundError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    service = KlineFetcherService(settings)
    return await service.run()


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
