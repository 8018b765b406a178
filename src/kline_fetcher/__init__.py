"""
Kline Fetcher - Historical candle downloader for the Bybit v5 REST API.

This package fetches a fixed lookback window of kline (OHLCV) data for a
single symbol, page by page under the exchange's rate limits, and writes
the deduplicated, time-ordered series to a CSV file.
"""

__version__ = "1.0.0"
