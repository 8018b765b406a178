"""Data model for klines and the Bybit kline response envelope."""

from dataclasses import dataclass
from typing import List, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import MalformedPayloadError

KLINE_FIELDS = 6


@dataclass(frozen=True)
class Kline:
    """One OHLCV candle keyed by its start time (unix ms)."""
    start: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_row(cls, row: Sequence[str]) -> "Kline":
        """
        Parse one positional row: start, open, high, low, close, volume.

        Bybit appends turnover as a seventh field; anything past the sixth
        field is ignored.
        """
        if len(row) < KLINE_FIELDS:
            raise MalformedPayloadError(
                f"Kline row has {len(row)} fields, expected {KLINE_FIELDS}: {row!r}"
            )

        try:
            return cls(
                start=int(row[0]),
                open=float(row[1]),
                high=float(row[2]),
                low=float(row[3]),
                close=float(row[4]),
                volume=float(row[5]),
            )
        except (TypeError, ValueError) as e:
            raise MalformedPayloadError(f"Unparseable kline row {row!r}: {e}") from e


class KlineResult(BaseModel):
    """`result` object of the kline response."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Bybit sends "result": {} when retCode != 0
    category: str = ""
    rows: List[List[str]] = Field(default_factory=list, alias="list")


class KlineResponse(BaseModel):
    """Envelope returned by GET /v5/market/kline."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ret_code: int = Field(alias="retCode")
    ret_msg: str = Field(default="", alias="retMsg")
    result: KlineResult = Field(default_factory=KlineResult)

    @property
    def is_success(self) -> bool:
        return self.ret_code == 0

    def to_klines(self) -> List[Kline]:
        return [Kline.from_row(row) for row in self.result.rows]


@dataclass
class FetchStats:
    """Counters for one fetch-all run."""
    symbol: str
    interval: str
    window_start: int
    window_end: int
    requests: int = 0
    raw_records: int = 0
    unique_records: int = 0
    rate_limit_waits: int = 0

    @property
    def duplicates(self) -> int:
        return self.raw_records - self.unique_records
