"""CSV writer for merged kline series."""

import csv
import logging
import os
from pathlib import Path
from typing import Iterable, List, Union

from ..models import Kline

logger = logging.getLogger(__name__)

CSV_HEADER = "timestamp, open, high, low, close, volume"
PRICE_FORMAT = "{:.8f}"


def _format_row(kline: Kline) -> List[str]:
    return [
        str(kline.start),
        PRICE_FORMAT.format(kline.open),
        PRICE_FORMAT.format(kline.high),
        PRICE_FORMAT.format(kline.low),
        PRICE_FORMAT.format(kline.close),
        PRICE_FORMAT.format(kline.volume),
    ]


def save_klines_to_csv(klines: Iterable[Kline], path: Union[str, Path]) -> bool:
    """
    Write klines to `path`, creating missing parent directories.

    Rows go to a sibling temp file that replaces `path` only once complete,
    so a failed write never leaves a truncated CSV behind.

    Returns True on success. Failures are logged and reported as False.
    """
    output_path = Path(path)
    tmp_path = output_path.with_name(output_path.name + ".tmp")

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)

        count = 0
        with tmp_path.open('w', encoding='utf-8', newline='') as f:
            f.write(CSV_HEADER + "\n")
            writer = csv.writer(f, lineterminator="\n")
            for kline in klines:
                writer.writerow(_format_row(kline))
                count += 1

        os.replace(tmp_path, output_path)

        logger.info(f"Wrote {count} klines to {output_path}")
        return True

    except OSError as e:
        logger.error(f"Error writing CSV file {output_path}: {e}")
    except Exception as e:
        logger.error(f"Unexpected error writing CSV file {output_path}: {e}", exc_info=True)

    try:
        tmp_path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temp file {tmp_path}: {e}")
    return False


def read_klines_from_csv(path: Union[str, Path]) -> List[Kline]:
    """Parse a file written by `save_klines_to_csv` back into klines."""
    with Path(path).open('r', encoding='utf-8', newline='') as f:
        reader = csv.reader(f, skipinitialspace=True)
        next(reader, None)
        return [Kline.from_row(row) for row in reader if row]
