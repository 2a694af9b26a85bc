"""
screener/csv_import.py  —  Transaction CSV import

Expected header (any order, extra columns ignored):
    symbol, action, quantity, price, date, fees, brokerage, gst,
    stampDuty, sebiFee, stt, otherCharges, notes

A row is kept only if symbol, action, quantity and price are all present
and convert cleanly. Everything else is dropped without complaint. A file
that cannot be tokenised at all raises CsvImportError naming the first
problem.
"""

import io
import logging
from typing import List, Union

import pandas as pd

from screener.models import CsvImportError, Transaction

logger = logging.getLogger(__name__)

REQUIRED = ("symbol", "action", "quantity", "price")


def _read_frame(text: str) -> pd.DataFrame:
    try:
        return pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False,
                           skip_blank_lines=True, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise CsvImportError(str(e).strip()) from e


def parse_transactions_csv(source: Union[str, bytes]) -> List[Transaction]:
    """Parse CSV text into Transactions, in file order."""
    if isinstance(source, bytes):
        try:
            source = source.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CsvImportError(f"File is not UTF-8 text: {e}") from e

    frame = _read_frame(source)
    if frame.empty:
        return []
    # short rows come back as NaN even with keep_default_na=False
    frame = frame.fillna("")
    frame.columns = [str(c).strip() for c in frame.columns]

    accepted, dropped = [], 0
    for line_no, row in enumerate(frame.to_dict(orient="records"), start=2):
        if any(not str(row.get(f) or "").strip() for f in REQUIRED):
            dropped += 1
            continue
        try:
            accepted.append(Transaction.from_record(row))
        except ValueError as e:
            logger.debug("Dropping CSV line %d: %s", line_no, e)
            dropped += 1

    if dropped:
        logger.info("CSV import: %d row(s) accepted, %d dropped",
                    len(accepted), dropped)
    return accepted
