"""
Data I/O: Export, import, backup and restore of trade collections.

Provides functions to:
- Export trades as pretty-printed JSON or spreadsheet-friendly CSV
- Validate and import trades from a JSON payload
- Build and parse backup documents (trades + capital)
"""

import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .trade import (
    Trade,
    TradeType,
    TradeValidationError,
    calculate_trade_pnl,
    finite_float,
    is_number,
    normalize_trade,
)
from .utils import iso_timestamp, utc_now

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"
UTF8_BOM = "\ufeff"

CSV_HEADERS = [
    "วันที่",
    "ประเภท",
    "ราคาเข้า",
    "ราคาออก",
    "ขนาด Lot",
    "กำไร/ขาดทุน",
    "หมายเหตุ",
]

TYPE_LABELS = {
    TradeType.BUY: "ซื้อ",
    TradeType.SELL: "ขาย",
}


class InvalidFormatError(ValueError):
    """Raised when an import or backup payload cannot be used."""


@dataclass
class Backup:
    """A parsed backup: full trade list plus capital."""
    trades: list[Trade]
    capital: float
    backup_date: Optional[str] = None


def export_filename(kind: str, now: Optional[datetime] = None) -> str:
    """
    Download filename for an export.

    Args:
        kind: "json", "csv" or "backup"
        now: Timestamp used for the date suffix
    """
    day = (now or utc_now()).date().isoformat()
    if kind == "backup":
        return f"gold-trading-backup-{day}.json"
    if kind in ("json", "csv"):
        return f"gold-trades-{day}.{kind}"
    raise ValueError(f"Unknown export kind: {kind}")


def export_trades_json(trades: list[Trade], now: Optional[datetime] = None) -> str:
    """
    Serialize trades to the JSON export document.

    Returns:
        Pretty-printed JSON: {exportDate, trades, summary: {totalTrades, totalPnL}}
    """
    payload = {
        "exportDate": iso_timestamp(now),
        "trades": [t.to_dict() for t in trades],
        "summary": {
            "totalTrades": len(trades),
            "totalPnL": sum(calculate_trade_pnl(t) for t in trades),
        },
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _csv_number(value: float) -> str:
    """Stored number without rounding; integral values drop the trailing '.0'."""
    return str(int(value)) if value.is_integer() else repr(value)


def export_trades_csv(trades: list[Trade]) -> str:
    """
    Serialize trades to CSV with a UTF-8 byte-order mark.

    Every cell is double-quoted. Encode the result as UTF-8 when writing.
    """
    buffer = io.StringIO()
    buffer.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for trade in trades:
        writer.writerow([
            trade.date,
            TYPE_LABELS[trade.trade_type],
            _csv_number(trade.entry_price),
            _csv_number(trade.exit_price),
            _csv_number(trade.lot_size),
            f"{calculate_trade_pnl(trade):.2f}",
            trade.note,
        ])
    return UTF8_BOM + buffer.getvalue().rstrip("\n")


def is_valid_trade_record(record: Any) -> bool:
    """
    Shape check for one imported record.

    Prices and lot size must be numbers, `type` (if present) buy or sell,
    and `date` a non-empty string.
    """
    if not isinstance(record, dict):
        return False
    if not all(is_number(record.get(k)) for k in ("entryPrice", "exitPrice", "lotSize")):
        return False
    if record.get("type") is not None and record["type"] not in (TradeType.BUY.value, TradeType.SELL.value):
        return False
    date = record.get("date")
    return isinstance(date, str) and bool(date.strip())


def validate_trade_records(records: list) -> list[Trade]:
    """Normalize the records that pass validation, dropping the rest."""
    trades = []
    for record in records:
        if not is_valid_trade_record(record):
            continue
        try:
            trades.append(normalize_trade(record))
        except TradeValidationError as e:
            logger.debug(f"Dropping imported record: {e}")
    dropped = len(records) - len(trades)
    if dropped:
        logger.warning(f"Dropped {dropped} invalid trade record(s) on import")
    return trades


def _load_json(text: str) -> Any:
    try:
        return json.loads(text.lstrip(UTF8_BOM))
    except (TypeError, ValueError) as e:
        raise InvalidFormatError(f"Invalid JSON file: {e}") from e


def parse_import_payload(text: str) -> list[Trade]:
    """
    Parse an import file.

    Accepts a bare array of trades or an object with a `trades` array.

    Raises:
        InvalidFormatError: if the JSON is malformed, has the wrong shape,
            or contains no valid trade
    """
    data = _load_json(text)

    if isinstance(data, list):
        records = data
    elif isinstance(data, dict) and isinstance(data.get("trades"), list):
        records = data["trades"]
    else:
        raise InvalidFormatError("Expected an array of trades or an object with a 'trades' array")

    trades = validate_trade_records(records)
    if not trades:
        raise InvalidFormatError("No valid trade records found")

    logger.info(f"Parsed {len(trades)} trade(s) from import payload")
    return trades


def create_backup(trades: list[Trade], capital: float, now: Optional[datetime] = None) -> dict:
    """Build a backup document of all trades and the capital."""
    return {
        "backupDate": iso_timestamp(now),
        "trades": [t.to_dict() for t in trades],
        "capital": capital,
        "version": BACKUP_VERSION,
    }


def backup_to_json(trades: list[Trade], capital: float, now: Optional[datetime] = None) -> str:
    return json.dumps(create_backup(trades, capital, now), ensure_ascii=False, indent=2)


def parse_backup(text: str) -> Backup:
    """
    Parse a backup file.

    Raises:
        InvalidFormatError: unless `trades` is an array and `capital` a number
    """
    data = _load_json(text)
    if not isinstance(data, dict) or not isinstance(data.get("trades"), list) or not is_number(data.get("capital")):
        raise InvalidFormatError("Backup must contain a 'trades' array and a numeric 'capital'")
    capital = finite_float(data["capital"])
    if capital is None or capital < 0:
        raise InvalidFormatError(f"Backup capital must be a finite, non-negative number, got {data['capital']!r}")

    return Backup(
        trades=validate_trade_records(data["trades"]),
        capital=capital,
        backup_date=data.get("backupDate") or data.get("exportDate"),
    )
