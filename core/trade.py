"""
Trade: A single closed gold position and its P&L.

Gold is quoted in USD per troy ounce and traded in lots of 100 ounces.
Buy trades profit when price rises, sell trades profit when price falls.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping, Optional

from .utils import generate_trade_id, iso_timestamp


GOLD_LOT_SIZE = 100  # ounces per lot


class TradeType(str, Enum):
    """Direction of a trade."""
    BUY = "buy"
    SELL = "sell"


class TradeValidationError(ValueError):
    """Raised when trade fields violate the record invariants."""


@dataclass(frozen=True)
class Trade:
    """One logged, fully closed position."""
    id: str
    date: str
    entry_price: float
    exit_price: float
    lot_size: float
    trade_type: TradeType = TradeType.BUY
    note: str = ""
    created_at: str = ""

    def to_dict(self) -> dict:
        """Serialize to the camelCase record stored and exported on disk."""
        return {
            "id": self.id,
            "date": self.date,
            "entryPrice": self.entry_price,
            "exitPrice": self.exit_price,
            "lotSize": self.lot_size,
            "type": self.trade_type.value,
            "note": self.note,
            "createdAt": self.created_at,
        }

    def with_changes(self, **changes) -> "Trade":
        """Return a copy with fields replaced; id and created_at never change."""
        changes.pop("id", None)
        changes.pop("created_at", None)
        if "trade_type" in changes:
            changes["trade_type"] = TradeType(changes["trade_type"])
        updated = replace(self, **changes)
        validate_trade_fields(updated.entry_price, updated.exit_price, updated.lot_size, updated.date)
        return updated


def is_number(value: Any) -> bool:
    """True for int/float values; bools are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def finite_float(value: Any) -> Optional[float]:
    """
    Convert a number to a finite float.

    Returns None for non-numbers, NaN/inf and integers too large for a float.
    """
    if not is_number(value):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def validate_trade_fields(entry_price: float, exit_price: float, lot_size: float, date: str) -> None:
    """
    Check the per-record invariants.

    Raises:
        TradeValidationError: if a price or lot size is negative or not finite,
            or the date is empty
    """
    for name, value in (("entry_price", entry_price), ("exit_price", exit_price), ("lot_size", lot_size)):
        number = finite_float(value)
        if number is None:
            raise TradeValidationError(f"{name} must be a finite number, got {value!r}")
        if number < 0:
            raise TradeValidationError(f"{name} must be >= 0, got {value}")
    if not isinstance(date, str) or not date.strip():
        raise TradeValidationError("date is required")


def create_trade(
    date: str,
    entry_price: float,
    exit_price: float,
    lot_size: float,
    trade_type: str = "buy",
    note: Optional[str] = None,
) -> Trade:
    """
    Create a new trade with a fresh id and creation timestamp.

    Args:
        date: Trade date (YYYY-MM-DD)
        entry_price: Entry price in USD/oz
        exit_price: Exit price in USD/oz
        lot_size: Size in lots
        trade_type: "buy" or "sell"
        note: Optional free-text note

    Returns:
        The new Trade
    """
    validate_trade_fields(entry_price, exit_price, lot_size, date)
    try:
        side = TradeType(trade_type)
    except ValueError:
        raise TradeValidationError(f"type must be 'buy' or 'sell', got {trade_type!r}") from None

    return Trade(
        id=generate_trade_id(),
        date=date,
        entry_price=float(entry_price),
        exit_price=float(exit_price),
        lot_size=float(lot_size),
        trade_type=side,
        note=note or "",
        created_at=iso_timestamp(),
    )


def normalize_trade(record: Mapping[str, Any]) -> Trade:
    """
    Turn a partial trade record into a fully populated Trade.

    Missing `type` defaults to buy, missing `id`/`createdAt` are generated.
    Used at the import and load boundaries only.

    Raises:
        TradeValidationError: if the record cannot form a valid trade
    """
    entry_price = record.get("entryPrice")
    exit_price = record.get("exitPrice")
    lot_size = record.get("lotSize")
    date = record.get("date")
    validate_trade_fields(entry_price, exit_price, lot_size, date)

    raw_type = record.get("type") or TradeType.BUY.value
    try:
        side = TradeType(raw_type)
    except ValueError:
        raise TradeValidationError(f"type must be 'buy' or 'sell', got {raw_type!r}") from None

    note = record.get("note")
    return Trade(
        id=str(record.get("id") or generate_trade_id()),
        date=date,
        entry_price=float(entry_price),
        exit_price=float(exit_price),
        lot_size=float(lot_size),
        trade_type=side,
        note="" if note is None else str(note),
        created_at=str(record.get("createdAt") or iso_timestamp()),
    )


def calculate_pnl(
    entry_price: float,
    exit_price: float,
    lot_size: float,
    trade_type: str = "buy",
) -> float:
    """
    Calculate gold P&L in USD from raw numbers.

    pnl = (exit - entry) * lots * 100, negated for sell trades.
    """
    price_difference = exit_price - entry_price
    if trade_type == TradeType.SELL:
        return -price_difference * lot_size * GOLD_LOT_SIZE
    return price_difference * lot_size * GOLD_LOT_SIZE


def calculate_trade_pnl(trade: Trade) -> float:
    """Signed USD P&L of one trade."""
    return calculate_pnl(trade.entry_price, trade.exit_price, trade.lot_size, trade.trade_type)


def calculate_pnl_per_ounce(trade: Trade) -> float:
    """Signed price move captured per ounce."""
    price_difference = trade.exit_price - trade.entry_price
    if trade.trade_type == TradeType.SELL:
        return -price_difference
    return price_difference


def calculate_total_ounces(lot_size: float) -> float:
    return lot_size * GOLD_LOT_SIZE


def calculate_notional_value(price: float, lot_size: float) -> float:
    """Notional USD value of `lot_size` lots at `price`."""
    return price * lot_size * GOLD_LOT_SIZE


def calculate_pnl_percentage(trade: Trade) -> float:
    """P&L as a percentage of the entry notional (0 when notional is 0)."""
    entry_value = calculate_notional_value(trade.entry_price, trade.lot_size)
    if entry_value <= 0:
        return 0.0
    return calculate_trade_pnl(trade) / entry_value * 100


def is_trade_profit(trade: Trade) -> bool:
    return calculate_trade_pnl(trade) > 0


def is_trade_loss(trade: Trade) -> bool:
    return calculate_trade_pnl(trade) < 0
