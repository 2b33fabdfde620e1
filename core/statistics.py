"""
Trade statistics: aggregate performance metrics over a list of trades.

All sequence-dependent metrics (drawdown, streaks) iterate in the order
the trades are given. Callers that want chronological figures pass the
output of `sort_trades_chronologically`.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

import pandas as pd

from .trade import Trade, calculate_trade_pnl

logger = logging.getLogger(__name__)

TIMEFRAMES = ("daily", "weekly", "monthly", "yearly")
UNKNOWN_PERIOD = "unknown"


@dataclass
class TradeStatistics:
    """Aggregate statistics for a collection of trades."""
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    neutral_trades: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    profit_factor: float = 0.0
    max_drawdown: float = 0.0
    max_win_streak: int = 0
    max_loss_streak: int = 0
    largest_win: float = 0.0
    largest_loss: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DayResult:
    date: str = ""
    pnl: float = 0.0


@dataclass
class DailySummary:
    """Per-day aggregates shown on the detailed statistics card."""
    best_day: DayResult
    worst_day: DayResult
    trading_days: int = 0
    average_trades_per_day: float = 0.0


@dataclass
class PeriodOutcome:
    """Win/loss/neutral counts for one time bucket."""
    period: str
    winning: int = 0
    losing: int = 0
    neutral: int = 0

    @property
    def total(self) -> int:
        return self.winning + self.losing + self.neutral

    @property
    def win_rate(self) -> float:
        return self.winning / self.total * 100 if self.total else 0.0


def parse_trade_date(value: str) -> Optional[date]:
    """
    Parse a trade date string.

    Accepts ISO dates and datetimes; anything else is tried with pandas.
    Returns None when the string cannot be parsed.
    """
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        pass
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def sort_trades_chronologically(trades: Iterable[Trade]) -> list[Trade]:
    """Stable sort by trade date; unparseable dates go last."""
    def sort_key(trade: Trade):
        parsed = parse_trade_date(trade.date)
        return (parsed is None, parsed or date.min)

    return sorted(trades, key=sort_key)


def calculate_max_drawdown(pnls: list[float]) -> float:
    """
    Largest peak-to-trough decline of the running cumulative P&L.

    The peak starts at 0 so a losing first trade counts as drawdown.
    """
    max_drawdown = 0.0
    peak = 0.0
    running = 0.0
    for pnl in pnls:
        running += pnl
        if running > peak:
            peak = running
        drawdown = peak - running
        if drawdown > max_drawdown:
            max_drawdown = drawdown
    return max_drawdown


def calculate_streaks(pnls: list[float]) -> tuple[int, int]:
    """
    Longest consecutive win and loss runs.

    A zero-P&L trade breaks both runs.

    Returns:
        Tuple of (max_win_streak, max_loss_streak)
    """
    max_win = max_loss = 0
    current_win = current_loss = 0
    for pnl in pnls:
        if pnl > 0:
            current_win += 1
            current_loss = 0
            max_win = max(max_win, current_win)
        elif pnl < 0:
            current_loss += 1
            current_win = 0
            max_loss = max(max_loss, current_loss)
        else:
            current_win = 0
            current_loss = 0
    return max_win, max_loss


def calculate_trade_statistics(trades: list[Trade]) -> TradeStatistics:
    """
    Calculate aggregate statistics for a list of trades.

    Args:
        trades: Trades in the order drawdown and streaks should follow

    Returns:
        TradeStatistics; all zero for an empty list
    """
    if not trades:
        return TradeStatistics()

    pnls = [calculate_trade_pnl(t) for t in trades]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]

    total_wins = sum(wins)
    total_losses = abs(sum(losses))

    if total_losses > 0:
        profit_factor = total_wins / total_losses
    elif total_wins > 0:
        profit_factor = float("inf")
    else:
        profit_factor = 0.0

    max_win_streak, max_loss_streak = calculate_streaks(pnls)

    return TradeStatistics(
        total_trades=len(trades),
        winning_trades=len(wins),
        losing_trades=len(losses),
        neutral_trades=len(pnls) - len(wins) - len(losses),
        win_rate=len(wins) / len(trades) * 100,
        total_pnl=sum(pnls),
        average_win=total_wins / len(wins) if wins else 0.0,
        average_loss=total_losses / len(losses) if losses else 0.0,
        profit_factor=profit_factor,
        max_drawdown=calculate_max_drawdown(pnls),
        max_win_streak=max_win_streak,
        max_loss_streak=max_loss_streak,
        largest_win=max(wins, default=0.0),
        largest_loss=min(losses, default=0.0),
    )


def calculate_total_pnl(trades: Iterable[Trade]) -> float:
    return sum(calculate_trade_pnl(t) for t in trades)


def calculate_daily_summary(trades: list[Trade]) -> DailySummary:
    """Best/worst trading day by summed P&L and average trades per day."""
    daily: dict[str, float] = {}
    for trade in trades:
        daily[trade.date] = daily.get(trade.date, 0.0) + calculate_trade_pnl(trade)

    if not daily:
        return DailySummary(best_day=DayResult(), worst_day=DayResult())

    # First occurrence wins ties
    best_date = max(daily, key=lambda d: daily[d])
    worst_date = min(daily, key=lambda d: daily[d])

    return DailySummary(
        best_day=DayResult(best_date, daily[best_date]),
        worst_day=DayResult(worst_date, daily[worst_date]),
        trading_days=len(daily),
        average_trades_per_day=len(trades) / len(daily),
    )


def period_key(trade_date: Optional[date], timeframe: str) -> str:
    """
    Bucket key for a date.

    daily -> YYYY-MM-DD, weekly -> YYYY-MM-DD of the Sunday starting the week,
    monthly -> YYYY-MM, yearly -> YYYY.
    """
    if timeframe not in TIMEFRAMES:
        raise ValueError(f"Unknown timeframe: {timeframe}")
    if trade_date is None:
        return UNKNOWN_PERIOD

    if timeframe == "daily":
        return trade_date.isoformat()
    if timeframe == "weekly":
        # date.weekday(): Monday=0 ... Sunday=6
        days_since_sunday = (trade_date.weekday() + 1) % 7
        return (trade_date - timedelta(days=days_since_sunday)).isoformat()
    if timeframe == "monthly":
        return f"{trade_date.year:04d}-{trade_date.month:02d}"
    return f"{trade_date.year:04d}"


def group_trade_outcomes(trades: list[Trade], timeframe: str = "monthly") -> list[PeriodOutcome]:
    """
    Count winning, losing and neutral trades per time bucket.

    Args:
        trades: Trades to group
        timeframe: One of daily, weekly, monthly, yearly

    Returns:
        PeriodOutcome list sorted by period, with unparseable dates last
    """
    buckets: dict[str, PeriodOutcome] = {}
    for trade in trades:
        parsed = parse_trade_date(trade.date)
        if parsed is None:
            logger.warning(f"Could not parse trade date {trade.date!r} (id={trade.id})")
        key = period_key(parsed, timeframe)
        bucket = buckets.setdefault(key, PeriodOutcome(period=key))

        pnl = calculate_trade_pnl(trade)
        if pnl > 0:
            bucket.winning += 1
        elif pnl < 0:
            bucket.losing += 1
        else:
            bucket.neutral += 1

    return sorted(buckets.values(), key=lambda b: (b.period == UNKNOWN_PERIOD, b.period))


def trade_pnl_frame(trades: list[Trade]) -> pd.DataFrame:
    """
    Per-trade P&L in chronological order with a cumulative column.

    Columns: trade_number, date, type, pnl, cum_pnl, note
    """
    ordered = sort_trades_chronologically(trades)
    if not ordered:
        return pd.DataFrame(columns=["trade_number", "date", "type", "pnl", "cum_pnl", "note"])

    df = pd.DataFrame([
        {
            "trade_number": i + 1,
            "date": t.date,
            "type": t.trade_type.value.upper(),
            "pnl": calculate_trade_pnl(t),
            "note": t.note,
        }
        for i, t in enumerate(ordered)
    ])
    df["cum_pnl"] = df["pnl"].cumsum()
    return df[["trade_number", "date", "type", "pnl", "cum_pnl", "note"]]


def daily_pnl_frame(trades: list[Trade]) -> pd.DataFrame:
    """
    P&L summed per trade date, sorted by date, with a cumulative column.

    Columns: date, pnl, cum_pnl
    """
    if not trades:
        return pd.DataFrame(columns=["date", "pnl", "cum_pnl"])

    df = pd.DataFrame({
        "date": [t.date for t in trades],
        "pnl": [calculate_trade_pnl(t) for t in trades],
    })
    daily = df.groupby("date", sort=False, as_index=False)["pnl"].sum()
    daily["_sort"] = daily["date"].map(lambda d: parse_trade_date(d) or date.max)
    daily = daily.sort_values("_sort", kind="stable").drop(columns="_sort")
    daily["cum_pnl"] = daily["pnl"].cumsum()
    return daily.reset_index(drop=True)

