"""
Capital tracker: starting capital combined with realized trade P&L.

Net capital is always derived from the current trade list and never stored.
"""

import logging

from .statistics import calculate_total_pnl
from .trade import Trade, finite_float, is_number

logger = logging.getLogger(__name__)


def parse_capital_input(raw: str) -> float:
    """
    Validate user-entered capital text.

    Raises:
        ValueError: if the text is not a finite, non-negative number
    """
    try:
        value = float(str(raw).strip().replace(",", ""))
    except ValueError:
        raise ValueError(f"Invalid capital amount: {raw!r}") from None
    _check_capital(value)
    return value


def _check_capital(value: float) -> None:
    if not is_number(value):
        raise ValueError(f"Capital must be a number, got {value!r}")
    number = finite_float(value)
    if number is None or number < 0:
        raise ValueError(f"Capital must be a finite, non-negative number, got {value}")


class CapitalTracker:
    """
    Holds the user's starting capital.

    Mirrors the portfolio's cash/equity split: capital is the fixed base,
    equity (net capital) is capital plus the summed P&L of all trades.
    """

    def __init__(self, capital: float = 0.0):
        _check_capital(capital)
        self.capital = float(capital)

    def update_capital(self, value: float) -> None:
        """Replace the starting capital."""
        _check_capital(value)
        self.capital = float(value)
        logger.info(f"Capital updated to ${self.capital:,.2f}")

    def clear_capital(self) -> None:
        self.capital = 0.0
        logger.info("Capital cleared")

    def net_capital(self, trades: list[Trade]) -> float:
        """Capital plus total P&L, recomputed on every call."""
        return self.capital + calculate_total_pnl(trades)

    def get_status(self, trades: list[Trade]) -> dict:
        """Get current capital status."""
        total_pnl = calculate_total_pnl(trades)
        net = self.capital + total_pnl
        return {
            "capital": self.capital,
            "total_pnl": total_pnl,
            "net_capital": net,
            "return_pct": total_pnl / self.capital * 100 if self.capital > 0 else 0.0,
            "total_trades": len(trades),
        }
