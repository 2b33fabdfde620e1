"""
Gold Journal Core Module

This module contains the core components of the trading journal:
- Trade records and P&L calculation
- Trade statistics
- Capital tracking
- Export/import and backups
- The persistent journal store
"""

from .utils import setup_logging
from .trade import GOLD_LOT_SIZE, Trade, TradeType, calculate_trade_pnl
from .statistics import TradeStatistics, calculate_trade_statistics

__all__ = [
    "setup_logging",
    "GOLD_LOT_SIZE",
    "Trade",
    "TradeType",
    "calculate_trade_pnl",
    "TradeStatistics",
    "calculate_trade_statistics",
]
