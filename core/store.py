"""
JournalStore: The trade record store and its persisted settings.

Holds the trade list, the capital tracker and the analysis API key in
memory and writes every mutation straight through to the key/value
database. One store instance is the single writer for a database.
"""

import logging
import os
from dataclasses import replace
from typing import Optional

from db.init_db import init_db
from db.persistence import delete_value, get_updated_at, load_value, save_value

from .capital import CapitalTracker
from .data_io import BACKUP_VERSION, Backup, create_backup
from .trade import Trade, TradeValidationError, create_trade, finite_float, normalize_trade
from .utils import generate_trade_id, iso_timestamp

logger = logging.getLogger(__name__)

TRADES_KEY = "gold-trades"
CAPITAL_KEY = "base-capital"
API_KEY_KEY = "gemini-api-key"
AUTO_BACKUP_KEY = "gold-trades-auto-backup"
AUTO_BACKUP_DATE_KEY = "gold-trades-auto-backup-date"
BACKUP_KEY = "gold-trades-backup"
BACKUP_DATE_KEY = "gold-trades-backup-date"

AUTO_BACKUP_EVERY = 5


class JournalStore:
    """
    Trade record store backed by SQLite.

    Usage::

        store = JournalStore()
        store.load()
        store.add_trade("2024-01-15", 2000.0, 2010.0, 0.1)
        stats = calculate_trade_statistics(store.trades)
    """

    def __init__(self, db_url: Optional[str] = None):
        """
        Initialize the store.

        Args:
            db_url: Database URL override (see db.init_db.get_db_url)
        """
        self.engine = init_db(db_url)
        self._trades: list[Trade] = []
        self.capital = CapitalTracker()
        self._api_key: Optional[str] = None

    # ------------------------------------------------------------------
    # Load / save boundary
    # ------------------------------------------------------------------

    def load(self) -> "JournalStore":
        """Read trades, capital and API key from the database."""
        raw_trades = load_value(self.engine, TRADES_KEY, default=[])
        if not isinstance(raw_trades, list):
            logger.warning(f"Stored {TRADES_KEY} is not a list, ignoring it")
            raw_trades = []

        trades = []
        for record in raw_trades:
            try:
                trades.append(normalize_trade(record))
            except (TradeValidationError, AttributeError) as e:
                logger.warning(f"Skipping corrupt stored trade: {e}")
        self._trades = trades

        raw_capital = load_value(self.engine, CAPITAL_KEY, default=0.0)
        try:
            self.capital = CapitalTracker(raw_capital)
        except ValueError as e:
            logger.warning(f"Stored capital is invalid, using 0: {e}")
            self.capital = CapitalTracker()

        self._api_key = load_value(self.engine, API_KEY_KEY, default=None) or None

        logger.info(f"Loaded {len(self._trades)} trades, capital ${self.capital.capital:,.2f}")
        return self

    def _save_trades(self) -> None:
        save_value(self.engine, TRADES_KEY, [t.to_dict() for t in self._trades])

    def _save_capital(self) -> None:
        save_value(self.engine, CAPITAL_KEY, self.capital.capital)

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    @property
    def trades(self) -> list[Trade]:
        """Snapshot of the trades in insertion order."""
        return list(self._trades)

    def get_trade(self, trade_id: str) -> Optional[Trade]:
        for trade in self._trades:
            if trade.id == trade_id:
                return trade
        return None

    def add_trade(
        self,
        date: str,
        entry_price: float,
        exit_price: float,
        lot_size: float,
        trade_type: str = "buy",
        note: Optional[str] = None,
    ) -> Trade:
        """
        Append a new trade.

        Every AUTO_BACKUP_EVERY-th trade also refreshes the auto backup.

        Raises:
            TradeValidationError: if the fields are invalid
        """
        trade = create_trade(date, entry_price, exit_price, lot_size, trade_type, note)
        self._trades.append(trade)
        self._save_trades()
        logger.info(f"Added {trade.trade_type.value} trade {trade.id} ({trade.lot_size} lot @ {trade.date})")

        if len(self._trades) % AUTO_BACKUP_EVERY == 0:
            self._write_auto_backup()
        return trade

    def delete_trade(self, trade_id: str) -> bool:
        """Delete a trade by id. Returns True if a trade was removed."""
        remaining = [t for t in self._trades if t.id != trade_id]
        if len(remaining) == len(self._trades):
            logger.warning(f"No trade with id {trade_id}")
            return False
        self._trades = remaining
        self._save_trades()
        logger.info(f"Deleted trade {trade_id}")
        return True

    def update_trade(self, trade_id: str, **changes) -> Trade:
        """
        Update fields of an existing trade.

        Raises:
            KeyError: if no trade has this id
            TradeValidationError: if the updated fields are invalid
        """
        for i, trade in enumerate(self._trades):
            if trade.id == trade_id:
                updated = trade.with_changes(**changes)
                self._trades[i] = updated
                self._save_trades()
                logger.info(f"Updated trade {trade_id}: {sorted(changes)}")
                return updated
        raise KeyError(f"No trade with id {trade_id}")

    def clear_trades(self) -> None:
        self._trades = []
        self._save_trades()
        logger.info("Cleared all trades")

    def replace_all_trades(self, trades: list[Trade]) -> None:
        """Replace the whole collection with already-normalized trades."""
        self._trades = _with_unique_ids(trades)
        self._save_trades()
        logger.info(f"Replaced trade list ({len(self._trades)} trades)")

    def import_trades(self, trades: list[Trade]) -> int:
        """
        Replace the collection with imported trades.

        Returns:
            Number of trades now stored
        """
        self.replace_all_trades(trades)
        return len(self._trades)

    # ------------------------------------------------------------------
    # Capital
    # ------------------------------------------------------------------

    def update_capital(self, value: float) -> None:
        self.capital.update_capital(value)
        self._save_capital()

    def clear_capital(self) -> None:
        self.capital.clear_capital()
        self._save_capital()

    def net_capital(self) -> float:
        return self.capital.net_capital(self._trades)

    # ------------------------------------------------------------------
    # Analysis API key
    # ------------------------------------------------------------------

    @property
    def api_key(self) -> Optional[str]:
        """Stored key, falling back to the GEMINI_API_KEY environment variable."""
        return self._api_key or os.getenv("GEMINI_API_KEY") or None

    @property
    def has_stored_api_key(self) -> bool:
        return bool(self._api_key)

    def set_api_key(self, key: str) -> None:
        key = key.strip()
        if not key:
            raise ValueError("API key must not be empty")
        self._api_key = key
        save_value(self.engine, API_KEY_KEY, key)
        logger.info("Stored analysis API key")

    def clear_api_key(self) -> None:
        self._api_key = None
        delete_value(self.engine, API_KEY_KEY)
        logger.info("Removed analysis API key")

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def _write_auto_backup(self) -> None:
        now = iso_timestamp()
        save_value(self.engine, AUTO_BACKUP_KEY, {
            "trades": [t.to_dict() for t in self._trades],
            "exportDate": now,
            "version": BACKUP_VERSION,
        })
        save_value(self.engine, AUTO_BACKUP_DATE_KEY, now)
        logger.info(f"Auto backup written ({len(self._trades)} trades)")

    def create_local_backup(self) -> dict:
        """Store a backup of trades and capital inside the database."""
        backup = create_backup(self._trades, self.capital.capital)
        save_value(self.engine, BACKUP_KEY, backup)
        save_value(self.engine, BACKUP_DATE_KEY, backup["backupDate"])
        logger.info(f"Local backup written ({len(self._trades)} trades)")
        return backup

    def load_local_backup(self, auto: bool = False) -> Optional[Backup]:
        """
        Read the local (or auto) backup without applying it.

        Returns:
            Backup, or None when there is no usable backup
        """
        key = AUTO_BACKUP_KEY if auto else BACKUP_KEY
        data = load_value(self.engine, key, default=None)
        if not isinstance(data, dict) or not isinstance(data.get("trades"), list):
            return None

        trades = []
        for record in data["trades"]:
            try:
                trades.append(normalize_trade(record))
            except (TradeValidationError, AttributeError) as e:
                logger.warning(f"Skipping corrupt backup trade: {e}")

        capital = finite_float(data.get("capital", self.capital.capital))
        if capital is None or capital < 0:
            logger.warning(f"Backup capital {data.get('capital')!r} is invalid, using 0")
            capital = 0.0
        return Backup(
            trades=trades,
            capital=capital,
            backup_date=data.get("backupDate") or data.get("exportDate") or get_updated_at(self.engine, key),
        )

    def restore_backup(self, backup: Backup) -> None:
        """Replace trades and capital wholesale with the backup's contents."""
        self.capital.update_capital(backup.capital)
        self.replace_all_trades(backup.trades)
        self._save_capital()
        logger.info(f"Restored backup from {backup.backup_date or 'unknown date'}")


def _with_unique_ids(trades: list[Trade]) -> list[Trade]:
    """Give a fresh id to any trade whose id was already seen."""
    seen: set[str] = set()
    out = []
    for trade in trades:
        if trade.id in seen:
            logger.warning(f"Duplicate trade id {trade.id}, assigning a new one")
            trade = replace(trade, id=generate_trade_id())
        seen.add(trade.id)
        out.append(trade)
    return out
