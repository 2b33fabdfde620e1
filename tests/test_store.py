"""
Tests for core/store.py — the persistent journal store.
"""

import math

import pytest

from core.data_io import Backup
from core.store import (
    AUTO_BACKUP_DATE_KEY,
    AUTO_BACKUP_EVERY,
    AUTO_BACKUP_KEY,
    BACKUP_KEY,
    TRADES_KEY,
    JournalStore,
)
from core.trade import TradeType, TradeValidationError, create_trade
from db.persistence import load_value, save_value


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path}/journal.db"


@pytest.fixture
def store(db_url):
    return JournalStore(db_url).load()


def add_sample(store, n=1):
    return [store.add_trade(f"2024-01-{i + 1:02d}", 2000.0, 2010.0, 0.1) for i in range(n)]


class TestTrades:
    def test_starts_empty(self, store):
        assert store.trades == []
        assert store.capital.capital == 0.0

    def test_add_persists_across_reload(self, store, db_url):
        trade = store.add_trade("2024-01-15", 2010.0, 2000.0, 0.1, "sell", "fade")
        reloaded = JournalStore(db_url).load()
        assert reloaded.trades == [trade]
        assert reloaded.trades[0].trade_type is TradeType.SELL

    def test_add_invalid_trade_leaves_store_unchanged(self, store):
        with pytest.raises(TradeValidationError):
            store.add_trade("2024-01-15", -1.0, 2000.0, 0.1)
        assert store.trades == []

    def test_trades_is_a_snapshot(self, store):
        add_sample(store)
        store.trades.clear()
        assert len(store.trades) == 1

    def test_delete(self, store, db_url):
        first, second = add_sample(store, 2)
        assert store.delete_trade(first.id) is True
        assert store.delete_trade("missing") is False
        assert [t.id for t in JournalStore(db_url).load().trades] == [second.id]

    def test_update(self, store, db_url):
        (trade,) = add_sample(store)
        updated = store.update_trade(trade.id, exit_price=2020.0, note="moved")
        assert updated.id == trade.id
        assert JournalStore(db_url).load().get_trade(trade.id).exit_price == 2020.0

    def test_update_unknown_id(self, store):
        with pytest.raises(KeyError):
            store.update_trade("missing", note="x")

    def test_clear(self, store, db_url):
        add_sample(store, 3)
        store.clear_trades()
        assert JournalStore(db_url).load().trades == []

    def test_import_replaces_and_dedupes_ids(self, store):
        add_sample(store, 2)
        a = create_trade("2024-02-01", 2000.0, 2001.0, 1.0)
        count = store.import_trades([a, a])
        assert count == 2
        ids = [t.id for t in store.trades]
        assert ids[0] == a.id
        assert len(set(ids)) == 2

    def test_corrupt_records_skipped_on_load(self, store, db_url):
        (trade,) = add_sample(store)
        save_value(store.engine, TRADES_KEY, [trade.to_dict(), {"date": "2024-01-01"}, "junk"])
        assert JournalStore(db_url).load().trades == [trade]


class TestCapital:
    def test_capital_persists(self, store, db_url):
        add_sample(store)
        store.update_capital(1000.0)
        reloaded = JournalStore(db_url).load()
        assert reloaded.capital.capital == 1000.0
        assert reloaded.net_capital() == pytest.approx(1100.0)

    def test_clear_capital(self, store, db_url):
        store.update_capital(1000.0)
        store.clear_capital()
        assert JournalStore(db_url).load().capital.capital == 0.0

    def test_invalid_capital_rejected(self, store):
        with pytest.raises(ValueError):
            store.update_capital(-5)


class TestApiKey:
    def test_set_and_clear(self, store, db_url, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        store.set_api_key("  secret  ")
        assert JournalStore(db_url).load().api_key == "secret"
        store.clear_api_key()
        assert JournalStore(db_url).load().api_key is None

    def test_env_fallback(self, store, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        assert store.api_key == "from-env"
        assert not store.has_stored_api_key

    def test_empty_key_rejected(self, store):
        with pytest.raises(ValueError):
            store.set_api_key("   ")


class TestBackups:
    def test_auto_backup_every_fifth_trade(self, store):
        add_sample(store, AUTO_BACKUP_EVERY - 1)
        assert load_value(store.engine, AUTO_BACKUP_KEY) is None

        add_sample(store)
        backup = load_value(store.engine, AUTO_BACKUP_KEY)
        assert len(backup["trades"]) == AUTO_BACKUP_EVERY
        assert load_value(store.engine, AUTO_BACKUP_DATE_KEY) == backup["exportDate"]

        auto = store.load_local_backup(auto=True)
        assert [t.id for t in auto.trades] == [t.id for t in store.trades]

    def test_local_backup_round_trip(self, store):
        add_sample(store, 2)
        store.update_capital(500.0)
        store.create_local_backup()

        store.clear_trades()
        store.clear_capital()

        backup = store.load_local_backup()
        assert len(backup.trades) == 2
        assert backup.capital == 500.0
        assert backup.backup_date

    def test_no_local_backup(self, store):
        assert store.load_local_backup() is None

    @pytest.mark.parametrize("capital", [True, math.inf, -5, "100"])
    def test_unusable_backup_capital_restores_as_zero(self, store, db_url, capital):
        save_value(store.engine, BACKUP_KEY, {"trades": [], "capital": capital})
        backup = store.load_local_backup()
        assert backup.capital == 0.0

        store.restore_backup(backup)
        assert JournalStore(db_url).load().capital.capital == 0.0

    def test_restore_replaces_everything(self, store, db_url):
        add_sample(store, 3)
        restored = [create_trade("2023-12-31", 1900.0, 1950.0, 0.2)]
        store.restore_backup(Backup(trades=restored, capital=750.0, backup_date="2024-01-01T00:00:00.000Z"))

        reloaded = JournalStore(db_url).load()
        assert reloaded.trades == restored
        assert reloaded.capital.capital == 750.0
