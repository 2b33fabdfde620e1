"""
Tests for scripts/journal.py — the command-line journal.
"""

import importlib.util
import json
from pathlib import Path

import pytest

from core.store import JournalStore

SCRIPT = Path(__file__).parent.parent / "scripts" / "journal.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("journal_cli", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path}/cli.db"


@pytest.fixture
def run(cli, db_url, tmp_path):
    config = tmp_path / "journal.yaml"
    config.write_text("log_level: WARNING\n", encoding="utf-8")

    def _run(*argv):
        return cli.main(["--config", str(config), "--db-url", db_url, *argv])

    return _run


class TestJournalCli:
    def test_add_and_stats(self, run, db_url, capsys):
        assert run("add", "--date", "2024-01-15", "--entry", "2000", "--exit", "2010", "--lots", "0.1") == 0
        assert run("add", "--date", "2024-01-16", "--entry", "2010", "--exit", "2000", "--lots", "0.1",
                   "--type", "sell", "--note", "fade") == 0
        assert len(JournalStore(db_url).load().trades) == 2

        assert run("stats") == 0
        out = capsys.readouterr().out
        assert "+$200.00" in out
        assert "100.0%" in out

    def test_invalid_trade_returns_error(self, run, db_url):
        assert run("add", "--date", "2024-01-15", "--entry", "-1", "--exit", "2010", "--lots", "0.1") == 1
        assert JournalStore(db_url).load().trades == []

    def test_capital(self, run, db_url):
        assert run("capital", "1,000") == 0
        assert JournalStore(db_url).load().capital.capital == 1000.0
        assert run("capital", "abc") == 1
        assert run("capital", "--clear") == 0
        assert JournalStore(db_url).load().capital.capital == 0.0

    def test_clear_requires_confirmation(self, run, db_url):
        run("add", "--date", "2024-01-15", "--entry", "2000", "--exit", "2010", "--lots", "0.1")
        assert run("clear") == 1
        assert run("clear", "--yes") == 0
        assert JournalStore(db_url).load().trades == []

    def test_delete_unknown(self, run):
        assert run("delete", "missing") == 1

    def test_export_import_round_trip(self, run, db_url, tmp_path):
        run("add", "--date", "2024-01-15", "--entry", "2000", "--exit", "2010", "--lots", "0.1")
        exported = tmp_path / "trades.json"
        assert run("export", "--format", "json", "--output", str(exported)) == 0
        assert json.loads(exported.read_text(encoding="utf-8"))["summary"]["totalTrades"] == 1

        run("clear", "--yes")
        assert run("import", str(exported)) == 0
        assert len(JournalStore(db_url).load().trades) == 1

    def test_csv_export_keeps_bom(self, run, tmp_path):
        run("add", "--date", "2024-01-15", "--entry", "2000", "--exit", "2010", "--lots", "0.1")
        out = tmp_path / "trades.csv"
        assert run("export", "--format", "csv", "--output", str(out)) == 0
        assert out.read_bytes().startswith(b"\xef\xbb\xbf")

    def test_import_invalid_file(self, run, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"items": []}', encoding="utf-8")
        assert run("import", str(bad)) == 1

    def test_backup_restore(self, run, db_url, tmp_path):
        run("add", "--date", "2024-01-15", "--entry", "2000", "--exit", "2010", "--lots", "0.1")
        run("capital", "500")
        backup = tmp_path / "backup.json"
        assert run("backup", "--output", str(backup)) == 0

        run("clear", "--yes")
        run("capital", "--clear")
        assert run("restore", str(backup)) == 0

        store = JournalStore(db_url).load()
        assert len(store.trades) == 1
        assert store.capital.capital == 500.0

    def test_breakdown(self, run, capsys):
        run("add", "--date", "2024-01-15", "--entry", "2000", "--exit", "2010", "--lots", "0.1")
        run("add", "--date", "2024-02-01", "--entry", "2000", "--exit", "1990", "--lots", "0.1")
        assert run("breakdown", "--timeframe", "monthly") == 0
        out = capsys.readouterr().out
        assert "2024-01" in out
        assert "2024-02" in out

    def test_analyze_without_key(self, run, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        run("add", "--date", "2024-01-15", "--entry", "2000", "--exit", "2010", "--lots", "0.1")
        assert run("analyze") == 1

    def test_local_backup_restore(self, run, db_url):
        run("add", "--date", "2024-01-15", "--entry", "2000", "--exit", "2010", "--lots", "0.1")
        run("capital", "500")
        assert run("backup", "--local") == 0

        run("clear", "--yes")
        run("capital", "--clear")
        assert run("restore", "--local") == 0

        store = JournalStore(db_url).load()
        assert len(store.trades) == 1
        assert store.capital.capital == 500.0

    def test_restore_auto_backup(self, run, db_url):
        for day in range(1, 6):
            run("add", "--date", f"2024-01-{day:02d}", "--entry", "2000", "--exit", "2010", "--lots", "0.1")
        run("clear", "--yes")

        assert run("restore", "--auto") == 0
        assert len(JournalStore(db_url).load().trades) == 5

    def test_restore_without_source(self, run):
        assert run("restore", "--local") == 1
        assert run("restore", "--auto") == 1
        assert run("restore") == 1
