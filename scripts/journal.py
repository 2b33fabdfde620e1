#!/usr/bin/env python3
"""
Command-line access to the gold trading journal.

Usage:
    # Log a trade
    python scripts/journal.py add --date 2024-01-15 --entry 2000 --exit 2010 --lots 0.1 --type buy

    # Statistics and per-month win/loss breakdown
    python scripts/journal.py stats
    python scripts/journal.py breakdown --timeframe monthly

    # Export / import / backup
    python scripts/journal.py export --format csv --output trades.csv
    python scripts/journal.py import trades.json
    python scripts/journal.py backup --output backup.json
    python scripts/journal.py restore backup.json
    python scripts/journal.py backup --local
    python scripts/journal.py restore --auto

    # AI analysis
    python scripts/journal.py analyze --type risk
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.capital import parse_capital_input
from core.data_io import (
    InvalidFormatError,
    backup_to_json,
    export_filename,
    export_trades_csv,
    export_trades_json,
    parse_backup,
    parse_import_payload,
)
from core.formatting import DEFAULT_THB_PER_USD, format_amount, format_currency, format_pnl, format_profit_factor, usd_to_baht
from core.statistics import (
    TIMEFRAMES,
    calculate_daily_summary,
    calculate_trade_statistics,
    group_trade_outcomes,
    sort_trades_chronologically,
)
from core.store import JournalStore
from core.trade import TradeValidationError, calculate_trade_pnl
from core.utils import load_journal_config, setup_logging
from llm.analyst import AnalysisError, AnalysisType, TradeAnalyst, client_from_config

logger = logging.getLogger(__name__)


def cmd_add(store: JournalStore, args, config: dict) -> int:
    trade = store.add_trade(args.date, args.entry, args.exit, args.lots, args.type, args.note)
    print(f"Added {trade.id}: {trade.trade_type.value.upper()} {trade.lot_size:g} lot, P&L {format_pnl(calculate_trade_pnl(trade))}")
    return 0


def cmd_list(store: JournalStore, args, config: dict) -> int:
    trades = sort_trades_chronologically(store.trades)
    if not trades:
        print("No trades recorded.")
        return 0
    for t in trades:
        note = f"  {t.note}" if t.note else ""
        print(
            f"{t.id}  {t.date}  {t.trade_type.value.upper():4s}  "
            f"{t.entry_price:>10.2f} -> {t.exit_price:>10.2f}  {t.lot_size:>6g} lot  "
            f"{format_pnl(calculate_trade_pnl(t)):>12s}{note}"
        )
    return 0


def cmd_delete(store: JournalStore, args, config: dict) -> int:
    if not store.delete_trade(args.trade_id):
        logger.error(f"No trade with id {args.trade_id}")
        return 1
    print(f"Deleted {args.trade_id}")
    return 0


def cmd_clear(store: JournalStore, args, config: dict) -> int:
    if not args.yes:
        logger.error("Refusing to delete all trades without --yes")
        return 1
    store.clear_trades()
    print("All trades deleted.")
    return 0


def cmd_stats(store: JournalStore, args, config: dict) -> int:
    trades = sort_trades_chronologically(store.trades)
    stats = calculate_trade_statistics(trades)
    daily = calculate_daily_summary(trades)
    status = store.capital.get_status(trades)

    print("=" * 50)
    print("JOURNAL SUMMARY")
    print("=" * 50)
    print(f"Starting capital:   {format_currency(status['capital'])}")
    print(f"Total P&L:          {format_pnl(stats.total_pnl)}")
    print(f"Net capital:        {format_currency(status['net_capital'])}")
    rate = config.get("thb_per_usd", DEFAULT_THB_PER_USD)
    print(f"Net capital (THB):  ฿{format_amount(usd_to_baht(status['net_capital'], rate))} @ {rate:g}")
    print(f"Return:             {status['return_pct']:.2f}%")
    print("-" * 50)
    print(f"Trades:             {stats.total_trades} ({stats.winning_trades}W / {stats.losing_trades}L / {stats.neutral_trades} flat)")
    print(f"Win rate:           {stats.win_rate:.1f}%")
    print(f"Profit factor:      {format_profit_factor(stats.profit_factor)}")
    print(f"Average win:        {format_currency(stats.average_win)}")
    print(f"Average loss:       {format_currency(stats.average_loss)}")
    print(f"Largest win:        {format_pnl(stats.largest_win)}")
    print(f"Largest loss:       {format_pnl(stats.largest_loss)}")
    print(f"Max drawdown:       {format_currency(stats.max_drawdown)}")
    print(f"Win / loss streak:  {stats.max_win_streak} / {stats.max_loss_streak}")
    print(f"Best day:           {daily.best_day.date or '-'} {format_pnl(daily.best_day.pnl)}")
    print(f"Worst day:          {daily.worst_day.date or '-'} {format_pnl(daily.worst_day.pnl)}")
    print(f"Trades per day:     {daily.average_trades_per_day:.2f}")
    print("=" * 50)
    return 0


def cmd_breakdown(store: JournalStore, args, config: dict) -> int:
    outcomes = group_trade_outcomes(store.trades, args.timeframe)
    if not outcomes:
        print("No trades recorded.")
        return 0
    print(f"{'Period':<12} {'Win':>5} {'Loss':>5} {'Flat':>5} {'Total':>6} {'Win %':>7}")
    for o in outcomes:
        print(f"{o.period:<12} {o.winning:>5} {o.losing:>5} {o.neutral:>5} {o.total:>6} {o.win_rate:>6.1f}%")
    return 0


def cmd_capital(store: JournalStore, args, config: dict) -> int:
    if args.clear:
        store.clear_capital()
    elif args.amount is not None:
        store.update_capital(parse_capital_input(args.amount))
    print(f"Capital: {format_currency(store.capital.capital)}  Net: {format_currency(store.net_capital())}")
    return 0


def _write_output(content: str, output: str) -> None:
    # utf-8 keeps the CSV byte-order mark intact
    Path(output).write_text(content, encoding="utf-8")
    print(f"Wrote {output}")


def cmd_export(store: JournalStore, args, config: dict) -> int:
    trades = store.trades
    if not trades:
        logger.error("No trades to export")
        return 1
    content = export_trades_csv(trades) if args.format == "csv" else export_trades_json(trades)
    _write_output(content, args.output or export_filename(args.format))
    return 0


def cmd_import(store: JournalStore, args, config: dict) -> int:
    text = Path(args.file).read_text(encoding="utf-8-sig")
    trades = parse_import_payload(text)
    count = store.import_trades(trades)
    print(f"Imported {count} trades (previous trades replaced)")
    return 0


def cmd_backup(store: JournalStore, args, config: dict) -> int:
    if not store.trades:
        logger.error("No trades to back up")
        return 1
    if args.local:
        backup = store.create_local_backup()
        print(f"Stored local backup of {len(backup['trades'])} trades ({backup['backupDate']})")
        return 0
    _write_output(backup_to_json(store.trades, store.capital.capital), args.output or export_filename("backup"))
    return 0


def cmd_restore(store: JournalStore, args, config: dict) -> int:
    if args.auto or args.local:
        backup = store.load_local_backup(auto=args.auto)
        if backup is None:
            logger.error(f"No {'auto' if args.auto else 'local'} backup stored")
            return 1
    elif args.file:
        backup = parse_backup(Path(args.file).read_text(encoding="utf-8-sig"))
    else:
        logger.error("Give a backup file, --local or --auto")
        return 1
    store.restore_backup(backup)
    print(f"Restored {len(backup.trades)} trades and capital {format_currency(backup.capital)}")
    return 0


def cmd_api_key(store: JournalStore, args, config: dict) -> int:
    if args.clear:
        store.clear_api_key()
        print("API key removed.")
        return 0
    if args.key:
        store.set_api_key(args.key)
    ok, message = client_from_config(store.api_key, config).test_connection()
    print(("OK: " if ok else "FAILED: ") + message)
    return 0 if ok else 1


def cmd_analyze(store: JournalStore, args, config: dict) -> int:
    trades = sort_trades_chronologically(store.trades)
    analyst = TradeAnalyst(client_from_config(store.api_key, config))
    result = analyst.analyze(trades, store.capital.capital, AnalysisType.parse(args.type))
    print(result.analysis)
    return 0


COMMANDS = {
    "add": cmd_add,
    "list": cmd_list,
    "delete": cmd_delete,
    "clear": cmd_clear,
    "stats": cmd_stats,
    "breakdown": cmd_breakdown,
    "capital": cmd_capital,
    "export": cmd_export,
    "import": cmd_import,
    "backup": cmd_backup,
    "restore": cmd_restore,
    "api-key": cmd_api_key,
    "analyze": cmd_analyze,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Gold trading journal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", default=None, help="Journal config file (default: config/journal.yaml)")
    parser.add_argument("--db-url", default=None, help="Database URL override")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Log a closed trade")
    add.add_argument("--date", required=True, help="Trade date (YYYY-MM-DD)")
    add.add_argument("--entry", type=float, required=True, help="Entry price (USD/oz)")
    add.add_argument("--exit", type=float, required=True, help="Exit price (USD/oz)")
    add.add_argument("--lots", type=float, required=True, help="Lot size (1 lot = 100 oz)")
    add.add_argument("--type", choices=["buy", "sell"], default="buy")
    add.add_argument("--note", default=None)

    sub.add_parser("list", help="List trades by date")

    delete = sub.add_parser("delete", help="Delete a trade by id")
    delete.add_argument("trade_id")

    clear = sub.add_parser("clear", help="Delete all trades")
    clear.add_argument("--yes", action="store_true", help="Confirm deletion")

    sub.add_parser("stats", help="Show journal statistics")

    breakdown = sub.add_parser("breakdown", help="Win/loss counts per period")
    breakdown.add_argument("--timeframe", choices=TIMEFRAMES, default="monthly")

    capital = sub.add_parser("capital", help="Show or set starting capital")
    capital.add_argument("amount", nargs="?", default=None)
    capital.add_argument("--clear", action="store_true", help="Reset capital to 0")

    export = sub.add_parser("export", help="Export trades")
    export.add_argument("--format", choices=["json", "csv"], default="json")
    export.add_argument("--output", default=None)

    imp = sub.add_parser("import", help="Import trades from JSON (replaces current trades)")
    imp.add_argument("file")

    backup = sub.add_parser("backup", help="Write a backup file of trades and capital")
    backup.add_argument("--output", default=None)
    backup.add_argument("--local", action="store_true", help="Store the backup in the journal database instead")

    restore = sub.add_parser("restore", help="Restore trades and capital from a backup")
    restore.add_argument("file", nargs="?", default=None)
    source = restore.add_mutually_exclusive_group()
    source.add_argument("--local", action="store_true", help="Restore the backup stored with 'backup --local'")
    source.add_argument("--auto", action="store_true", help="Restore the automatic backup (every 5th trade)")

    api_key = sub.add_parser("api-key", help="Store and test the Gemini API key")
    api_key.add_argument("key", nargs="?", default=None)
    api_key.add_argument("--clear", action="store_true")

    analyze = sub.add_parser("analyze", help="Request an AI analysis")
    analyze.add_argument("--type", choices=[t.value for t in AnalysisType], default="performance")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = load_journal_config(args.config)
    setup_logging(config.get("log_level", "INFO"))

    try:
        store = JournalStore(args.db_url or config.get("db_url")).load()
        return COMMANDS[args.command](store, args, config)
    except (TradeValidationError, InvalidFormatError) as e:
        logger.error(f"Invalid data: {e}")
    except AnalysisError as e:
        logger.error(f"Analysis failed: {e}")
    except (ValueError, OSError) as e:
        logger.error(f"Error: {e}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
