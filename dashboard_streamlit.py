"""
Gold Journal - Streamlit Dashboard

A personal gold-trading journal UI backed by the local journal database.

Features:
- Log and delete closed buy/sell gold trades
- Starting capital, net capital and summary metrics
- Interactive Plotly charts (daily P&L, cumulative P&L, per-trade P&L, win/loss proportions)
- Export to JSON/CSV, import from JSON, backup and restore
- AI analysis of the journal via the Gemini API

Usage:
    streamlit run dashboard_streamlit.py
"""

import logging
from datetime import date

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

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
from core.formatting import (
    DEFAULT_THB_PER_USD,
    format_amount,
    format_compact_currency,
    format_currency,
    format_pnl,
    format_profit_factor,
    usd_to_baht,
)
from core.statistics import (
    TIMEFRAMES,
    calculate_daily_summary,
    calculate_trade_statistics,
    daily_pnl_frame,
    group_trade_outcomes,
    sort_trades_chronologically,
    trade_pnl_frame,
)
from core.store import JournalStore
from core.trade import (
    GOLD_LOT_SIZE,
    Trade,
    TradeValidationError,
    calculate_notional_value,
    calculate_pnl,
    calculate_pnl_per_ounce,
    calculate_total_ounces,
    calculate_trade_pnl,
)
from core.utils import load_journal_config, setup_logging
from llm.analyst import AnalysisError, AnalysisType, TradeAnalyst, client_from_config

logger = logging.getLogger(__name__)

# =============================================================================
# Configuration
# =============================================================================

ANALYSIS_LABELS = {
    AnalysisType.PERFORMANCE: "📈 Performance",
    AnalysisType.RISK: "⚠️ Risk",
    AnalysisType.IMPROVEMENT: "🛠️ Improvement",
    AnalysisType.STRATEGY: "♟️ Strategy",
}

PROFIT_COLOR = "#48BB78"
LOSS_COLOR = "#FC8181"
NEUTRAL_COLOR = "#CBD5E0"


@st.cache_resource
def get_store(db_url):
    """One store per server process; it is the single writer for the database."""
    return JournalStore(db_url).load()


# =============================================================================
# Chart builders
# =============================================================================


def build_daily_pnl_figure(daily: pd.DataFrame) -> go.Figure:
    colors = [PROFIT_COLOR if p >= 0 else LOSS_COLOR for p in daily["pnl"]]
    fig = go.Figure(go.Bar(x=daily["date"], y=daily["pnl"], marker_color=colors, name="P&L"))
    fig.update_layout(template="plotly_dark", height=320, xaxis_title="", yaxis_title="P&L ($)")
    return fig


def build_cumulative_figure(daily: pd.DataFrame) -> go.Figure:
    colors = [PROFIT_COLOR if p >= 0 else LOSS_COLOR for p in daily["cum_pnl"]]
    fig = go.Figure(go.Bar(x=daily["date"], y=daily["cum_pnl"], marker_color=colors, name="Cumulative"))
    fig.update_layout(template="plotly_dark", height=320, xaxis_title="", yaxis_title="Cumulative P&L ($)")
    return fig


def build_trade_pnl_figure(per_trade: pd.DataFrame) -> go.Figure:
    """Per-trade bars with the cumulative P&L line on top."""
    colors = [PROFIT_COLOR if p >= 0 else LOSS_COLOR for p in per_trade["pnl"]]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=per_trade["trade_number"], y=per_trade["pnl"],
        marker_color=colors, name="Trade P&L",
        customdata=per_trade[["date", "type"]],
        hovertemplate="#%{x} %{customdata[0]} %{customdata[1]}<br>P&L: $%{y:,.2f}<extra></extra>",
    ))
    fig.add_trace(go.Scatter(
        x=per_trade["trade_number"], y=per_trade["cum_pnl"],
        mode="lines+markers", name="Cumulative", line=dict(color="#F6E05E", width=2),
    ))
    fig.add_hline(y=0, line_dash="dash", line_color="gray", line_width=1)
    fig.update_layout(template="plotly_dark", height=380, xaxis_title="Trade #", yaxis_title="P&L ($)")
    return fig


def build_proportion_figures(trades: list[Trade], timeframe: str) -> tuple[go.Figure, go.Figure]:
    """Overall win/loss pie and a stacked bar per period."""
    stats = calculate_trade_statistics(trades)
    pie_df = pd.DataFrame({
        "outcome": ["Win", "Loss", "Breakeven"],
        "count": [stats.winning_trades, stats.losing_trades, stats.neutral_trades],
    })
    pie_df = pie_df[pie_df["count"] > 0]
    pie = px.pie(
        pie_df, names="outcome", values="count", template="plotly_dark",
        color="outcome",
        color_discrete_map={"Win": PROFIT_COLOR, "Loss": LOSS_COLOR, "Breakeven": NEUTRAL_COLOR},
    )
    pie.update_layout(height=320)

    outcomes = group_trade_outcomes(trades, timeframe)
    period_df = pd.DataFrame([
        {"period": o.period, "Win": o.winning, "Loss": o.losing, "Breakeven": o.neutral}
        for o in outcomes
    ])
    bars = go.Figure()
    for column, color in (("Win", PROFIT_COLOR), ("Loss", LOSS_COLOR), ("Breakeven", NEUTRAL_COLOR)):
        bars.add_trace(go.Bar(x=period_df["period"], y=period_df[column], name=column, marker_color=color))
    bars.update_layout(template="plotly_dark", barmode="stack", height=320, xaxis_title="", yaxis_title="Trades")
    return pie, bars


def trades_table(trades: list[Trade]) -> pd.DataFrame:
    """Newest-first table of trades for display."""
    rows = [
        {
            "id": t.id,
            "Date": t.date,
            "Type": t.trade_type.value.upper(),
            "Entry": t.entry_price,
            "Exit": t.exit_price,
            "Lots": t.lot_size,
            "Ounces": calculate_total_ounces(t.lot_size),
            "P&L": calculate_trade_pnl(t),
            "$/oz": calculate_pnl_per_ounce(t),
            "Note": t.note,
        }
        for t in reversed(sort_trades_chronologically(trades))
    ]
    return pd.DataFrame(rows)


# =============================================================================
# Streamlit UI
# =============================================================================


def main():
    st.set_page_config(
        page_title="Gold Trading Journal",
        page_icon="📊",
        layout="wide",
    )

    config = load_journal_config()
    setup_logging(config.get("log_level", "INFO"))

    st.title("📊 Gold Trading Journal")
    st.info(
        f"1 lot = {GOLD_LOT_SIZE} oz gold · P&L = (exit − entry) × lots × {GOLD_LOT_SIZE} "
        f"(reversed for sells) · e.g. buy 0.1 lot at $2,000, exit $2,010 = "
        f"{format_pnl(calculate_pnl(2000, 2010, 0.1))}"
    )

    try:
        store = get_store(config.get("db_url"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Failed to open journal database: {e}")
        st.error(f"❌ Failed to open journal database: {e}")
        st.stop()

    trades = sort_trades_chronologically(store.trades)

    show_capital_section(store)
    show_summary_section(store, trades, config)
    show_data_section(store, trades)
    show_trade_form(store)

    if trades:
        show_charts_section(trades)
        show_detailed_stats(trades)

    show_api_key_section(store, config)
    show_analysis_section(store, trades, config)
    show_trade_list(store, trades)


def show_capital_section(store: JournalStore):
    """Starting capital input."""
    st.header("💰 Starting Capital")
    col1, col2 = st.columns([3, 1])
    with col1:
        raw = st.text_input("Capital (USD)", value=f"{store.capital.capital:.2f}")
    with col2:
        st.write("")
        if st.button("Update", type="primary"):
            try:
                store.update_capital(parse_capital_input(raw))
                st.success(f"Capital set to {format_currency(store.capital.capital)}")
                st.rerun()
            except ValueError:
                st.error("❌ Please enter a valid, non-negative amount.")
        if store.capital.capital > 0 and st.button("Clear"):
            store.clear_capital()
            st.rerun()


def show_summary_section(store: JournalStore, trades: list[Trade], config: dict):
    st.header("📋 Summary")
    stats = calculate_trade_statistics(trades)
    status = store.capital.get_status(trades)

    col1, col2, col3, col4, col5, col6 = st.columns(6)
    col1.metric("💵 Starting Capital", format_currency(status["capital"]))
    col2.metric("📈 Total P&L", format_pnl(stats.total_pnl))
    col3.metric("💰 Net Capital", format_currency(status["net_capital"]), delta=f"{status['return_pct']:.2f}%")
    col4.metric("🔄 Trades", stats.total_trades)
    col5.metric("✅ Winning", stats.winning_trades)
    col6.metric("🎯 Win Rate", f"{stats.win_rate:.1f}%")

    rate = config.get("thb_per_usd", DEFAULT_THB_PER_USD)
    volume = sum(calculate_notional_value(t.entry_price, t.lot_size) for t in trades)
    st.caption(
        f"Net capital ≈ ฿{format_amount(usd_to_baht(status['net_capital'], rate))} at {rate:g} THB/USD · "
        f"Volume traded: {format_compact_currency(volume)}"
    )

    if trades:
        with st.expander("🗑️ Delete all trades"):
            if st.button("Delete all trades", type="primary"):
                store.clear_trades()
                st.rerun()


def show_data_section(store: JournalStore, trades: list[Trade]):
    """Export, import, backup and restore."""
    st.header("💾 Data Management")

    with st.expander("Export / Import / Backup", expanded=False):
        col1, col2, col3 = st.columns(3)

        with col1:
            st.subheader("Export")
            if trades:
                st.download_button(
                    "📊 Export CSV",
                    data=export_trades_csv(store.trades).encode("utf-8"),
                    file_name=export_filename("csv"),
                    mime="text/csv",
                )
                st.download_button(
                    "📄 Export JSON",
                    data=export_trades_json(store.trades),
                    file_name=export_filename("json"),
                    mime="application/json",
                )
            else:
                st.caption("No trades to export.")

        with col2:
            st.subheader("Import")
            uploaded = st.file_uploader("Trades JSON (replaces current trades)", type=["json"], key="import_file")
            if uploaded is not None and st.button("Import trades"):
                try:
                    imported = parse_import_payload(uploaded.getvalue().decode("utf-8-sig"))
                except (InvalidFormatError, UnicodeDecodeError) as e:
                    st.error(f"❌ {e}")
                else:
                    count = store.import_trades(imported)
                    st.success(f"Imported {count} trades")
                    st.rerun()

        with col3:
            st.subheader("Backup")
            if trades:
                st.download_button(
                    "💾 Download backup",
                    data=backup_to_json(store.trades, store.capital.capital),
                    file_name=export_filename("backup"),
                    mime="application/json",
                )
            restore_file = st.file_uploader("Restore from backup", type=["json"], key="restore_file")
            if restore_file is not None:
                try:
                    backup = parse_backup(restore_file.getvalue().decode("utf-8-sig"))
                except (InvalidFormatError, UnicodeDecodeError) as e:
                    st.error(f"❌ {e}")
                else:
                    st.warning(
                        f"Backup from {backup.backup_date or 'unknown date'}: {len(backup.trades)} trades, "
                        f"capital {format_currency(backup.capital)}. Current data will be replaced."
                    )
                    if st.button("Restore backup", type="primary"):
                        store.restore_backup(backup)
                        st.success("Backup restored")
                        st.rerun()

            if trades and st.button("Save local backup"):
                saved = store.create_local_backup()
                st.success(f"Local backup saved ({len(saved['trades'])} trades)")
            source = st.radio("Stored backup", ["local", "auto"], horizontal=True, key="stored_backup")
            if st.button("Restore stored backup"):
                stored = store.load_local_backup(auto=source == "auto")
                if stored is None:
                    st.error(f"❌ No {source} backup stored")
                else:
                    store.restore_backup(stored)
                    st.success(f"Restored {len(stored.trades)} trades")
                    st.rerun()


def show_trade_form(store: JournalStore):
    st.header("➕ Add Trade")
    with st.form("trade_form", clear_on_submit=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            trade_date = st.date_input("Date", value=date.today())
            trade_type = st.radio("Type", ["buy", "sell"], horizontal=True, format_func=str.upper)
        with col2:
            entry_price = st.number_input("Entry price (USD/oz)", min_value=0.0, step=0.01, format="%.2f")
            exit_price = st.number_input("Exit price (USD/oz)", min_value=0.0, step=0.01, format="%.2f")
        with col3:
            lot_size = st.number_input("Lot size", min_value=0.0, value=0.01, step=0.01, format="%.2f")
            note = st.text_input("Note")

        if st.form_submit_button("Add trade", type="primary"):
            if entry_price <= 0 or exit_price <= 0 or lot_size <= 0:
                st.error("❌ Prices and lot size must be greater than zero.")
                return
            try:
                trade = store.add_trade(trade_date.isoformat(), entry_price, exit_price, lot_size, trade_type, note)
            except TradeValidationError as e:
                st.error(f"❌ {e}")
                return
            st.success(
                f"Trade added: {trade.trade_type.value.upper()} {trade.lot_size:g} lot · "
                f"P&L {format_pnl(calculate_trade_pnl(trade))}"
            )
            st.rerun()


def show_charts_section(trades: list[Trade]):
    st.header("📉 Charts")
    daily = daily_pnl_frame(trades)

    chart_col1, chart_col2 = st.columns(2)
    with chart_col1:
        st.subheader("Daily P&L")
        st.plotly_chart(build_daily_pnl_figure(daily), use_container_width=True)
    with chart_col2:
        st.subheader("Cumulative P&L")
        st.plotly_chart(build_cumulative_figure(daily), use_container_width=True)

    st.subheader("P&L per Trade")
    st.plotly_chart(build_trade_pnl_figure(trade_pnl_frame(trades)), use_container_width=True)

    st.subheader("Win / Loss Proportions")
    timeframe = st.radio("Period", TIMEFRAMES, index=TIMEFRAMES.index("monthly"), horizontal=True)
    pie, bars = build_proportion_figures(trades, timeframe)
    col1, col2 = st.columns(2)
    col1.plotly_chart(pie, use_container_width=True)
    col2.plotly_chart(bars, use_container_width=True)


def show_detailed_stats(trades: list[Trade]):
    st.header("🔎 Detailed Statistics")
    stats = calculate_trade_statistics(trades)
    daily = calculate_daily_summary(trades)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Profit Factor", format_profit_factor(stats.profit_factor))
    col2.metric("Average Win", format_currency(stats.average_win))
    col3.metric("Average Loss", format_currency(stats.average_loss))
    col4.metric("Max Drawdown", format_currency(stats.max_drawdown))

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Largest Win", format_pnl(stats.largest_win))
    col2.metric("Largest Loss", format_pnl(stats.largest_loss))
    col3.metric("Win / Loss Streak", f"{stats.max_win_streak} / {stats.max_loss_streak}")
    col4.metric("Trades per Day", f"{daily.average_trades_per_day:.2f}")

    col1, col2 = st.columns(2)
    col1.metric("Best Day", daily.best_day.date or "-", delta=format_pnl(daily.best_day.pnl))
    col2.metric("Worst Day", daily.worst_day.date or "-", delta=format_pnl(daily.worst_day.pnl))


def show_api_key_section(store: JournalStore, config: dict):
    st.header("🔑 Gemini API Key")
    with st.expander("API key settings", expanded=not store.api_key):
        key = st.text_input("API key", type="password", placeholder="AIza...")
        col1, col2, col3 = st.columns(3)
        if col1.button("Save key"):
            try:
                store.set_api_key(key)
                st.success("API key saved")
            except ValueError as e:
                st.error(f"❌ {e}")
        if col2.button("Test connection"):
            with st.spinner("Testing connection..."):
                ok, message = client_from_config(key or store.api_key, config).test_connection()
            (st.success if ok else st.error)(message)
        if store.has_stored_api_key and col3.button("Remove key"):
            store.clear_api_key()
            st.rerun()


def request_analysis(state) -> None:
    state["analysis_running"] = True


def run_requested_analysis(state, analyst: TradeAnalyst, trades: list[Trade], capital: float,
                           analysis_type: AnalysisType) -> bool:
    """
    Run the analysis requested by the Analyze button.

    The result (or the error message) is kept in `state` and the running flag
    is always cleared. Returns False when no analysis was requested.
    """
    if not state.get("analysis_running", False):
        return False
    try:
        state["analysis_result"] = analyst.analyze(trades, capital, analysis_type)
        state["analysis_error"] = None
    except AnalysisError as e:
        logger.warning(f"Analysis failed: {e}")
        state["analysis_error"] = str(e)
    finally:
        state["analysis_running"] = False
    return True


def show_analysis_section(store: JournalStore, trades: list[Trade], config: dict):
    st.header("🤖 AI Analysis")
    if not trades:
        st.info("Add some trades to enable AI analysis.")
        return

    analysis_type = st.radio(
        "Analysis type",
        list(AnalysisType),
        format_func=lambda t: ANALYSIS_LABELS[t],
        horizontal=True,
    )
    # The click callback runs before the rerun, so the button renders disabled
    # for the whole run that performs the request.
    running = st.session_state.get("analysis_running", False)
    st.button("Analyze", type="primary", disabled=running, on_click=request_analysis, args=(st.session_state,))
    if running:
        analyst = TradeAnalyst(client_from_config(store.api_key, config))
        with st.spinner("Waiting for the analysis service..."):
            run_requested_analysis(st.session_state, analyst, trades, store.capital.capital, analysis_type)
        st.rerun()

    error = st.session_state.get("analysis_error")
    if error:
        st.error(f"❌ {error}")
    result = st.session_state.get("analysis_result")
    if result is not None:
        st.caption(f"{ANALYSIS_LABELS[result.analysis_type]} · {result.timestamp}")
        st.markdown(result.analysis)


def show_trade_list(store: JournalStore, trades: list[Trade]):
    st.header("📒 Trades")
    if not trades:
        st.info("No trades recorded yet.")
        return

    table = trades_table(trades)
    st.dataframe(
        table.drop(columns=["id"]),
        use_container_width=True,
        height=350,
        column_config={
            "P&L": st.column_config.NumberColumn(format="$%.2f"),
            "$/oz": st.column_config.NumberColumn(format="$%.2f"),
        },
    )

    labels = {
        row["id"]: f"{row['Date']} {row['Type']} {row['Lots']:g} lot ({format_pnl(row['P&L'])})"
        for _, row in table.iterrows()
    }
    col1, col2 = st.columns([3, 1])
    with col1:
        selected = st.selectbox("Trade", list(labels), format_func=labels.get)
    with col2:
        st.write("")
        if st.button("🗑️ Delete trade"):
            store.delete_trade(selected)
            st.rerun()


if __name__ == "__main__":
    main()
