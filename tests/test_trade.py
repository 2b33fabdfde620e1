"""
Tests for core/trade.py — trade records and gold P&L.
"""

import math
from dataclasses import FrozenInstanceError

import pytest

from core.trade import (
    GOLD_LOT_SIZE,
    Trade,
    TradeType,
    TradeValidationError,
    calculate_notional_value,
    calculate_pnl,
    calculate_pnl_per_ounce,
    calculate_pnl_percentage,
    calculate_total_ounces,
    calculate_trade_pnl,
    create_trade,
    is_trade_loss,
    is_trade_profit,
    normalize_trade,
)


def make_trade(entry=2000.0, exit=2010.0, lots=0.1, side="buy", date="2024-01-15", note=""):
    return create_trade(date, entry, exit, lots, side, note)


class TestPnl:
    def test_buy_profit(self):
        # 10 USD/oz move on 0.1 lot (10 oz)
        assert calculate_pnl(2000, 2010, 0.1, "buy") == pytest.approx(100.0)

    def test_sell_profit_when_price_falls(self):
        assert calculate_pnl(2010, 2000, 0.1, "sell") == pytest.approx(100.0)

    def test_sell_loss_when_price_rises(self):
        assert calculate_pnl(2000, 2010, 0.1, "sell") == pytest.approx(-100.0)

    def test_zero_lot_is_zero_pnl(self):
        assert calculate_pnl(2000, 2500, 0.0) == 0

    def test_trade_type_enum_accepted(self):
        assert calculate_pnl(2010, 2000, 1, TradeType.SELL) == pytest.approx(1000.0)

    def test_trade_pnl_uses_record_fields(self):
        trade = make_trade(entry=1950.0, exit=1940.0, lots=0.5)
        assert calculate_trade_pnl(trade) == pytest.approx(-500.0)
        assert is_trade_loss(trade)
        assert not is_trade_profit(trade)

    def test_per_ounce_and_ounces(self):
        trade = make_trade(entry=2010.0, exit=2000.0, lots=0.2, side="sell")
        assert calculate_pnl_per_ounce(trade) == pytest.approx(10.0)
        assert calculate_total_ounces(0.2) == pytest.approx(0.2 * GOLD_LOT_SIZE)

    def test_percentage_of_entry_notional(self):
        trade = make_trade(entry=2000.0, exit=2020.0, lots=1)
        assert calculate_notional_value(2000.0, 1) == pytest.approx(200_000.0)
        assert calculate_pnl_percentage(trade) == pytest.approx(1.0)

    def test_percentage_zero_notional(self):
        trade = make_trade(entry=0.0, exit=10.0, lots=1)
        assert calculate_pnl_percentage(trade) == 0.0


class TestCreateTrade:
    def test_generates_id_and_timestamp(self):
        a = make_trade()
        b = make_trade()
        assert a.id and b.id and a.id != b.id
        assert a.created_at.endswith("Z")
        assert a.trade_type is TradeType.BUY

    def test_note_defaults_to_empty(self):
        trade = create_trade("2024-01-15", 2000, 2010, 0.1, "sell", None)
        assert trade.note == ""
        assert trade.trade_type is TradeType.SELL

    @pytest.mark.parametrize("field_values", [
        (-1.0, 2010.0, 0.1),
        (2000.0, -1.0, 0.1),
        (2000.0, 2010.0, -0.1),
        (math.nan, 2010.0, 0.1),
        (2000.0, math.inf, 0.1),
        (10**400, 2010.0, 0.1),
    ])
    def test_rejects_invalid_numbers(self, field_values):
        entry, exit_, lots = field_values
        with pytest.raises(TradeValidationError):
            create_trade("2024-01-15", entry, exit_, lots)

    def test_rejects_empty_date(self):
        with pytest.raises(TradeValidationError):
            create_trade("  ", 2000, 2010, 0.1)

    def test_rejects_unknown_type(self):
        with pytest.raises(TradeValidationError):
            create_trade("2024-01-15", 2000, 2010, 0.1, "hold")

    def test_bool_is_not_a_number(self):
        with pytest.raises(TradeValidationError):
            create_trade("2024-01-15", True, 2010, 0.1)


class TestTradeRecord:
    def test_to_dict_uses_camel_case(self):
        trade = make_trade(note="breakout")
        data = trade.to_dict()
        assert data == {
            "id": trade.id,
            "date": "2024-01-15",
            "entryPrice": 2000.0,
            "exitPrice": 2010.0,
            "lotSize": 0.1,
            "type": "buy",
            "note": "breakout",
            "createdAt": trade.created_at,
        }

    def test_with_changes_keeps_identity(self):
        trade = make_trade()
        updated = trade.with_changes(exit_price=2020.0, id="other", created_at="x", trade_type="sell")
        assert updated.id == trade.id
        assert updated.created_at == trade.created_at
        assert updated.exit_price == 2020.0
        assert updated.trade_type is TradeType.SELL

    def test_with_changes_revalidates(self):
        with pytest.raises(TradeValidationError):
            make_trade().with_changes(lot_size=-1.0)

    def test_frozen(self):
        trade = make_trade()
        with pytest.raises(FrozenInstanceError):
            trade.note = "changed"


class TestNormalizeTrade:
    def test_missing_type_defaults_to_buy(self):
        trade = normalize_trade({"date": "2024-01-15", "entryPrice": 2000, "exitPrice": 2010, "lotSize": 0.1})
        assert trade.trade_type is TradeType.BUY
        assert trade.id
        assert trade.created_at
        assert trade.note == ""

    def test_null_type_defaults_to_buy(self):
        trade = normalize_trade({"date": "2024-01-15", "entryPrice": 1, "exitPrice": 2, "lotSize": 1, "type": None})
        assert trade.trade_type is TradeType.BUY

    def test_keeps_existing_fields(self):
        record = {
            "id": "abc",
            "date": "2024-01-15",
            "entryPrice": 2010,
            "exitPrice": 2000,
            "lotSize": 0.1,
            "type": "sell",
            "note": "fade",
            "createdAt": "2024-01-15T10:00:00.000Z",
        }
        trade = normalize_trade(record)
        assert isinstance(trade, Trade)
        assert trade.to_dict() == {**record, "entryPrice": 2010.0, "exitPrice": 2000.0}

    def test_missing_lot_size_rejected(self):
        with pytest.raises(TradeValidationError):
            normalize_trade({"date": "2024-01-15", "entryPrice": 2000, "exitPrice": 2010})
