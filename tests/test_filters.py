"""Unit tests: date window / symbol filtering and closed-trade selection."""
from datetime import datetime, timedelta, timezone

from conftest import NOW, build_trade
from filters import available_symbols, closed_trades, filter_trades
from models import DateRange, TradeStatus


def _book():
    return [
        build_trade(10.0, NOW - timedelta(days=1), symbol="SOL-PERP", trade_id="t1"),
        build_trade(-5.0, NOW - timedelta(days=10), symbol="JUP-PERP", trade_id="t2"),
        build_trade(7.0, NOW - timedelta(days=45), symbol="SOL-PERP", trade_id="t3"),
        build_trade(3.0, NOW - timedelta(days=400), symbol="WIF-PERP", trade_id="t4"),
    ]


def test_unbounded_filter_is_pass_through():
    trades = _book()
    out = filter_trades(trades, DateRange.ALL, "all", now=NOW)
    assert out == trades
    assert out is not trades


def test_unbounded_range_keeps_ancient_trades():
    ancient = build_trade(1.0, datetime(1970, 1, 1, tzinfo=timezone.utc), trade_id="old")
    assert filter_trades([ancient], DateRange.ALL, now=NOW) == [ancient]


def test_seven_day_window():
    out = filter_trades(_book(), DateRange.LAST_7_DAYS, now=NOW)
    assert [t.id for t in out] == ["t1"]


def test_ninety_day_window_preserves_order():
    out = filter_trades(_book(), DateRange.LAST_90_DAYS, now=NOW)
    assert [t.id for t in out] == ["t1", "t2", "t3"]


def test_window_excludes_future_entries():
    future = build_trade(5.0, NOW + timedelta(hours=1), trade_id="future")
    assert filter_trades([future], DateRange.LAST_30_DAYS, now=NOW) == []


def test_window_boundary_is_inclusive():
    edge = build_trade(5.0, NOW - timedelta(days=30), trade_id="edge")
    assert filter_trades([edge], DateRange.LAST_30_DAYS, now=NOW) == [edge]


def test_symbol_filter():
    out = filter_trades(_book(), DateRange.ALL, "SOL-PERP", now=NOW)
    assert [t.id for t in out] == ["t1", "t3"]


def test_combined_filters():
    out = filter_trades(_book(), DateRange.LAST_30_DAYS, "SOL-PERP", now=NOW)
    assert [t.id for t in out] == ["t1"]


def test_date_range_accepts_string_values():
    out = filter_trades(_book(), "7d", now=NOW)
    assert [t.id for t in out] == ["t1"]


def test_closed_trades_drops_open_positions():
    open_trade = build_trade(0.0, NOW, status=TradeStatus.OPEN, trade_id="open")
    closed = build_trade(1.0, NOW, trade_id="closed")
    assert closed_trades([open_trade, closed]) == [closed]


def test_available_symbols_sorted_and_distinct():
    assert available_symbols(_book()) == ["JUP-PERP", "SOL-PERP", "WIF-PERP"]
    assert available_symbols([]) == []
