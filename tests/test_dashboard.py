"""Integration tests: recompute pipeline and Dashboard state transitions."""
from datetime import timedelta

import pytest

from conftest import NOW, build_trade
from dashboard import Dashboard, recompute
from models import DashboardSnapshot, DataSource, DateRange, TradeStatus
from sources import TradeSourceError


class _FailingSource:
    def load(self):
        raise TradeSourceError("node unreachable")


class _StaticSource:
    def __init__(self, trades):
        self.trades = trades

    def load(self):
        return list(self.trades)


def test_recompute_scenario(scenario_trades):
    snap = recompute(scenario_trades)
    assert len(snap.trades) == 3
    assert snap.metrics.total_pnl == pytest.approx(250.0)
    assert len(snap.daily_performance) == 2
    assert len(snap.calendar) == 2
    assert snap.available_symbols == ["SOL-PERP"]
    assert len(snap.distribution.wins) == 2


def test_recompute_calendar_roll_ups(scenario_trades):
    snap = recompute(scenario_trades)
    assert snap.calendar_stats.profit_days == 2
    assert snap.calendar_stats.total_pnl == pytest.approx(250.0)
    (june,) = snap.monthly_stats
    assert june.month == "2024-06"
    assert june.trades == 3
    assert snap.day_streaks.current_win_streak == 2
    assert snap.day_streaks.max_loss_streak == 0


def test_calendar_roll_ups_follow_filters():
    trades = [
        build_trade(-5.0, NOW - timedelta(days=40)),
        build_trade(-5.0, NOW - timedelta(days=2)),
        build_trade(10.0, NOW - timedelta(days=1)),
    ]
    snap = recompute(trades, DateRange.LAST_7_DAYS, now=NOW)
    assert snap.calendar_stats.loss_days == 1
    assert [m.month for m in snap.monthly_stats] == ["2024-06"]
    assert snap.day_streaks.max_loss_streak == 1
    assert snap.day_streaks.current_win_streak == 1


def test_recompute_empty():
    snap = recompute([])
    assert snap == DashboardSnapshot()


def test_recompute_ignores_open_positions(scenario_trades):
    open_trade = build_trade(999.0, status=TradeStatus.OPEN, trade_id="open")
    snap = recompute(scenario_trades + [open_trade])
    assert snap.metrics.total_trades == 3
    assert "open" not in {t.id for t in snap.trades}


def test_available_symbols_come_from_full_set():
    trades = [
        build_trade(1.0, NOW - timedelta(days=1), symbol="SOL-PERP"),
        build_trade(1.0, NOW - timedelta(days=1), symbol="JUP-PERP"),
    ]
    snap = recompute(trades, DateRange.ALL, "SOL-PERP", now=NOW)
    assert [t.symbol for t in snap.trades] == ["SOL-PERP"]
    assert snap.available_symbols == ["JUP-PERP", "SOL-PERP"]


def test_filter_changes_replace_snapshot(scenario_trades):
    board = Dashboard()
    first = board.set_trades(scenario_trades)
    second = board.set_symbol_filter("JUP-PERP")
    assert second is not first
    assert second.metrics.total_trades == 0
    assert first.metrics.total_trades == 3
    assert board.set_symbol_filter("all").metrics.total_trades == 3


def test_date_range_setter_records_range(scenario_trades):
    board = Dashboard()
    board.set_trades(scenario_trades)
    snap = board.set_date_range("7d")
    assert board.date_range == DateRange.LAST_7_DAYS
    assert snap.date_range == DateRange.LAST_7_DAYS


def test_failed_load_keeps_previous_state(scenario_trades, tmp_path):
    board = Dashboard(state_file=tmp_path / "state.json")
    board.load(_StaticSource(scenario_trades), DataSource.UPLOAD)
    before = board.snapshot

    with pytest.raises(TradeSourceError):
        board.load(_FailingSource(), DataSource.MOCK)

    assert board.snapshot is before
    assert board.all_trades == scenario_trades
    assert board.data_source == DataSource.UPLOAD


def test_persisted_state_holds_only_annotations_and_source(scenario_trades, tmp_path):
    path = tmp_path / "state.json"
    board = Dashboard(state_file=path)
    board.load(_StaticSource(scenario_trades), DataSource.UPLOAD)
    board.annotate("a", "chased the breakout")

    restored = Dashboard(state_file=path)
    assert restored.annotations.get("a") == "chased the breakout"
    assert restored.data_source == DataSource.UPLOAD
    assert restored.all_trades == []
    assert '"trades"' not in path.read_text(encoding="utf-8")


def test_annotations_survive_trade_replacement(scenario_trades):
    board = Dashboard()
    board.set_trades(scenario_trades)
    board.annotate("b", "revenge trade")
    board.set_trades([])
    assert board.annotations.get("b") == "revenge trade"
