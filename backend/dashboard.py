"""
Dashboard state and the recompute pipeline.

``recompute`` is a pure function from (trade set, filters) to a complete
DashboardSnapshot. ``Dashboard`` holds the inputs and the current snapshot and
replaces the snapshot wholesale whenever an input changes.
"""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from analytics import (
    compute_calendar,
    compute_calendar_stats,
    compute_daily_performance,
    compute_day_streaks,
    compute_monthly_stats,
    compute_summary_metrics,
    compute_trade_distribution,
)
from annotations import AnnotationStore, load_state, save_state
from filters import available_symbols, closed_trades, filter_trades
from models import (
    ALL_SYMBOLS,
    DashboardSnapshot,
    DataSource,
    DateRange,
    PersistedState,
    Trade,
)
from risk import compute_risk_metrics
from sources import TradeSource, TradeSourceError

logger = logging.getLogger(__name__)


def recompute(
    all_trades: List[Trade],
    date_range: DateRange = DateRange.ALL,
    symbol: str = ALL_SYMBOLS,
    now: Optional[datetime] = None,
) -> DashboardSnapshot:
    """
    Run the full analytics pipeline over the current trade set.

    Open positions are dropped, the filter runs once, and each aggregator
    consumes the filtered list independently. The calendar roll-ups (day
    counts, months, streaks) are read off the calendar days.
    """
    trades = filter_trades(closed_trades(all_trades), date_range, symbol, now=now)

    metrics = compute_summary_metrics(trades)
    daily = compute_daily_performance(trades)
    calendar = compute_calendar(trades)

    return DashboardSnapshot(
        date_range=date_range,
        symbol_filter=symbol,
        trades=trades,
        available_symbols=available_symbols(all_trades),
        metrics=metrics,
        daily_performance=daily,
        risk_metrics=compute_risk_metrics(daily, trades, metrics),
        calendar=calendar,
        calendar_stats=compute_calendar_stats(calendar),
        monthly_stats=compute_monthly_stats(calendar),
        day_streaks=compute_day_streaks(calendar),
        distribution=compute_trade_distribution(trades),
    )


class Dashboard:
    """
    Mutable holder of the full trade set, active filters and annotations.

    Only annotations and the data source are written to ``state_file``; trades
    and derived numbers are always rebuilt.
    """

    def __init__(self, state_file: Optional[Path] = None) -> None:
        self.state_file = state_file
        persisted = load_state(state_file) if state_file else PersistedState()

        self.annotations = AnnotationStore(persisted.annotations)
        self.data_source: DataSource = persisted.data_source
        self.date_range: DateRange = DateRange.ALL
        self.symbol_filter: str = ALL_SYMBOLS
        self._all_trades: List[Trade] = []
        self.snapshot: DashboardSnapshot = DashboardSnapshot()

    @property
    def all_trades(self) -> List[Trade]:
        return list(self._all_trades)

    def _refresh(self) -> DashboardSnapshot:
        self.snapshot = recompute(self._all_trades, self.date_range, self.symbol_filter)
        logger.info(
            "Recomputed dashboard: %d of %d trades (range=%s, symbol=%s)",
            len(self.snapshot.trades),
            len(self._all_trades),
            self.date_range.value,
            self.symbol_filter,
        )
        return self.snapshot

    def set_trades(self, trades: List[Trade]) -> DashboardSnapshot:
        self._all_trades = list(trades)
        return self._refresh()

    def set_date_range(self, date_range: DateRange) -> DashboardSnapshot:
        self.date_range = DateRange(date_range)
        return self._refresh()

    def set_symbol_filter(self, symbol: str) -> DashboardSnapshot:
        self.symbol_filter = symbol
        return self._refresh()

    def load(self, source: TradeSource, data_source: DataSource) -> DashboardSnapshot:
        """
        Replace the trade set from a producer.

        Raises:
            TradeSourceError: The producer failed; current trades and snapshot
                are left untouched.
        """
        try:
            trades = source.load()
        except TradeSourceError as exc:
            logger.warning("Trade source %s failed: %s", type(source).__name__, exc)
            raise

        self.data_source = data_source
        self.save()
        return self.set_trades(trades)

    def annotate(self, trade_id: str, text: str) -> None:
        self.annotations.set(trade_id, text)
        self.save()

    def save(self) -> None:
        if self.state_file is None:
            return
        save_state(
            self.state_file,
            PersistedState(annotations=self.annotations.to_dict(), data_source=self.data_source),
        )
