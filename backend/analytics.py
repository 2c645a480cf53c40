"""
Core analytics computation for a filtered set of closed trades.

Aggregations group by the UTC calendar day of each trade's entry time and
run on NumPy arrays / pandas frames; sequential state (cumulative PnL,
high-water mark) is expressed as NumPy accumulations, i.e. strict
left-to-right scans.
"""
from __future__ import annotations

import math
from typing import List, Optional

import numpy as np
import pandas as pd
from scipy import stats

from models import (
    CalendarDay,
    CalendarStats,
    DailyPerformance,
    DayStreaks,
    DistributionPoint,
    MonthlyStats,
    SummaryMetrics,
    Trade,
    TradeDirection,
    TradeDistribution,
)


# Profit factor reported when there are winners and no losing PnL at all.
INFINITE_PROFIT_FACTOR = math.inf

# Calendar heat-map buckets run 0 .. _MAX_INTENSITY.
_MAX_INTENSITY = 4
_INTENSITY_SCALE = 5

# Months listed in the monthly breakdown.
MONTHLY_STATS_LIMIT = 6


def day_key(trade: Trade) -> str:
    """ISO calendar day (UTC) of the trade's entry."""
    return trade.entry_time.date().isoformat()


def _daily_frame(trades: List[Trade]) -> pd.DataFrame:
    """One row per trade, keyed by entry day; the grouping input for daily views."""
    return pd.DataFrame(
        {
            "date":   [day_key(t) for t in trades],
            "pnl":    [t.pnl for t in trades],
            "volume": [t.notional for t in trades],
            "fees":   [t.fees for t in trades],
        }
    )


def compute_summary_metrics(trades: List[Trade]) -> SummaryMetrics:
    """
    Aggregate win/loss, volume and fee statistics over a trade set.

    Winners are trades with ``pnl > 0``; everything else (including break-even)
    counts as a loser.

    Args:
        trades: Filtered, closed trades.

    Returns:
        SummaryMetrics snapshot; all-zero for an empty set.
    """
    n = len(trades)
    if n == 0:
        return SummaryMetrics()

    pnl = np.array([t.pnl for t in trades], dtype=np.float64)
    wins = pnl[pnl > 0]
    losses = pnl[pnl <= 0]

    gross_profit = float(np.sum(wins))
    gross_loss = abs(float(np.sum(losses)))
    total_pnl = gross_profit - gross_loss

    total_volume = float(sum(t.notional for t in trades))
    total_fees = float(sum(t.fees for t in trades))

    win_rate = len(wins) / n * 100.0

    # ── Profit factor ─────────────────────────────────────────────────────────────
    if gross_loss > 0:
        profit_factor = gross_profit / gross_loss
    elif gross_profit > 0:
        profit_factor = INFINITE_PROFIT_FACTOR
    else:
        profit_factor = 0.0

    average_win = gross_profit / len(wins) if len(wins) else 0.0
    average_loss = gross_loss / len(losses) if len(losses) else 0.0
    expectancy = win_rate / 100.0 * average_win - (1.0 - win_rate / 100.0) * average_loss

    durations = [t.duration for t in trades if t.duration is not None]

    return SummaryMetrics(
        total_pnl=total_pnl,
        total_pnl_percentage=total_pnl / total_volume * 100.0 if total_volume > 0 else 0.0,
        total_trades=n,
        winning_trades=int(len(wins)),
        losing_trades=int(len(losses)),
        win_rate=win_rate,
        profit_factor=profit_factor,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        average_win=average_win,
        average_loss=average_loss,
        largest_win=float(np.max(wins)) if len(wins) else 0.0,
        largest_loss=float(np.min(losses)) if len(losses) else 0.0,
        average_trade_duration=float(np.mean(durations)) if durations else 0.0,
        total_volume=total_volume,
        total_fees=total_fees,
        long_trades=sum(1 for t in trades if t.direction == TradeDirection.LONG),
        short_trades=sum(1 for t in trades if t.direction == TradeDirection.SHORT),
        expectancy=expectancy,
    )


def compute_daily_performance(trades: List[Trade]) -> List[DailyPerformance]:
    """
    Build the day-ordered equity series with running high-water mark and drawdown.

    The high-water mark starts at zero, so a book that opens with losses is
    already in drawdown on its first day.

    Args:
        trades: Filtered, closed trades.

    Returns:
        One DailyPerformance per day with at least one trade, ascending by date.
    """
    if not trades:
        return []

    daily = _daily_frame(trades).groupby("date", sort=True).agg(
        pnl=("pnl", "sum"),
        trades=("pnl", "size"),
        volume=("volume", "sum"),
        fees=("fees", "sum"),
    )

    # ── Running state ─────────────────────────────────────────────────────────────
    day_pnl: np.ndarray = daily["pnl"].to_numpy(dtype=np.float64)
    cumulative: np.ndarray = np.cumsum(day_pnl)
    high_water: np.ndarray = np.maximum.accumulate(np.maximum(cumulative, 0.0))
    drawdown: np.ndarray = high_water - cumulative

    return [
        DailyPerformance(
            date=str(date),
            pnl=float(day_pnl[i]),
            trades=int(row.trades),
            volume=float(row.volume),
            fees=float(row.fees),
            cumulative_pnl=float(cumulative[i]),
            high_water_mark=float(high_water[i]),
            drawdown=float(drawdown[i]),
        )
        for i, (date, row) in enumerate(daily.iterrows())
    ]


def compute_calendar(trades: List[Trade]) -> List[CalendarDay]:
    """
    Bucket trades per day for the calendar heat-map.

    Intensity is normalised against the largest absolute day PnL in the set
    (floored at 1) and capped at 4.
    """
    if not trades:
        return []

    daily = _daily_frame(trades).groupby("date", sort=True).agg(
        pnl=("pnl", "sum"),
        trades=("pnl", "size"),
    )
    abs_pnl: np.ndarray = np.abs(daily["pnl"].to_numpy(dtype=np.float64))
    max_pnl = max(float(np.max(abs_pnl)), 1.0)
    intensity = np.floor(np.minimum(_MAX_INTENSITY, abs_pnl / max_pnl * _INTENSITY_SCALE))

    return [
        CalendarDay(
            date=str(date),
            pnl=float(row.pnl),
            trades=int(row.trades),
            is_profit=bool(row.pnl >= 0),
            intensity=int(intensity[i]),
        )
        for i, (date, row) in enumerate(daily.iterrows())
    ]


def compute_calendar_stats(calendar: List[CalendarDay]) -> CalendarStats:
    """Profit/loss day counts and total PnL across the calendar; flat days count as neither."""
    pnl = np.array([d.pnl for d in calendar], dtype=np.float64)
    return CalendarStats(
        profit_days=int(np.sum(pnl > 0)),
        loss_days=int(np.sum(pnl < 0)),
        total_pnl=float(np.sum(pnl)),
    )


def compute_monthly_stats(
    calendar: List[CalendarDay], limit: Optional[int] = MONTHLY_STATS_LIMIT
) -> List[MonthlyStats]:
    """
    Roll calendar days up into YYYY-MM buckets.

    Args:
        calendar: Output of ``compute_calendar``.
        limit: Keep only the most recent ``limit`` months; None keeps all.

    Returns:
        MonthlyStats, newest month first.
    """
    if not calendar:
        return []

    frame = pd.DataFrame(
        {
            "month":  [d.date[:7] for d in calendar],
            "pnl":    [d.pnl for d in calendar],
            "trades": [d.trades for d in calendar],
        }
    )
    frame["profit"] = frame["pnl"] > 0
    frame["loss"] = frame["pnl"] < 0
    monthly = frame.groupby("month").agg(
        pnl=("pnl", "sum"),
        trades=("trades", "sum"),
        profit_days=("profit", "sum"),
        loss_days=("loss", "sum"),
    ).sort_index(ascending=False)
    if limit is not None:
        monthly = monthly.head(limit)

    return [
        MonthlyStats(
            month=str(month),
            pnl=float(row.pnl),
            trades=int(row.trades),
            profit_days=int(row.profit_days),
            loss_days=int(row.loss_days),
        )
        for month, row in monthly.iterrows()
    ]


def compute_day_streaks(calendar: List[CalendarDay]) -> DayStreaks:
    """Win/loss day streaks scanned oldest to newest; a flat day leaves both runs as they are."""
    current_win = current_loss = max_win = max_loss = 0
    for day in sorted(calendar, key=lambda d: d.date):
        if day.pnl > 0:
            current_win += 1
            current_loss = 0
            max_win = max(max_win, current_win)
        elif day.pnl < 0:
            current_loss += 1
            current_win = 0
            max_loss = max(max_loss, current_loss)

    return DayStreaks(
        current_win_streak=current_win,
        current_loss_streak=current_loss,
        max_win_streak=max_win,
        max_loss_streak=max_loss,
    )


def compute_trade_distribution(trades: List[Trade]) -> TradeDistribution:
    """Split trades into win/loss scatter points and measure PnL skew."""
    def _points(group: List[Trade]) -> List[DistributionPoint]:
        return [
            DistributionPoint(
                x=i + 1, pnl=t.pnl, size=t.size, symbol=t.symbol, direction=t.direction
            )
            for i, t in enumerate(group)
        ]

    pnl = np.array([t.pnl for t in trades], dtype=np.float64)
    skewness = float(stats.skew(pnl)) if len(pnl) > 2 else 0.0
    # constant series have undefined skew
    if not np.isfinite(skewness):
        skewness = 0.0

    return TradeDistribution(
        wins=_points([t for t in trades if t.pnl > 0]),
        losses=_points([t for t in trades if t.pnl <= 0]),
        skewness=skewness,
    )
