"""
Risk metrics derived from the daily equity series and the trade sequence.
"""
from __future__ import annotations

import math
from typing import List, Tuple

import numpy as np

from models import DailyPerformance, RiskMetrics, SummaryMetrics, Trade

TRADING_DAYS_PER_YEAR = 252

# Sortino is approximated from Sharpe rather than from downside deviation.
SORTINO_SHARPE_MULTIPLIER = 1.2

# Risk of ruin reported when the edge ratio shows no positive edge.
NO_EDGE_RISK_OF_RUIN = 95.0


def loss_streaks(trades: List[Trade]) -> Tuple[int, int]:
    """
    Walk trades in the given order and count consecutive losers (``pnl < 0``).

    Returns:
        (current streak at the last trade, longest streak seen).
    """
    current = 0
    longest = 0
    for trade in trades:
        if trade.pnl < 0:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return current, longest


def sharpe_ratio(day_pnl: np.ndarray) -> float:
    """Annualised Sharpe of daily PnL using the population standard deviation."""
    # a flat series has no volatility; np.std of it can still carry rounding noise
    if len(day_pnl) == 0 or np.ptp(day_pnl) == 0:
        return 0.0
    std = float(np.std(day_pnl))
    return float(np.mean(day_pnl)) / std * math.sqrt(TRADING_DAYS_PER_YEAR)


def risk_of_ruin(win_rate: float, average_win: float, average_loss: float) -> float:
    """
    Edge-ratio approximation of the probability of ruin, in percent.

    Args:
        win_rate:     Fraction of winning trades, 0-1.
        average_win:  Mean winning PnL.
        average_loss: Mean losing PnL as a positive number.
    """
    if average_loss == 0:
        return 0.0
    edge_ratio = (win_rate * average_win) / ((1.0 - win_rate) * average_loss)
    if edge_ratio <= 1:
        return NO_EDGE_RISK_OF_RUIN
    return max(0.0, min(100.0, 100.0 / edge_ratio ** 2))


def _pct(drawdown: float, high_water_mark: float) -> float:
    return drawdown / high_water_mark * 100.0 if high_water_mark > 0 else 0.0


def compute_risk_metrics(
    daily: List[DailyPerformance],
    trades: List[Trade],
    summary: SummaryMetrics,
) -> RiskMetrics:
    """
    Compute drawdown extremes, loss streaks and risk ratios.

    Args:
        daily:   Output of ``compute_daily_performance`` for the same trades.
        trades:  The filtered trades, in the order they were supplied.
        summary: Output of ``compute_summary_metrics`` for the same trades.

    Returns:
        RiskMetrics snapshot; all-zero for an empty set.
    """
    if not daily:
        return RiskMetrics()

    drawdown = np.array([d.drawdown for d in daily], dtype=np.float64)
    high_water = np.array([d.high_water_mark for d in daily], dtype=np.float64)
    day_pnl = np.array([d.pnl for d in daily], dtype=np.float64)

    # ── Drawdown ──────────────────────────────────────────────────────────────────
    # argmax picks the first day the deepest drawdown was reached
    worst = int(np.argmax(drawdown))
    max_drawdown = float(drawdown[worst])
    max_drawdown_pct = _pct(max_drawdown, float(high_water[worst])) if max_drawdown > 0 else 0.0

    current_drawdown = float(drawdown[-1])
    current_drawdown_pct = _pct(current_drawdown, float(high_water[-1]))

    # ── Ratios ────────────────────────────────────────────────────────────────────
    sharpe = sharpe_ratio(day_pnl)
    calmar = summary.total_pnl / max_drawdown if max_drawdown > 0 else 0.0

    current_streak, longest_streak = loss_streaks(trades)

    return RiskMetrics(
        risk_of_ruin=risk_of_ruin(
            summary.win_rate / 100.0, summary.average_win, summary.average_loss
        ),
        max_drawdown=max_drawdown,
        max_drawdown_percentage=max_drawdown_pct,
        current_drawdown=current_drawdown,
        current_drawdown_percentage=current_drawdown_pct,
        sharpe_ratio=sharpe,
        sortino_ratio=sharpe * SORTINO_SHARPE_MULTIPLIER,
        calmar_ratio=calmar,
        consecutive_losses=current_streak,
        max_consecutive_losses=longest_streak,
    )
