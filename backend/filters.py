"""
Trade selection ahead of aggregation: closed-trade gate, date window and symbol.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from models import ALL_SYMBOLS, DateRange, Trade


def closed_trades(trades: Iterable[Trade]) -> List[Trade]:
    """Drop open positions; only realised PnL feeds the metrics."""
    return [t for t in trades if t.is_closed]


def filter_trades(
    trades: List[Trade],
    date_range: DateRange = DateRange.ALL,
    symbol: str = ALL_SYMBOLS,
    now: Optional[datetime] = None,
) -> List[Trade]:
    """
    Reduce a trade collection to those matching a date window and symbol.

    Args:
        trades:     Full trade collection, in any order.
        date_range: Window ending at ``now``; ``DateRange.ALL`` applies no bound.
        symbol:     Instrument to keep, or ``"all"``.
        now:        Reference instant (defaults to the current UTC time).

    Returns:
        A new list holding the matching trades in their original order.
    """
    selected = list(trades)

    days = DateRange(date_range).days
    if days is not None:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        cutoff = now - timedelta(days=days)
        selected = [t for t in selected if cutoff <= t.entry_time <= now]

    if symbol != ALL_SYMBOLS:
        selected = [t for t in selected if t.symbol == symbol]

    return selected


def available_symbols(trades: Iterable[Trade]) -> List[str]:
    return sorted({t.symbol for t in trades})
