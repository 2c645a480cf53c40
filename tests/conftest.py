"""Shared pytest fixtures."""
from datetime import datetime, timedelta, timezone

import pytest

from models import Trade, TradeDirection, TradeStatus

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)
D1 = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)
D2 = datetime(2024, 6, 2, 14, 0, tzinfo=timezone.utc)


def build_trade(
    pnl: float,
    entry_time: datetime = D1,
    symbol: str = "SOL-PERP",
    direction: TradeDirection = TradeDirection.LONG,
    size: float = 1000.0,
    leverage: float = 2.0,
    fees: float = 1.0,
    trade_id: str = None,
    status: TradeStatus = TradeStatus.CLOSED,
    hold: timedelta = timedelta(hours=1),
) -> Trade:
    return Trade(
        id=trade_id or f"{symbol}-{entry_time.isoformat()}-{pnl}",
        symbol=symbol,
        direction=direction,
        status=status,
        entry_price=100.0,
        exit_price=100.0 + pnl / 10,
        size=size,
        leverage=leverage,
        pnl=pnl,
        pnl_percentage=pnl / size * 100,
        fees=fees,
        entry_time=entry_time,
        exit_time=None if status == TradeStatus.OPEN else entry_time + hold,
    )


@pytest.fixture
def make_trade():
    return build_trade


@pytest.fixture
def scenario_trades():
    """Two winners and a loser over two days."""
    return [
        build_trade(100.0, D1, trade_id="a"),
        build_trade(-50.0, D1 + timedelta(hours=2), trade_id="b"),
        build_trade(200.0, D2, trade_id="c", direction=TradeDirection.SHORT),
    ]
