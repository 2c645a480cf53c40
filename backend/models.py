"""
Pydantic data models for the Trade Dashboard API.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_serializer,
    field_validator,
    model_validator,
)


class TradeDirection(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    LIQUIDATED = "LIQUIDATED"


class DateRange(str, Enum):
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    ALL = "all"

    @property
    def days(self) -> Optional[int]:
        """Window length in days, or None for the unbounded range."""
        return {"7d": 7, "30d": 30, "90d": 90}.get(self.value)


class DataSource(str, Enum):
    MOCK = "mock"
    UPLOAD = "upload"


ALL_SYMBOLS = "all"


def _as_utc(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class Trade(BaseModel):
    """A closed (or still open) position with realised PnL net of fees."""

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    direction: TradeDirection
    status: TradeStatus = TradeStatus.CLOSED
    entry_price: float
    exit_price: Optional[float] = None
    size: float                  # quote-currency notional
    leverage: float = 1.0
    pnl: float                   # net of fees
    # derived from pnl / size when omitted
    pnl_percentage: float = Field(default=None, validate_default=True)
    fees: float = 0.0
    entry_time: datetime
    exit_time: Optional[datetime] = None
    # milliseconds; derived from the timestamps when omitted
    duration: Optional[int] = Field(default=None, validate_default=True)

    # Field validators run in declaration order, so info.data already holds
    # the parsed pnl/size and timestamps when the derived fields are checked.

    @field_validator("pnl_percentage", mode="before")
    @classmethod
    def _derive_pnl_percentage(cls, value, info: ValidationInfo):
        if value is not None:
            return value
        pnl, size = info.data.get("pnl"), info.data.get("size")
        if pnl is None or size is None:
            return value
        return pnl / size * 100.0 if size != 0 else 0.0

    @field_validator("entry_time", "exit_time")
    @classmethod
    def _normalise_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @field_validator("duration")
    @classmethod
    def _derive_duration(cls, value: Optional[int], info: ValidationInfo) -> Optional[int]:
        entry, exit_ = info.data.get("entry_time"), info.data.get("exit_time")
        if value is None and entry is not None and exit_ is not None:
            return (exit_ - entry) // timedelta(milliseconds=1)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "Trade":
        if self.exit_time is not None and self.exit_time < self.entry_time:
            raise ValueError("exit_time must not precede entry_time")
        return self

    @property
    def is_closed(self) -> bool:
        return self.status != TradeStatus.OPEN and self.exit_time is not None

    @property
    def notional(self) -> float:
        return self.size * self.leverage


# ── Derived snapshots ─────────────────────────────────────────────────────────────

class SummaryMetrics(BaseModel):
    total_pnl: float = 0.0
    total_pnl_percentage: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0             # percent, 0-100
    profit_factor: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    average_trade_duration: float = 0.0   # milliseconds
    total_volume: float = 0.0
    total_fees: float = 0.0
    long_trades: int = 0
    short_trades: int = 0
    expectancy: float = 0.0

    @property
    def has_infinite_profit_factor(self) -> bool:
        return math.isinf(self.profit_factor)

    # profit_factor is math.inf when there are winners but no losses;
    # JSON has no infinity literal
    @field_serializer("profit_factor", when_used="json")
    def _serialize_profit_factor(self, value: float) -> Union[float, str]:
        return "Infinity" if math.isinf(value) else value


class DailyPerformance(BaseModel):
    date: str                 # YYYY-MM-DD (UTC)
    pnl: float
    trades: int
    volume: float
    fees: float
    cumulative_pnl: float
    high_water_mark: float
    drawdown: float


class RiskMetrics(BaseModel):
    risk_of_ruin: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_percentage: float = 0.0
    current_drawdown: float = 0.0
    current_drawdown_percentage: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    calmar_ratio: float = 0.0
    consecutive_losses: int = 0
    max_consecutive_losses: int = 0


class CalendarDay(BaseModel):
    date: str
    pnl: float
    trades: int
    is_profit: bool
    intensity: int            # heat-map bucket, 0-4


class CalendarStats(BaseModel):
    profit_days: int = 0
    loss_days: int = 0
    total_pnl: float = 0.0


class MonthlyStats(BaseModel):
    month: str                # YYYY-MM
    pnl: float
    trades: int
    profit_days: int
    loss_days: int


class DayStreaks(BaseModel):
    """Runs of consecutive profitable / losing calendar days; flat days extend neither."""
    current_win_streak: int = 0
    current_loss_streak: int = 0
    max_win_streak: int = 0
    max_loss_streak: int = 0


class DistributionPoint(BaseModel):
    x: int
    pnl: float
    size: float
    symbol: str
    direction: TradeDirection


class TradeDistribution(BaseModel):
    """Win/loss scatter data plus the shape of the per-trade PnL distribution."""
    wins: List[DistributionPoint] = []
    losses: List[DistributionPoint] = []
    skewness: float = 0.0


class DashboardSnapshot(BaseModel):
    date_range: DateRange = DateRange.ALL
    symbol_filter: str = ALL_SYMBOLS
    trades: List[Trade] = []
    available_symbols: List[str] = []
    metrics: SummaryMetrics = SummaryMetrics()
    daily_performance: List[DailyPerformance] = []
    risk_metrics: RiskMetrics = RiskMetrics()
    calendar: List[CalendarDay] = []
    calendar_stats: CalendarStats = CalendarStats()
    monthly_stats: List[MonthlyStats] = []
    day_streaks: DayStreaks = DayStreaks()
    distribution: TradeDistribution = TradeDistribution()


# ── Persistence ───────────────────────────────────────────────────────────────────

class PersistedState(BaseModel):
    """The only dashboard state that survives a restart."""
    annotations: Dict[str, str] = {}
    data_source: DataSource = DataSource.MOCK


# ── Request / response bodies ─────────────────────────────────────────────────────

class FilterUpdate(BaseModel):
    date_range: Optional[DateRange] = None
    symbol: Optional[str] = None


class TradesUpload(BaseModel):
    trades: List[Trade]


class AnnotationBody(BaseModel):
    text: str


class Annotation(BaseModel):
    trade_id: str
    text: str
