"""
Trade producers.

The analytics core only needs a finished list of Trade records; where they
come from is behind the ``TradeSource`` protocol:

    MockTradeSource   synthetic perp trades from a seeded NumPy generator
    CsvTradeSource    round trips matched FIFO from a broker fill export
"""
from __future__ import annotations

import io
import logging
import uuid
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

import numpy as np
import pandas as pd

from models import Trade, TradeDirection, TradeStatus

logger = logging.getLogger(__name__)


class TradeSourceError(ValueError):
    """A trade producer could not deliver a valid trade collection."""


class TradeSource(Protocol):
    def load(self) -> List[Trade]:
        ...


# ── Synthetic trades ──────────────────────────────────────────────────────────────

# symbol -> (base price, volatility)
_SYMBOL_PRICES: Dict[str, tuple] = {
    "SOL-PERP":  (148.50, 0.08),
    "JUP-PERP":  (0.82, 0.12),
    "BONK-PERP": (0.000028, 0.25),
    "WIF-PERP":  (2.15, 0.18),
    "PYTH-PERP": (0.38, 0.15),
}
_LEVERAGES = [1, 2, 3, 5, 10, 20]

_HISTORY_DAYS = 90
_MIN_DURATION_MS = 5 * 60 * 1000
_MAX_DURATION_MS = 7 * 24 * 60 * 60 * 1000


class MockTradeSource:
    """
    Generate a self-consistent synthetic trade history.

    Trades are spread over the last 90 days and returned in ascending entry
    order, so the last element is the most recent trade.
    """

    def __init__(
        self,
        count: int = 150,
        seed: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.count = count
        self.seed = seed
        self.now = now

    def load(self) -> List[Trade]:
        rng = np.random.default_rng(self.seed)
        now = self.now or datetime.now(timezone.utc)
        symbols = list(_SYMBOL_PRICES)

        trades: List[Trade] = []
        for i in range(self.count):
            symbol = symbols[int(rng.integers(len(symbols)))]
            base, volatility = _SYMBOL_PRICES[symbol]
            direction = TradeDirection.LONG if rng.random() > 0.45 else TradeDirection.SHORT
            sign = 1.0 if direction == TradeDirection.LONG else -1.0
            leverage = float(_LEVERAGES[int(rng.integers(len(_LEVERAGES)))])
            size = float(rng.uniform(100, 5000))

            # Skewed slightly toward favourable moves
            price_move = (rng.random() - 0.45) * volatility
            entry_price = base * (1 + rng.uniform(-0.1, 0.1))
            exit_price = entry_price * (1 + price_move * sign)

            gross = (exit_price - entry_price) / entry_price * size * leverage * sign
            fees = size * leverage * float(rng.uniform(0.0005, 0.001))
            pnl = gross - fees

            # Evenly spaced entries, oldest first; the newest sits just before now
            days_ago = _HISTORY_DAYS * (self.count - i) / self.count
            entry_time = now - timedelta(days=days_ago) + timedelta(hours=float(rng.uniform(0, 12)))
            entry_time = min(entry_time, now)
            duration = int(rng.uniform(_MIN_DURATION_MS, _MAX_DURATION_MS))

            trades.append(
                Trade(
                    id=uuid.UUID(bytes=rng.bytes(16)).hex[:16],
                    symbol=symbol,
                    direction=direction,
                    status=TradeStatus.CLOSED,
                    entry_price=entry_price,
                    exit_price=exit_price,
                    size=size,
                    leverage=leverage,
                    pnl=pnl,
                    pnl_percentage=pnl / size * 100.0,
                    fees=fees,
                    entry_time=entry_time,
                    exit_time=entry_time + timedelta(milliseconds=duration),
                    duration=duration,
                )
            )

        logger.info("Generated %d mock trades (seed=%s)", len(trades), self.seed)
        return trades


# ── Fill-export parsing ───────────────────────────────────────────────────────────
# Maps canonical column names to the aliases that broker and backtest platforms
# may use in CSV exports.
_COLUMN_ALIASES: Dict[str, List[str]] = {
    "time":     ["time", "date", "datetime", "timestamp", "entry time", "order time"],
    "symbol":   ["symbol", "ticker", "instrument", "asset", "market"],
    "price":    ["price", "fill price", "execution price", "avg price", "avgprice"],
    "quantity": ["quantity", "qty", "shares", "size", "amount"],
    "fee":      ["fee", "fees", "commission", "order fee"],
}


def _normalize_columns(df: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, str]]:
    """
    Map export headers onto the canonical fill columns.

    Headers are compared case- and whitespace-insensitively. For each canonical
    column the first header (in file order) found among its aliases wins;
    later matches are left untouched.

    Returns:
        (renamed frame, {canonical column: original header}) for every
        canonical column that was found.
    """
    headers = {str(c).strip().lower(): c for c in df.columns}
    matched: Dict[str, str] = {}
    for canonical, aliases in _COLUMN_ALIASES.items():
        header = next((h for h in headers if h in aliases), None)
        if header is not None and headers[header] not in matched.values():
            matched[canonical] = headers[header]
    renamed = df.rename(columns={original: canonical for canonical, original in matched.items()})
    return renamed, matched


def _parse_round_trips(df: pd.DataFrame) -> List[Trade]:
    """
    Match individual fills into round-trip trades using FIFO queuing.

    A positive quantity is a buy and a negative quantity a sell. A fill whose
    sign opposes the oldest open entry for its symbol closes that entry;
    otherwise it opens a new position (long for buys, short for sells).

    P&L per round trip = (exit_price − entry_price) × quantity × direction − fees

    Args:
        df: Normalised DataFrame (column names already canonical).

    Returns:
        List of closed Trade objects in exit order.

    Raises:
        TradeSourceError: If required columns are missing or any fill leaves
            one of them blank.
    """
    required = {"time", "symbol", "price", "quantity"}
    missing = required - set(df.columns)
    if missing:
        raise TradeSourceError(
            f"CSV is missing required columns after normalisation: {sorted(missing)}. "
            f"Found columns: {list(df.columns)}"
        )

    df["time"] = pd.to_datetime(df["time"], utc=True)
    for col in ("price", "quantity"):
        df[col] = pd.to_numeric(df[col], errors="coerce").replace([np.inf, -np.inf], np.nan)

    # A blank cell would otherwise open or close a position that never existed
    incomplete = df[sorted(required)].isna().any(axis=1)
    if incomplete.any():
        # +2: one for the header, one for 1-based file lines
        lines = (incomplete[incomplete].index + 2).tolist()
        raise TradeSourceError(f"Fills with blank or non-numeric required fields on lines {lines}.")

    df = df.sort_values("time", kind="stable").reset_index(drop=True)
    has_fee = "fee" in df.columns

    # FIFO queue: symbol → list of open-position dicts
    open_positions: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    trades: List[Trade] = []

    for row in df.itertuples(index=False):
        symbol = str(row.symbol).strip()
        qty    = float(row.quantity)
        price  = float(row.price)
        ts     = pd.Timestamp(row.time).to_pydatetime()
        fee    = abs(float(row.fee)) if has_fee and pd.notna(row.fee) else 0.0

        if qty == 0:
            continue

        queue = open_positions[symbol]
        if queue and np.sign(qty) != np.sign(queue[0]["quantity"]):
            entry = queue.pop(0)
            direction = TradeDirection.LONG if entry["quantity"] > 0 else TradeDirection.SHORT
            sign = 1.0 if direction == TradeDirection.LONG else -1.0
            exit_qty = abs(qty)
            fees = entry["fee"] + fee
            pnl = (price - entry["entry_price"]) * exit_qty * sign - fees
            size = abs(entry["entry_price"] * exit_qty)

            trades.append(
                Trade(
                    id=f"{symbol}-{len(trades) + 1}",
                    symbol=symbol,
                    direction=direction,
                    entry_price=entry["entry_price"],
                    exit_price=price,
                    size=round(size, 4),
                    pnl=round(pnl, 4),
                    pnl_percentage=round(pnl / size * 100.0, 4) if size > 0 else 0.0,
                    fees=round(fees, 4),
                    entry_time=entry["entry_time"],
                    exit_time=ts,
                )
            )
        else:
            queue.append(
                {"entry_time": ts, "entry_price": price, "quantity": qty, "fee": fee}
            )

    return trades


class CsvTradeSource:
    """Round-trip trades from a CSV export of individual order fills."""

    def __init__(self, content: str) -> None:
        self.content = content

    def load(self) -> List[Trade]:
        try:
            df = pd.read_csv(io.StringIO(self.content))
        except ValueError as exc:
            raise TradeSourceError(f"Failed to parse CSV: {exc}") from exc

        df, matched = _normalize_columns(df)
        logger.info(
            "CSV parsed, columns mapped: %s",
            ", ".join(f"{original!r}->{canonical}" for canonical, original in matched.items()) or "none",
        )

        try:
            trades = _parse_round_trips(df)
        except TradeSourceError:
            raise
        except (ValueError, TypeError) as exc:
            raise TradeSourceError(f"Invalid fill data: {exc}") from exc

        if not trades:
            raise TradeSourceError(
                "No valid round-trip trades could be extracted.  "
                "Ensure the CSV contains matching opening and closing fills for at least one symbol."
            )

        logger.info(
            "Extracted %d round-trip trades across symbols: %s",
            len(trades),
            sorted({t.symbol for t in trades}),
        )
        return trades
