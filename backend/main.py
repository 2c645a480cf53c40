"""
Trade Dashboard API — FastAPI backend.

Endpoints
---------
GET  /health                   Health check.
GET  /dashboard                Current snapshot (metrics, equity series, risk, calendar).
GET  /symbols                  Distinct symbols in the full trade set.
PUT  /filters                  Change date range and/or symbol filter.
POST /trades                   Replace the trade set with a JSON trade list.
POST /upload                   Parse a fill-export CSV → round-trip trades.
POST /refresh                  Regenerate the synthetic trade history.
GET  /annotations/{trade_id}   Read a trade note.
PUT  /annotations/{trade_id}   Write a trade note.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from dashboard import Dashboard
from models import (
    Annotation,
    AnnotationBody,
    DashboardSnapshot,
    DataSource,
    FilterUpdate,
    TradesUpload,
)
from sources import CsvTradeSource, MockTradeSource, TradeSourceError

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(levelname)s  %(name)s  %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Trade Dashboard API",
    description="Derives summary, equity, risk and calendar analytics from closed trades.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_dashboard: Optional[Dashboard] = None
# sync dependencies run on the threadpool, so first use can race
_dashboard_lock = threading.Lock()


def _mock_source() -> MockTradeSource:
    return MockTradeSource(count=settings.mock_trade_count, seed=settings.mock_seed)


def get_dashboard() -> Dashboard:
    """Process-wide dashboard, restored from the state file on first use."""
    global _dashboard
    if _dashboard is not None:
        return _dashboard
    with _dashboard_lock:
        if _dashboard is None:
            board = Dashboard(state_file=settings.state_file)
            logger.info(
                "Dashboard restored from %s: %d annotations, data source %s",
                settings.state_file,
                len(board.annotations),
                board.data_source.value,
            )
            # Uploaded trades are not persisted; only the mock book can be rebuilt
            if board.data_source == DataSource.MOCK:
                board.load(_mock_source(), DataSource.MOCK)
            _dashboard = board
    return _dashboard


# ── Routes ─────────────────────────────────────────────────────────────────────────

@app.get("/health")
def health() -> Dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}


@app.get("/dashboard", response_model=DashboardSnapshot)
def read_dashboard(dashboard: Dashboard = Depends(get_dashboard)) -> DashboardSnapshot:
    return dashboard.snapshot


@app.get("/symbols", response_model=List[str])
def read_symbols(dashboard: Dashboard = Depends(get_dashboard)) -> List[str]:
    return dashboard.snapshot.available_symbols


@app.put("/filters", response_model=DashboardSnapshot)
def update_filters(
    update: FilterUpdate, dashboard: Dashboard = Depends(get_dashboard)
) -> DashboardSnapshot:
    """Apply a new date range and/or symbol filter and recompute everything."""
    if update.date_range is not None:
        dashboard.set_date_range(update.date_range)
    if update.symbol is not None:
        dashboard.set_symbol_filter(update.symbol)
    return dashboard.snapshot


@app.post("/trades", response_model=DashboardSnapshot)
def replace_trades(
    upload: TradesUpload, dashboard: Dashboard = Depends(get_dashboard)
) -> DashboardSnapshot:
    """Replace the full trade set with an externally produced trade list."""
    if not upload.trades:
        raise HTTPException(status_code=400, detail="Trade list is empty.")

    logger.info("Replacing trade set with %d uploaded trades", len(upload.trades))
    dashboard.data_source = DataSource.UPLOAD
    dashboard.save()
    return dashboard.set_trades(upload.trades)


@app.post("/upload", response_model=DashboardSnapshot)
async def upload_csv(
    file: UploadFile = File(...), dashboard: Dashboard = Depends(get_dashboard)
) -> DashboardSnapshot:
    """
    Accept a fill-export CSV, match fills into round trips and load them.

    The endpoint is tolerant of different column naming conventions used by
    brokers and backtesting platforms.
    """
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are accepted.")

    raw = await file.read()
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"CSV is not valid UTF-8: {exc}")

    try:
        return dashboard.load(CsvTradeSource(content), DataSource.UPLOAD)
    except TradeSourceError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@app.post("/refresh", response_model=DashboardSnapshot)
def refresh(dashboard: Dashboard = Depends(get_dashboard)) -> DashboardSnapshot:
    """Discard the current trade set and generate a fresh synthetic history."""
    return dashboard.load(_mock_source(), DataSource.MOCK)


@app.get("/annotations/{trade_id}", response_model=Annotation)
def read_annotation(trade_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> Annotation:
    text = dashboard.annotations.get(trade_id)
    if text is None:
        raise HTTPException(status_code=404, detail=f"No annotation for trade {trade_id}.")
    return Annotation(trade_id=trade_id, text=text)


@app.put("/annotations/{trade_id}", response_model=Annotation)
def write_annotation(
    trade_id: str, body: AnnotationBody, dashboard: Dashboard = Depends(get_dashboard)
) -> Annotation:
    dashboard.annotate(trade_id, body.text)
    return Annotation(trade_id=trade_id, text=body.text)
