"""
FastAPI Application - CoinWatch Dashboard API

Serves live cryptocurrency prices for a personal watch-list, aggregated from
Binance and Kraken spot markets, plus an optional AI market analysis.

Supported Exchanges:
    - Binance Spot (default primary)
    - Kraken Spot

Features:
    - Live dashboard snapshot, refreshed every 5s (Binance) or 10s (Kraken)
    - Automatic fallback to the other exchange per coin
    - Watch-list, currency (USD/EUR) and exchange selection
    - Gemini market sentiment analysis

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000

Docs:
    - Swagger: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import List, Optional
from contextlib import asynccontextmanager
import asyncio

from core.config import settings, validate_configuration
from core.errors import AnalysisError, WatchListError
from core.exchange_manager import ExchangeManager
from core.logging import logger
from core.schemas import Currency, Exchange, MarketAnalysis, MarketSnapshot
from core.symbols import SYMBOL_PATTERN
from core.utils.time import current_utc_datetime
from services.dashboard import SNAPSHOT_TOPIC, DashboardSession
from services.market_data import MarketDataService


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    # Startup
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        await manager.initialize_all()
        await session.start()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    # Shutdown
    logger.info("=== Shutting Down ===")
    try:
        await session.stop()
        await manager.shutdown_all()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="CoinWatch Dashboard API",
    description=(
        "Live cryptocurrency prices for a personal watch-list.\n\n"
        "**Supported Exchanges:** Binance Spot, Kraken Spot\n\n"
        "## REST Endpoints\n"
        "- `GET /snapshot` - Latest dashboard snapshot\n"
        "- `GET /snapshot/initial` - Placeholder snapshot (no network)\n"
        "- `GET /snapshot/live` - One live aggregation for ad-hoc parameters\n"
        "- `GET|POST /watchlist`, `DELETE /watchlist/{symbol}` - Watch-list management\n"
        "- `GET|PUT /settings` - Display currency and selected exchange\n"
        "- `GET|POST /analysis` - Gemini market sentiment\n"
        "- `GET /exchanges` - List supported exchanges\n"
        "- `GET /health` - Health check\n\n"
        "## WebSocket Streams\n"
        "- `ws://{host}/ws/snapshots` - Every published dashboard snapshot\n"
        "\n"
        "All WebSocket messages are JSON objects: `{\"type\": \"snapshot\", \"data\": {...}}`.\n"
        "Clients should handle reconnects on disconnect."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

manager = ExchangeManager()  # Global exchange manager
service = MarketDataService(manager)
session = DashboardSession(service)


# ============================================
# Request Models
# ============================================

class WatchListAdd(BaseModel):
    symbol: str = Field(..., description="Ticker symbol to add (e.g., SOL)")


class SettingsUpdate(BaseModel):
    currency: Optional[Currency] = None
    exchange: Optional[Exchange] = None


def _parse_symbols(symbols: Optional[str]) -> List[str]:
    """Parse a comma-separated symbol list (uppercased, de-duplicated)."""
    if symbols is None:
        return list(session.watchlist.symbols)

    parsed: List[str] = []
    for raw in symbols.split(","):
        symbol = raw.strip().upper()
        if not symbol or symbol in parsed:
            continue
        if not SYMBOL_PATTERN.match(symbol):
            raise HTTPException(status_code=400, detail=f"Invalid symbol: {raw.strip()}")
        parsed.append(symbol)
    return parsed


def _settings_payload() -> dict:
    return {
        "currency": session.currency.value,
        "exchange": session.exchange.value,
        "poll_interval": session.poller.interval_for(session.exchange),
        "analysis_enabled": service.analyzer.enabled
    }


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """API information and available exchanges."""
    return {
        "name": "CoinWatch Dashboard API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "exchanges": manager.list_exchanges()
    }


@app.get("/health", tags=["System"])
async def health_check():
    """Health check - tests connectivity to all exchanges."""
    health = await manager.health_check_all()
    return {
        "status": "healthy" if all(health.values()) else "degraded",
        "exchanges": health,
        "polling": session.is_running
    }


@app.get("/exchanges", tags=["System"])
async def list_exchanges():
    """List all supported exchanges and their capabilities."""
    return {
        "exchanges": [
            {
                "name": name,
                "capabilities": manager.get_exchange_capabilities(name),
                "poll_interval": session.poller.interval_for(Exchange(name.upper()))
            }
            for name in manager.list_exchanges()
        ]
    }


# ============================================
# Snapshot Endpoints
# ============================================

@app.get("/snapshot", response_model=MarketSnapshot, tags=["Market Data"])
async def get_snapshot():
    """
    Latest snapshot of the dashboard session.

    Before the first poll cycle settles this is the placeholder snapshot
    (`is_placeholder: true`, zero prices).
    """
    return session.snapshot


@app.get("/snapshot/initial", response_model=MarketSnapshot, tags=["Market Data"])
async def get_initial_snapshot(
    currency: Optional[Currency] = Query(default=None, description="Display currency (USD or EUR)"),
    symbols: Optional[str] = Query(default=None, description="Comma-separated symbols (defaults to the watch-list)")
):
    """
    Placeholder snapshot for a watch-list, computed without any network call.

    Example:
        GET /snapshot/initial?currency=EUR&symbols=BTC,ETH
    """
    currency = currency or session.currency
    symbol_list = _parse_symbols(symbols)
    return MarketSnapshot(
        currency=currency,
        exchange=session.exchange,
        symbols=symbol_list,
        coins=service.get_initial_snapshot(currency, symbol_list),
        generated_at=current_utc_datetime(),
        is_placeholder=True
    )


@app.get("/snapshot/live", response_model=MarketSnapshot, tags=["Market Data"])
async def get_live_snapshot(
    currency: Optional[Currency] = Query(default=None, description="Display currency (USD or EUR)"),
    exchange: Optional[Exchange] = Query(default=None, description="Primary exchange (BINANCE or KRAKEN)"),
    symbols: Optional[str] = Query(default=None, description="Comma-separated symbols (defaults to the watch-list)")
):
    """
    Run one live aggregation cycle for ad-hoc parameters.

    Symbols that neither exchange can serve are omitted from `coins`.

    Example:
        GET /snapshot/live?currency=EUR&exchange=KRAKEN&symbols=BTC,ETH,DOGE
    """
    currency = currency or session.currency
    exchange = exchange or session.exchange
    symbol_list = _parse_symbols(symbols)
    coins = await service.poll_snapshot(currency, symbol_list, exchange)
    return MarketSnapshot(
        currency=currency,
        exchange=exchange,
        symbols=symbol_list,
        coins=coins,
        generated_at=current_utc_datetime()
    )


# ============================================
# Dashboard State Endpoints
# ============================================

@app.get("/watchlist", tags=["Dashboard"])
async def get_watchlist():
    return {"symbols": list(session.watchlist.symbols)}


@app.post("/watchlist", tags=["Dashboard"])
async def add_to_watchlist(request: WatchListAdd):
    """
    Add a symbol to the watch-list.

    The symbol is trimmed and uppercased. Duplicates are rejected with 400.
    """
    symbols = await session.add_symbol(request.symbol)
    return {"symbols": list(symbols)}


@app.delete("/watchlist/{symbol}", tags=["Dashboard"])
async def remove_from_watchlist(symbol: str):
    """Remove a symbol. The last remaining symbol cannot be removed (400)."""
    symbols = await session.remove_symbol(symbol)
    return {"symbols": list(symbols)}


@app.get("/settings", tags=["Dashboard"])
async def get_settings():
    return _settings_payload()


@app.put("/settings", tags=["Dashboard"])
async def update_settings(request: SettingsUpdate):
    """
    Change display currency and/or selected exchange.

    Any change clears the cached market analysis and restarts polling.
    """
    await session.update_settings(currency=request.currency, exchange=request.exchange)
    return _settings_payload()


# ============================================
# Market Analysis Endpoints
# ============================================

@app.get("/analysis", response_model=Optional[MarketAnalysis], tags=["Analysis"])
async def get_analysis():
    """Cached analysis for the current settings (null if none yet)."""
    return session.analysis


@app.post("/analysis", response_model=MarketAnalysis, tags=["Analysis"])
async def run_analysis():
    """Request a fresh Gemini analysis of the coins currently displayed."""
    return await session.analyze()


# ============================================
# WebSocket Endpoints
# ============================================

@app.websocket("/ws/snapshots")
async def websocket_snapshots(websocket: WebSocket):
    """
    Stream every dashboard snapshot.

    The current snapshot is sent immediately on connect, followed by each
    snapshot the session publishes.

    Example:
        ws://localhost:8000/ws/snapshots
    """
    await websocket.accept()
    logger.info("WS connected: snapshots")
    queue = await session.bus.subscribe(SNAPSHOT_TOPIC)

    async def forward_snapshots():
        while True:
            event = await queue.get()
            await websocket.send_json(event)

    async def watch_client():
        # Client messages are ignored; receiving detects the disconnect
        while True:
            await websocket.receive_text()

    tasks = []
    try:
        await websocket.send_json({
            "type": "snapshot",
            "data": session.snapshot.model_dump(mode="json", by_alias=True)
        })
        tasks = [
            asyncio.create_task(forward_snapshots(), name="ws_snapshots_forward"),
            asyncio.create_task(watch_client(), name="ws_snapshots_watch")
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            task.result()
    except WebSocketDisconnect:
        logger.info("WS disconnected: snapshots")
    except Exception as e:
        logger.error(f"WS error snapshots: {e}")
        await websocket.close(code=1011, reason="Internal error")
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await session.bus.unsubscribe(SNAPSHOT_TOPIC, queue)
        logger.info("WS ended: snapshots")


# ============================================
# Error Handlers
# ============================================

@app.exception_handler(WatchListError)
async def watchlist_error_handler(request: Request, exc: WatchListError):
    """Invalid watch-list mutations are client errors."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError):
    """The analysis service is optional; its failures are reported as unavailable."""
    logger.warning(f"Market analysis failed: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Handle 404 errors."""
    return JSONResponse(status_code=404, content={"detail": "Not found", "path": str(request.url)})


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Handle 500 errors."""
    logger.error(f"Internal error: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
