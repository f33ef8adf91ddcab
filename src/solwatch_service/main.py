from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .config import Settings, get_settings
from .market_data import MarketDataClient, MarketDataClientConfig
from .monitor import (
    AlertThresholds,
    MonitorAggregator,
    MonitorConfig,
    SolanaRpcClient,
    SolanaRpcConfig,
    ThresholdAlerter,
    WebSocketLogFeed,
)
from .observability import PROMETHEUS_CONTENT_TYPE, generate_prometheus_metrics
from .websocket import ConnectionManager

_LOG_FILE_NAME = "solwatch_service.log"


def configure_logging(settings: Settings) -> None:
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    if not settings.log_dir:
        return
    log_path = Path(settings.log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = (log_path / _LOG_FILE_NAME).resolve()
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_file:
            return
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    root_logger.addHandler(file_handler)


def create_app(
    settings: Settings | None = None,
    *,
    market_data: MarketDataClient | None = None,
    monitor: MonitorAggregator | None = None,
) -> FastAPI:
    """
    Build the service with explicitly owned collaborators.

    Clients passed in are used as-is and left open on shutdown; the ones built
    here are closed when the application stops.
    """

    settings = settings or get_settings()
    configure_logging(settings)
    logger = logging.getLogger(settings.service_name)

    owned_market_data = market_data is None
    if market_data is None:
        market_data = MarketDataClient(MarketDataClientConfig.from_settings(settings))

    ledger: SolanaRpcClient | None = None
    if monitor is None:
        ledger = SolanaRpcClient(SolanaRpcConfig.from_settings(settings))
        monitor = MonitorAggregator(
            WebSocketLogFeed.from_settings(settings),
            ledger,
            MonitorConfig.from_settings(settings),
        )

    connections = ConnectionManager()
    alerter = ThresholdAlerter(
        monitor.get_token_trades,
        AlertThresholds.from_settings(settings),
        notifier=connections.broadcast_alert,
    )
    monitor.add_trade_observer(alerter)
    monitor.add_trade_observer(connections.broadcast_trade)
    monitor.add_launch_observer(connections.broadcast_launch)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s", settings.service_name)
        if settings.monitor_autostart:
            await monitor.start()
        yield
        # Stop the monitor first so no new ledger reads are issued, then close clients
        logger.info("Stopping %s", settings.service_name)
        await monitor.shutdown()
        if ledger is not None:
            await ledger.close()
        if owned_market_data:
            await market_data.close()
        logger.info("%s stopped successfully", settings.service_name)

    app = FastAPI(title="Solana Watch Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.market_data = market_data
    app.state.monitor = monitor
    app.state.alerter = alerter
    app.state.connections = connections
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix="/internal/solwatch")

    @app.get("/metrics")
    async def prometheus_metrics() -> Response:
        payload = generate_prometheus_metrics()
        return Response(content=payload, media_type=PROMETHEUS_CONTENT_TYPE)

    @app.get("/healthz")
    async def healthz() -> dict[str, object]:
        status = monitor.status()
        return {
            "status": "ok",
            "monitor": {
                "state": status.state.value,
                "last_error": status.last_error,
                "events_received": status.events_received,
            },
            "market_data": {"cache_entries": market_data.cache_size},
            "websocket_clients": len(connections.active_connections),
        }

    @app.websocket("/ws/pumpfun")
    async def pumpfun_stream(websocket: WebSocket):
        await connections.connect(websocket)
        try:
            while True:
                try:
                    message = await websocket.receive_text()
                    if isinstance(message, str) and message.strip().lower() == "ping":
                        await connections.send_personal_message({"type": "pong"}, websocket)
                except WebSocketDisconnect:
                    break
                except Exception as exc:  # pragma: no cover - network error path
                    logging.getLogger("solwatch.websocket.pumpfun").warning(
                        "WebSocket error: %s", exc
                    )
                    break
        finally:
            connections.disconnect(websocket)

    return app


app = create_app()
