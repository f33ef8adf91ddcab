from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from ..config import Settings, get_settings
from ..market_data import MarketDataClient, RemoteAPIError
from ..metrics import get_transaction_fetch_latency_stats, get_upstream_latency_stats
from ..monitor import MonitorAggregator, MonitorStats, ThresholdAlerter

router = APIRouter()
logger = logging.getLogger("solwatch.api")

BIRDEYE_ENDPOINTS = (
    "trending",
    "meme",
    "overview",
    "metadata",
    "market-data",
    "price",
    "search",
    "ohlcv",
    "trades",
    "wallet",
    "networth",
    "pnl",
)
_ADDRESS_REQUIRED = {
    "overview": "overview",
    "metadata": "metadata",
    "market-data": "market data",
    "price": "price",
    "ohlcv": "OHLCV data",
    "trades": "trades",
    "wallet": "wallet analysis",
    "networth": "net worth",
    "pnl": "profit and loss",
}
OHLCV_LOOKBACK_SECONDS = 24 * 60 * 60


def _to_camel_case(snake_str: str) -> str:
    """Convert snake_case to camelCase."""
    components = snake_str.split('_')
    return components[0] + ''.join(x.title() for x in components[1:])


def _convert_keys_to_camel(data: Any) -> Any:
    """Recursively convert dict keys from snake_case to camelCase."""
    if isinstance(data, dict):
        return {_to_camel_case(k): _convert_keys_to_camel(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_convert_keys_to_camel(item) for item in data]
    else:
        return data


def get_market_data(request: Request) -> MarketDataClient:
    return request.app.state.market_data


def get_monitor(request: Request) -> MonitorAggregator:
    return request.app.state.monitor


def get_alerter(request: Request) -> ThresholdAlerter:
    return request.app.state.alerter


class MonitorActionRequest(BaseModel):
    action: str


class BirdeyeRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    endpoint: str | None = None
    address: str | None = None
    type: str = "1h"
    keyword: str | None = None
    token_addresses: list[str] | None = None
    limit: int | None = None


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


async def _dispatch_birdeye(client: MarketDataClient, payload: BirdeyeRequest) -> Any:
    endpoint = payload.endpoint
    if not endpoint:
        raise _bad_request("Missing endpoint parameter")
    if endpoint not in BIRDEYE_ENDPOINTS:
        raise _bad_request("Invalid endpoint parameter")
    address = payload.address
    if endpoint in _ADDRESS_REQUIRED and not address:
        raise _bad_request(f"Missing address parameter for {_ADDRESS_REQUIRED[endpoint]}")
    limit = payload.limit or 20

    if endpoint == "trending":
        return await client.get_trending_tokens(limit)
    if endpoint == "meme":
        return await client.get_meme_tokens(limit)
    if endpoint == "overview":
        return await client.get_token_overview(address)
    if endpoint == "metadata":
        return await client.get_token_metadata(address)
    if endpoint == "market-data":
        return await client.get_token_market_data(address)
    if endpoint == "price":
        return await client.get_token_price(address)
    if endpoint == "search":
        keyword = payload.keyword or address
        if not keyword:
            raise _bad_request("Missing keyword parameter for search")
        return await client.search_tokens(keyword, limit)
    if endpoint == "ohlcv":
        now = int(time.time())
        return await client.get_ohlcv_v3(address, now - OHLCV_LOOKBACK_SECONDS, now, payload.type)
    if endpoint == "trades":
        return await client.get_token_trades(address, payload.limit or 50)
    if endpoint == "wallet":
        return await client.get_wallet_portfolio(address)
    if endpoint == "networth":
        return await client.get_wallet_net_worth(address)
    # pnl
    if not payload.token_addresses:
        raise _bad_request("Missing token_addresses parameter for profit and loss")
    return await client.get_wallet_pnl(address, payload.token_addresses)


async def _birdeye_response(client: MarketDataClient, payload: BirdeyeRequest) -> Any:
    try:
        return await _dispatch_birdeye(client, payload)
    except RemoteAPIError as exc:
        logger.warning("Birdeye request %s failed: %s", payload.endpoint, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "Failed to fetch data from Birdeye API",
                "upstreamStatus": exc.status_code,
                "endpoint": exc.endpoint,
            },
        ) from exc


@router.get("/health", summary="Service health check")
def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {
        "service": settings.service_name,
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/metrics/latency/upstream", summary="Market data upstream latency stats")
async def get_upstream_latency_metrics() -> dict[str, object]:
    stats = get_upstream_latency_stats()
    if stats is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No latency samples yet")
    return {"stats": stats}


@router.get("/metrics/latency/transaction-fetch", summary="Ledger transaction fetch latency stats")
async def get_transaction_fetch_latency_metrics() -> dict[str, object]:
    stats = get_transaction_fetch_latency_stats()
    if stats is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No latency samples yet")
    return {"stats": stats}


@router.get("/pumpfun", summary="pump.fun monitor snapshot")
async def get_pumpfun_snapshot(monitor: MonitorAggregator = Depends(get_monitor)) -> Any:
    try:
        snapshot = {
            "stats": asdict(monitor.get_stats()),
            "recent_launches": [asdict(launch) for launch in monitor.get_recent_launches(10)],
            "recent_trades": [asdict(trade) for trade in monitor.get_all_recent_trades()[-20:]],
            "is_monitoring": monitor.is_monitoring,
            "success": True,
        }
    except Exception as exc:
        logger.exception("Failed to read monitor snapshot: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_convert_keys_to_camel(
                {
                    "error": "Failed to fetch PumpFun data",
                    "stats": asdict(MonitorStats()),
                    "recent_launches": [],
                    "recent_trades": [],
                    "is_monitoring": False,
                    "success": False,
                }
            ),
        )
    return _convert_keys_to_camel(snapshot)


@router.post("/pumpfun", summary="Start or stop the pump.fun monitor")
async def control_pumpfun_monitor(
    payload: MonitorActionRequest,
    monitor: MonitorAggregator = Depends(get_monitor),
) -> dict[str, object]:
    if payload.action not in ("start", "stop"):
        raise _bad_request('Invalid action. Use "start" or "stop"')
    if payload.action == "start":
        await monitor.start()
    else:
        await monitor.stop()
    monitor_status = monitor.status()
    return {
        "success": True,
        "isMonitoring": monitor.is_monitoring,
        "lastError": monitor_status.last_error,
        "message": f"Monitor {'started' if payload.action == 'start' else 'stopped'} successfully",
    }


@router.get("/pumpfun/status", summary="pump.fun monitor lifecycle counters")
async def get_pumpfun_status(monitor: MonitorAggregator = Depends(get_monitor)) -> dict[str, object]:
    return _convert_keys_to_camel(asdict(monitor.status()))


@router.get("/pumpfun/tokens/{mint}/trades", summary="Recent trades for one mint")
async def get_pumpfun_token_trades(
    mint: str,
    limit: int = Query(50, ge=1, le=1000),
    monitor: MonitorAggregator = Depends(get_monitor),
) -> dict[str, object]:
    trades = monitor.get_token_trades(mint, limit)
    launch = monitor.get_token_launches().get(mint)
    return _convert_keys_to_camel(
        {
            "token_mint": mint,
            "launch": asdict(launch) if launch else None,
            "trades": [asdict(trade) for trade in trades],
            "count": len(trades),
        }
    )


@router.get("/pumpfun/alerts", summary="Recent threshold alerts")
async def get_pumpfun_alerts(
    limit: int = Query(50, ge=1, le=1000),
    alerter: ThresholdAlerter = Depends(get_alerter),
) -> dict[str, object]:
    alerts = []
    for alert in alerter.recent_alerts(limit):
        item = asdict(alert)
        item["direction"] = alert.direction
        alerts.append(item)
    return _convert_keys_to_camel(
        {
            "alerts": alerts,
            "count": len(alerts),
            "thresholds": asdict(alerter.thresholds),
        }
    )


@router.get("/birdeye", summary="Proxy a market data query")
async def get_birdeye(
    endpoint: str | None = None,
    address: str | None = None,
    type: str = "1h",
    keyword: str | None = None,
    token_addresses: str | None = None,
    limit: int | None = Query(None, ge=1, le=100),
    client: MarketDataClient = Depends(get_market_data),
) -> Any:
    payload = BirdeyeRequest(
        endpoint=endpoint,
        address=address,
        type=type,
        keyword=keyword,
        token_addresses=[part for part in (token_addresses or "").split(",") if part] or None,
        limit=limit,
    )
    return await _birdeye_response(client, payload)


@router.post("/birdeye", summary="Proxy a market data query (JSON body)")
async def post_birdeye(
    payload: BirdeyeRequest,
    client: MarketDataClient = Depends(get_market_data),
) -> Any:
    return await _birdeye_response(client, payload)


__all__ = ["BIRDEYE_ENDPOINTS", "router"]
