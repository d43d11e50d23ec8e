"""Gateway health, transport diagnostics and session listing endpoints."""

import logging

from fastapi import APIRouter, HTTPException

from clawdeck.client.errors import ClientError, CommandTimeoutError, GatewayTimeoutError
from clawdeck.controller import gateway_call, run_cli_json, transport_status
from clawdeck.server.models import GatewayHealthResponse, SessionListResponse, TransportStatusResponse

logger = logging.getLogger("clawdeck.server.api_gateway")

router = APIRouter()

HEALTH_TIMEOUT_SECONDS = 30.0


@router.get("/api/gateway", response_model=GatewayHealthResponse)
async def get_gateway_health():
    """Report gateway health through whichever transport is active."""
    try:
        health = await run_cli_json(["health"], HEALTH_TIMEOUT_SECONDS)
    except ClientError as exc:
        logger.warning("Gateway health check failed: %s", exc)
        timed_out = isinstance(exc, (CommandTimeoutError, GatewayTimeoutError))
        return {
            "status": "offline",
            "health": {
                "ok": False,
                "error": "Gateway health check timed out" if timed_out else "Gateway is not running",
            },
        }
    if not isinstance(health, dict):
        health = {"ok": False, "raw": health}
    return {"status": "online" if health.get("ok") else "degraded", "health": health}


@router.get("/api/gateway/transport", response_model=TransportStatusResponse)
async def get_transport_status():
    """Return the active transport mode and, in auto mode, its probe state."""
    return await transport_status()


@router.get("/api/sessions", response_model=SessionListResponse)
async def list_sessions():
    try:
        data = await gateway_call("sessions.list", {})
    except ClientError as exc:
        logger.error("Failed to list sessions: %s", exc)
        raise HTTPException(status_code=502, detail="Failed to list sessions")
    sessions = data.get("sessions") if isinstance(data, dict) else None
    if not isinstance(sessions, list):
        sessions = []
    sessions = [s for s in sessions if isinstance(s, dict)]
    return {"count": len(sessions), "sessions": sessions}
