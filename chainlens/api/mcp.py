import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from ..config import settings
from ..core.fallback import FallbackResponder
from ..mcp.supervisor import ProcessSupervisor
from ..providers.errors import UpstreamHTTPError
from ..providers.tatum import TatumProvider
from ..types import (
    AppStatusResponse,
    KeyTestRequest,
    KeyTestResponse,
    MCPActionResponse,
    MCPStatus,
    MCPStatusResponse,
    MultiChainTestRequest,
    MultiChainTestResponse,
    ServerInfo,
)
from .deps import get_provider, get_responder, get_supervisor

router = APIRouter()
logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()
MANUAL_FALLBACK_REASON = "Manual fallback activation for testing"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _snapshot(supervisor: ProcessSupervisor) -> MCPStatus:
    return MCPStatus(**supervisor.get_status().to_dict())


@router.get("/api/mcp-status", response_model=MCPStatusResponse)
async def mcp_status(supervisor: ProcessSupervisor = Depends(get_supervisor)):
    """Supervisor snapshot: connection state, retry budget, process liveness"""
    return MCPStatusResponse(mcp=_snapshot(supervisor), timestamp=_now())


@router.get("/api/status", response_model=AppStatusResponse)
async def app_status(supervisor: ProcessSupervisor = Depends(get_supervisor)):
    return AppStatusResponse(
        server=ServerInfo(port=settings.port, uptime_seconds=round(time.monotonic() - _STARTED_AT, 3)),
        mcp=_snapshot(supervisor),
        timestamp=_now(),
    )


@router.post("/api/mcp-restart", response_model=MCPActionResponse)
async def mcp_restart(supervisor: ProcessSupervisor = Depends(get_supervisor)):
    """Kill and respawn the MCP process with a fresh retry budget"""
    logger.info("Manual MCP restart requested")
    try:
        success = await supervisor.restart()
    except Exception as e:  # noqa: BLE001
        logger.error("MCP restart failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to restart MCP server")

    return MCPActionResponse(
        success=success,
        message="MCP server restarted successfully" if success else "Failed to restart MCP server",
        mcp=_snapshot(supervisor),
    )


@router.post("/api/force-fallback", response_model=MCPActionResponse)
async def force_fallback(supervisor: ProcessSupervisor = Depends(get_supervisor)):
    logger.info("Forcing fallback mode")
    supervisor.enable_fallback_mode(MANUAL_FALLBACK_REASON)
    return MCPActionResponse(
        success=True,
        message="Fallback mode activated successfully",
        mcp=_snapshot(supervisor),
    )


@router.post("/api/test-multichain", response_model=MultiChainTestResponse)
async def test_multichain(
    request: MultiChainTestRequest,
    responder: FallbackResponder = Depends(get_responder),
):
    """Run a multi-chain fallback analysis directly, bypassing MCP"""

    if not request.address:
        raise HTTPException(status_code=400, detail="Address is required")

    analyses = {
        "wallet": responder.multi_chain_wallet,
        "portfolio": responder.multi_chain_portfolio,
        "nft": responder.multi_chain_nfts,
    }
    analysis = analyses.get(request.type)
    if analysis is None:
        raise HTTPException(status_code=400, detail="Invalid type. Use: wallet, portfolio, or nft")

    logger.info("Testing multi-chain %s analysis for %s", request.type, request.address)
    result = await analysis(request.address)
    return MultiChainTestResponse(
        type=request.type,
        address=request.address,
        result=result,
        timestamp=_now(),
    )


@router.post("/api/test-key", response_model=KeyTestResponse)
async def test_key(
    request: KeyTestRequest,
    provider: TatumProvider = Depends(get_provider),
):
    """Validate a Tatum API key; without a key in the body the configured one is tested"""

    api_key = request.api_key or provider.api_key
    if not await provider.ready() and not request.api_key:
        return KeyTestResponse(
            success=False,
            message="API key not configured",
            error="Please set TATUM_API_KEY in your .env file",
        )

    try:
        data = await provider.test_api_key(api_key)
    except UpstreamHTTPError as e:
        return KeyTestResponse(success=False, message="API key is invalid or expired", error=e.message)

    return KeyTestResponse(
        success=True,
        message="API key is valid",
        data=data if isinstance(data, dict) else None,
    )
