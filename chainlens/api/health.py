from fastapi import APIRouter, Depends
from typing import Dict, Any

from ..mcp.supervisor import ProcessSupervisor
from ..providers.tatum import TatumProvider
from .deps import get_provider, get_supervisor

router = APIRouter()


@router.get("/healthz")
async def health_check(
    provider: TatumProvider = Depends(get_provider),
    supervisor: ProcessSupervisor = Depends(get_supervisor),
) -> Dict[str, Any]:
    """Health check covering the Tatum provider and the MCP supervisor"""

    tatum = await provider.health_check()
    mcp = supervisor.get_status()

    # Fallback mode still serves answers, so only a broken provider degrades health
    healthy = tatum["status"] in ["healthy", "unavailable"]

    return {
        "status": "healthy" if healthy else "degraded",
        "providers": {"tatum": tatum},
        "mcp": {
            "state": mcp.state,
            "connected": mcp.connected,
            "fallback_active": mcp.fallback_active,
            "last_error": mcp.last_error,
        },
    }
