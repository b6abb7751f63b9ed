import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..core.assistant import Assistant
from ..mcp.supervisor import ProcessSupervisor
from ..types import ChatRequest, ChatResponse
from .deps import get_assistant, get_supervisor

router = APIRouter()
logger = logging.getLogger(__name__)


def mode_label(supervisor: ProcessSupervisor) -> str:
    if supervisor.is_connected:
        return "MCP Active"
    if supervisor.fallback_active:
        return "Fallback Mode"
    return "MCP Inactive"


@router.post("/api/chat", response_model=ChatResponse)
async def chat_endpoint(
    request: ChatRequest,
    assistant: Assistant = Depends(get_assistant),
    supervisor: ProcessSupervisor = Depends(get_supervisor),
):
    """Answer a chat message through MCP or the fallback responder"""

    try:
        reply = await assistant.answer(request.message)
        return ChatResponse(
            response=reply.text,
            source=reply.source,
            mcp_connected=supervisor.is_connected,
            fallback_mode=supervisor.fallback_active,
            last_error=supervisor.last_error,
            status="Error" if reply.failed else mode_label(supervisor),
        )
    except Exception as e:  # noqa: BLE001
        logger.error("Chat endpoint failed: %s", e, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": f"Failed to get AI response: {e}",
                "response": "❌ **System Error:**\n\nSorry, there was an error processing your request. Please try again.",
                "mcp_connected": False,
            },
        )
