from fastapi import Request

from ..core.assistant import Assistant
from ..core.fallback import FallbackResponder
from ..mcp.supervisor import ProcessSupervisor
from ..providers.tatum import TatumProvider


def get_supervisor(request: Request) -> ProcessSupervisor:
    return request.app.state.supervisor


def get_provider(request: Request) -> TatumProvider:
    return request.app.state.provider


def get_responder(request: Request) -> FallbackResponder:
    return request.app.state.responder


def get_assistant(request: Request) -> Assistant:
    return request.app.state.assistant
