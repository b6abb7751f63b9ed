"""
MCP Error Taxonomy

Process-level failures (spawn, connect timeout, exit) are handled inside the
supervisor and only ever surface as its ``last_error``. Tool-call failures are
raised to the dispatch layer, which answers from the fallback responder.
"""

from typing import Optional


class MCPError(Exception):
    """Base class for tool-process failures."""

    reason: str = "MCP error"

    def __init__(self, message: Optional[str] = None):
        message = message or self.reason
        super().__init__(message)
        self.message = message


# Process lifecycle
class SpawnFailure(MCPError):
    """The tool process could not be started."""

    reason = "Spawn error"


class ConnectionTimeout(MCPError):
    """The readiness marker was not observed in time."""

    reason = "Connection timeout"


class ProcessExit(MCPError):
    """The tool process terminated."""

    reason = "Process exited"

    def __init__(self, returncode: Optional[int] = None, message: Optional[str] = None):
        super().__init__(message or f"MCP process exited with code {returncode}")
        self.returncode = returncode


# Single tool calls
class ToolCallError(MCPError):
    """A single tool call failed; global state is left to the caller."""

    def __init__(self, message: Optional[str] = None, tool_name: Optional[str] = None):
        super().__init__(message)
        self.tool_name = tool_name


class ToolNotConnectedError(ToolCallError):
    """Call attempted while the tool process is not connected."""

    reason = "MCP server not connected"


class ToolTimeoutError(ToolCallError):
    """No matching response arrived before the call timeout."""

    reason = "MCP request timeout"


class ToolError(ToolCallError):
    """The tool process answered with an error payload."""

    reason = "MCP tool error"

    def __init__(
        self,
        message: Optional[str] = None,
        tool_name: Optional[str] = None,
        code: Optional[int] = None,
    ):
        super().__init__(message, tool_name=tool_name)
        self.code = code
