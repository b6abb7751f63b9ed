from .client import PendingRequest, ToolProcessClient
from .clock import Clock, MonotonicClock
from .errors import (
    ConnectionTimeout,
    MCPError,
    ProcessExit,
    SpawnFailure,
    ToolCallError,
    ToolError,
    ToolNotConnectedError,
    ToolTimeoutError,
)
from .supervisor import (
    ConnectionState,
    ProcessSupervisor,
    SupervisorConfig,
    SupervisorStatus,
    spawn_subprocess,
)

__all__ = [
    "Clock",
    "ConnectionState",
    "ConnectionTimeout",
    "MCPError",
    "MonotonicClock",
    "PendingRequest",
    "ProcessExit",
    "ProcessSupervisor",
    "SpawnFailure",
    "SupervisorConfig",
    "SupervisorStatus",
    "ToolCallError",
    "ToolError",
    "ToolNotConnectedError",
    "ToolProcessClient",
    "ToolTimeoutError",
    "spawn_subprocess",
]
