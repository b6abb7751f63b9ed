from __future__ import annotations

import asyncio
import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol

from .clock import Clock, MonotonicClock
from .errors import ToolError, ToolNotConnectedError, ToolTimeoutError


JSONRPC_VERSION = "2.0"
MCP_PROTOCOL_VERSION = "2024-11-05"


class LineWriter(Protocol):
    """The subset of ``asyncio.StreamWriter`` the client writes through."""

    def write(self, data: bytes) -> None:
        ...

    async def drain(self) -> None:
        ...


@dataclass(slots=True)
class PendingRequest:
    correlation_id: int
    tool_name: str
    issued_at: float
    future: asyncio.Future = field(repr=False)


class ToolProcessClient:
    """JSON-line request/response client for the MCP tool process.

    The client never reads from the process itself: the supervisor owns the
    output streams and hands every stdout line to :meth:`feed_line`. Responses
    are matched to in-flight calls by correlation id only, so concurrent calls
    resolve independently. Correlation ids come from one counter that lives as
    long as the client, so they are never reused across process restarts.
    """

    def __init__(
        self,
        *,
        is_connected: Optional[Callable[[], bool]] = None,
        timeout_seconds: float = 15.0,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
        client_name: str = "ChainLens",
        client_version: str = "1.0.0",
    ) -> None:
        self._is_connected = is_connected or (lambda: True)
        self._timeout = timeout_seconds
        self._clock = clock or MonotonicClock()
        self.logger = logger or logging.getLogger(__name__)
        self._client_info = {"name": client_name, "version": client_version}
        self._ids = itertools.count(1)
        self._pending: Dict[int, PendingRequest] = {}
        self._writer: Optional[LineWriter] = None

    # ---------------------------
    # Stream wiring
    # ---------------------------
    def attach(self, writer: LineWriter) -> None:
        self._writer = writer

    def detach(self, reason: str = "Tool process exited") -> None:
        """Drop the process stream and fail every in-flight call."""
        self._writer = None
        for pending in list(self._pending.values()):
            if not pending.future.done():
                pending.future.set_exception(ToolError(reason, tool_name=pending.tool_name))

    @property
    def attached(self) -> bool:
        return self._writer is not None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ---------------------------
    # Outbound
    # ---------------------------
    async def _send(self, message: Dict[str, Any]) -> None:
        if self._writer is None:
            raise ToolNotConnectedError()
        line = json.dumps(message) + "\n"
        self._writer.write(line.encode("utf-8"))
        await self._writer.drain()

    async def send_handshake(self) -> int:
        """Write the ``initialize`` request; the reply is not awaited."""
        request_id = next(self._ids)
        await self._send(
            {
                "jsonrpc": JSONRPC_VERSION,
                "id": request_id,
                "method": "initialize",
                "params": {
                    "protocolVersion": MCP_PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": dict(self._client_info),
                },
            }
        )
        return request_id

    async def call_tool(self, tool_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if not self._is_connected() or self._writer is None:
            self.logger.info("MCP server not connected, cannot call tool %s", tool_name)
            raise ToolNotConnectedError(tool_name=tool_name)

        correlation_id = next(self._ids)
        request = {
            "jsonrpc": JSONRPC_VERSION,
            "id": correlation_id,
            "method": "tools/call",
            "params": {"name": tool_name, "arguments": params or {}},
        }
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[correlation_id] = PendingRequest(
            correlation_id=correlation_id,
            tool_name=tool_name,
            issued_at=self._clock.now(),
            future=future,
        )

        try:
            self.logger.debug("Sending MCP request %d for tool %s", correlation_id, tool_name)
            try:
                await self._send(request)
            except (ConnectionError, OSError) as exc:
                raise ToolError(f"Failed to write request: {exc}", tool_name=tool_name) from exc
            try:
                result = await asyncio.wait_for(future, timeout=self._timeout)
            except asyncio.TimeoutError:
                self.logger.warning("MCP request timeout for tool %s (id=%d)", tool_name, correlation_id)
                raise ToolTimeoutError(tool_name=tool_name) from None
        finally:
            self._pending.pop(correlation_id, None)

        self.logger.debug("MCP tool response received for %s", tool_name)
        return result

    # ---------------------------
    # Inbound
    # ---------------------------
    def feed_line(self, line: str | bytes) -> bool:
        """Offer one output line; returns True when it resolved a pending call.

        Anything that is not a JSON object with a known id is ignored: the
        process interleaves human-readable log lines with protocol messages.
        """
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        line = line.strip()
        if not line:
            return False
        try:
            message = json.loads(line)
        except ValueError:
            return False
        if not isinstance(message, dict):
            return False

        correlation_id = message.get("id")
        if not isinstance(correlation_id, int) or isinstance(correlation_id, bool):
            return False
        pending = self._pending.get(correlation_id)
        if pending is None or pending.future.done():
            return False

        error = message.get("error")
        if error is not None:
            if isinstance(error, dict):
                text = error.get("message") or "Unknown tool error"
                code = error.get("code")
            else:
                text, code = str(error), None
            self.logger.warning("MCP tool %s returned error: %s", pending.tool_name, text)
            pending.future.set_exception(ToolError(text, tool_name=pending.tool_name, code=code))
        else:
            pending.future.set_result(message.get("result"))
        return True
