from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Coroutine, Dict, Optional, Protocol, Sequence, Tuple

from ..config import Settings, settings as default_settings
from .client import LineWriter, ToolProcessClient
from .clock import Clock, MonotonicClock
from .errors import ConnectionTimeout, ProcessExit, SpawnFailure


# Tool results can be large JSON documents on a single line.
STREAM_LIMIT = 4 * 1024 * 1024
MAX_RETRIES_REACHED = "Max retries reached"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FALLBACK_ACTIVE = "fallback_active"


class LineReader(Protocol):
    async def readline(self) -> bytes:
        ...


class ProcessHandle(Protocol):
    """The parts of ``asyncio.subprocess.Process`` the supervisor relies on."""

    stdin: LineWriter
    stdout: LineReader
    stderr: LineReader
    returncode: Optional[int]

    async def wait(self) -> int:
        ...

    def kill(self) -> None:
        ...


Spawner = Callable[[Sequence[str], Dict[str, str]], Awaitable[ProcessHandle]]


async def spawn_subprocess(command: Sequence[str], env: Dict[str, str]) -> ProcessHandle:
    if not command:
        raise SpawnFailure("No MCP command configured")
    return await asyncio.create_subprocess_exec(
        *command,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=env,
        limit=STREAM_LIMIT,
    )


@dataclass(frozen=True)
class SupervisorConfig:
    """Explicit supervisor configuration; see ``SupervisorConfig.from_settings``."""

    command: Tuple[str, ...]
    api_key: str
    ready_marker: str = "ready"
    max_retries: int = 3
    restart_delay_seconds: float = 5.0
    connect_timeout_seconds: float = 10.0
    connect_polls: int = 20
    poll_interval_seconds: float = 1.0
    health_check_interval_seconds: float = 30.0
    tool_timeout_seconds: float = 15.0

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "SupervisorConfig":
        source = source or default_settings
        return cls(
            command=tuple(source.mcp_command_args),
            api_key=source.resolve_mcp_api_key(),
            ready_marker=source.mcp_ready_marker,
            max_retries=source.mcp_max_retries,
            restart_delay_seconds=source.mcp_restart_delay_seconds,
            connect_timeout_seconds=source.mcp_connect_timeout_seconds,
            connect_polls=source.mcp_connect_polls,
            poll_interval_seconds=source.mcp_poll_interval_seconds,
            health_check_interval_seconds=source.mcp_health_check_interval_seconds,
            tool_timeout_seconds=source.mcp_tool_timeout_seconds,
        )


@dataclass(frozen=True)
class SupervisorStatus:
    connected: bool
    fallback_active: bool
    state: str
    last_error: Optional[str]
    attempts_used: int
    max_attempts: int
    has_process_handle: bool
    process_is_dead: bool
    pending_requests: int
    restart_pending: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ProcessSupervisor:
    """Owns the MCP tool process and decides whether tool calls are attempted.

    State machine::

        disconnected --start()--> connecting --ready marker--> connected
        connecting --10s without marker--> fallback_active
        connected --unplanned exit--> disconnected --5s--> start()
        any --exit with retry budget spent--> fallback_active
        any --restart()--> disconnected --> start()

    Every timer runs through the injected clock and is an ``asyncio.Task``
    owned here, so ``restart()`` and ``stop()`` cancel pending work
    deterministically.
    """

    def __init__(
        self,
        config: SupervisorConfig,
        *,
        clock: Optional[Clock] = None,
        spawner: Optional[Spawner] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._output_logger = self.logger.getChild("output")
        self._clock = clock or MonotonicClock()
        self._spawn = spawner or spawn_subprocess
        self._state = ConnectionState.DISCONNECTED
        self._last_error: Optional[str] = None
        self._attempts_used = 0
        self._process: Optional[ProcessHandle] = None
        self._generation = 0
        self._ready_seen = False
        self._exit_handled = False
        self._launch_lock = asyncio.Lock()
        self._io_tasks: set[asyncio.Task] = set()
        self._background: set[asyncio.Task] = set()
        self._connect_timeout_task: Optional[asyncio.Task] = None
        self._health_task: Optional[asyncio.Task] = None
        self._restart_task: Optional[asyncio.Task] = None
        self.client = ToolProcessClient(
            is_connected=lambda: self._state is ConnectionState.CONNECTED,
            timeout_seconds=config.tool_timeout_seconds,
            clock=self._clock,
            logger=self.logger.getChild("client"),
        )

    # ---------------------------
    # Introspection
    # ---------------------------
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def fallback_active(self) -> bool:
        return self._state is ConnectionState.FALLBACK_ACTIVE

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def get_status(self) -> SupervisorStatus:
        process = self._process
        restart = self._restart_task
        return SupervisorStatus(
            connected=self.is_connected,
            fallback_active=self.fallback_active,
            state=self._state.value,
            last_error=self._last_error,
            attempts_used=self._attempts_used,
            max_attempts=self.config.max_retries,
            has_process_handle=process is not None,
            process_is_dead=process is None or process.returncode is not None,
            pending_requests=self.client.pending_count,
            restart_pending=restart is not None and not restart.done(),
        )

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def start(self) -> bool:
        """Spawn the tool process and wait (bounded) for it to report ready."""
        self.logger.info("Starting MCP server: %s", " ".join(self.config.command))
        if not await self._launch():
            return False

        polls = self.config.connect_polls
        for attempt in range(1, polls + 1):
            if self.is_connected:
                break
            process = self._process
            if process is None or process.returncode is not None:
                break
            await self._clock.sleep(self.config.poll_interval_seconds)
            self.logger.debug("MCP connection attempt %d/%d", attempt, polls)

        if self.is_connected:
            self.logger.info("MCP server connection confirmed")
        else:
            self.logger.warning("MCP server not connected after start; fallback responses stay in use")
        return self.is_connected

    async def restart(self) -> bool:
        """Operator-triggered recovery: fresh process, fresh retry budget."""
        self.logger.info("Restarting MCP server")
        self._stop_health_check()
        self._cancel_restart()
        await self._discard_process("Tool process restarted")
        self._set_state(ConnectionState.DISCONNECTED)
        self._attempts_used = 0
        return await self.start()

    async def stop(self) -> None:
        """Planned shutdown; no restart is scheduled afterwards."""
        self.logger.info("Stopping MCP server")
        self._stop_health_check()
        self._cancel_restart()
        current = asyncio.current_task()
        pending = [task for task in self._background if task is not current]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self._discard_process("Tool process stopped")
        self._set_state(ConnectionState.DISCONNECTED)

    def enable_fallback_mode(self, reason: str) -> None:
        """Route all AI responses to the fallback responder.

        The process is left running; calls already in flight fail on their own.
        """
        already_active = self.fallback_active
        self._set_state(ConnectionState.FALLBACK_ACTIVE)
        self._last_error = reason
        if already_active:
            self.logger.debug("Fallback mode already active (%s)", reason)
        else:
            self.logger.warning("Fallback mode enabled: %s", reason)

    async def call_tool(self, tool_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.client.call_tool(tool_name, params)

    # ---------------------------
    # Process management
    # ---------------------------
    async def _launch(self) -> bool:
        async with self._launch_lock:
            await self._discard_process("Tool process restarted")
            if self._state is not ConnectionState.FALLBACK_ACTIVE:
                self._set_state(ConnectionState.CONNECTING)

            env = {**os.environ, "TATUM_API_KEY": self.config.api_key}
            try:
                process = await self._spawn(list(self.config.command), env)
            except (OSError, ValueError, SpawnFailure) as exc:
                failure = exc if isinstance(exc, SpawnFailure) else SpawnFailure(str(exc))
                self.logger.warning("Failed to start MCP server: %s", failure.message)
                self.enable_fallback_mode(f"{SpawnFailure.reason}: {failure.message}")
                return False

            self._generation += 1
            generation = self._generation
            self._process = process
            self._ready_seen = False
            self._exit_handled = False
            self.client.attach(process.stdin)

            self._spawn_task(self._read_stream(process.stdout, "stdout", generation), name="mcp-stdout", io=True)
            self._spawn_task(self._read_stream(process.stderr, "stderr", generation), name="mcp-stderr", io=True)
            self._spawn_task(self._watch_exit(process, generation), name="mcp-exit-watch", io=True)

            try:
                await self.client.send_handshake()
            except (ConnectionError, OSError) as exc:
                # The exit watcher takes it from here.
                self.logger.warning("Failed to send MCP handshake: %s", exc)

            self._connect_timeout_task = self._spawn_task(
                self._connect_timeout(generation), name="mcp-connect-timeout"
            )
            return True

    async def _discard_process(self, reason: str) -> None:
        """Planned teardown of the current process; never counts as an exit."""
        process = self._process
        self._generation += 1
        self._cancel_task(self._connect_timeout_task)
        self._connect_timeout_task = None

        current = asyncio.current_task()
        io_tasks = [task for task in self._io_tasks if task is not current]
        for task in io_tasks:
            task.cancel()
        if io_tasks:
            await asyncio.gather(*io_tasks, return_exceptions=True)

        self.client.detach(reason)
        self._process = None
        if process is None or process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=5)
        except asyncio.TimeoutError:
            self.logger.warning("MCP process did not exit after kill")

    async def _read_stream(self, stream: LineReader, source: str, generation: int) -> None:
        while True:
            try:
                raw = await stream.readline()
            except ValueError as exc:
                # Over-long line; the reader already dropped it.
                self._output_logger.warning("Dropped oversized MCP %s line: %s", source, exc)
                continue
            if not raw:
                return
            if generation != self._generation:
                return

            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            self._output_logger.debug("MCP %s: %s", source, line)

            matched = source == "stdout" and self.client.feed_line(line)
            if not matched and not self._ready_seen and self.config.ready_marker in line:
                if self._exit_handled or self._process is None or self._process.returncode is not None:
                    # Buffered output of a process that already exited.
                    self.logger.debug("Ignoring ready marker from exited MCP process")
                    continue
                self._mark_connected(source)

    async def _watch_exit(self, process: ProcessHandle, generation: int) -> None:
        returncode = await process.wait()
        if generation != self._generation:
            return
        self._handle_exit(returncode)

    async def _connect_timeout(self, generation: int) -> None:
        await self._clock.sleep(self.config.connect_timeout_seconds)
        if generation != self._generation or self._ready_seen:
            return
        self.logger.warning(
            "MCP server failed to connect within %.0fs, enabling fallback mode",
            self.config.connect_timeout_seconds,
        )
        self.enable_fallback_mode(ConnectionTimeout.reason)

    # ---------------------------
    # Transitions
    # ---------------------------
    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            self.logger.debug("MCP state %s -> %s", self._state.value, state.value)
        self._state = state

    def _mark_connected(self, source: str) -> None:
        self._ready_seen = True
        self._cancel_task(self._connect_timeout_task)
        self._connect_timeout_task = None
        self._cancel_restart()
        self._set_state(ConnectionState.CONNECTED)
        self._attempts_used = 0
        self.logger.info("MCP server connected (ready marker on %s)", source)
        self._start_health_check()

    def _handle_exit(self, returncode: Optional[int]) -> None:
        self._exit_handled = True
        exit_info = ProcessExit(returncode)
        self.logger.warning(exit_info.message)

        self._stop_health_check()
        self._cancel_task(self._connect_timeout_task)
        self._connect_timeout_task = None
        self.client.detach("Tool process exited")
        if self._state is not ConnectionState.FALLBACK_ACTIVE:
            self._set_state(ConnectionState.DISCONNECTED)
        self._last_error = exit_info.message

        max_retries = self.config.max_retries
        self._attempts_used = min(self._attempts_used + 1, max_retries)
        if self._attempts_used >= max_retries:
            self.logger.warning("Max retries reached, enabling fallback mode")
            self.enable_fallback_mode(MAX_RETRIES_REACHED)
            return

        self.logger.info(
            "Attempting to restart MCP server (%d/%d) in %.0fs",
            self._attempts_used,
            max_retries,
            self.config.restart_delay_seconds,
        )
        self._cancel_restart()
        self._restart_task = self._spawn_task(self._delayed_restart(), name="mcp-restart")

    async def _delayed_restart(self) -> None:
        try:
            await self._clock.sleep(self.config.restart_delay_seconds)
            await self.start()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Scheduled MCP restart failed: %s", exc, exc_info=True)
            self.enable_fallback_mode(f"Restart error: {exc}")
        finally:
            # Pending until start() returns; restart() cancels it meanwhile.
            if self._restart_task is asyncio.current_task():
                self._restart_task = None

    # ---------------------------
    # Health check
    # ---------------------------
    def _start_health_check(self) -> None:
        self._stop_health_check()
        self._health_task = self._spawn_task(self._health_loop(), name="mcp-health-check")

    def _stop_health_check(self) -> None:
        task = self._health_task
        self._health_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _health_loop(self) -> None:
        try:
            while True:
                await self._clock.sleep(self.config.health_check_interval_seconds)
                process = self._process
                if process is None or process.returncode is None or self._exit_handled:
                    continue
                self.logger.warning("MCP process died without exit notification, restarting")
                self._health_task = None
                self._set_state(ConnectionState.DISCONNECTED)
                await self.start()
                return
        except asyncio.CancelledError:
            return
        except Exception as exc:  # noqa: BLE001
            self.logger.error("MCP health check crashed: %s", exc, exc_info=True)

    # ---------------------------
    # Helpers
    # ---------------------------
    def _spawn_task(self, coro: Coroutine[Any, Any, Any], *, name: str, io: bool = False) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        bucket = self._io_tasks if io else self._background
        bucket.add(task)
        task.add_done_callback(bucket.discard)
        return task

    def _cancel_restart(self) -> None:
        task = self._restart_task
        self._restart_task = None
        self._cancel_task(task)

    @staticmethod
    def _cancel_task(task: Optional[asyncio.Task]) -> None:
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
