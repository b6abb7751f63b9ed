import asyncio
import heapq
import itertools
import json
from typing import Any, Dict, List, Optional

import pytest

from chainlens.providers.errors import UpstreamHTTPError


async def settle(rounds: int = 25) -> None:
    """Let every ready task run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    """Clock whose sleeps only complete when the test advances time."""

    def __init__(self) -> None:
        self._now = 0.0
        self._seq = itertools.count()
        self._sleepers: List[Any] = []

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self._now + seconds, next(self._seq), future))
        await future

    @property
    def pending_sleeps(self) -> int:
        return sum(1 for _, _, future in self._sleepers if not future.done())

    async def advance(self, seconds: float) -> None:
        target = self._now + seconds
        await settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, future = heapq.heappop(self._sleepers)
            self._now = max(self._now, deadline)
            if not future.done():
                future.set_result(None)
            await settle()
        self._now = target
        await settle()


class FakeWriter:
    def __init__(self) -> None:
        self.messages: List[Dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None

    def write(self, data: bytes) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        assert data.endswith(b"\n")
        self.messages.append(json.loads(data.decode("utf-8")))

    async def drain(self) -> None:
        return None

    def requests(self, method: str = "tools/call") -> List[Dict[str, Any]]:
        return [message for message in self.messages if message.get("method") == method]


class FakeStream:
    def __init__(self) -> None:
        self._lines: asyncio.Queue = asyncio.Queue()

    def feed(self, line: str) -> None:
        self._lines.put_nowait(line.encode("utf-8") + b"\n")

    def close(self) -> None:
        self._lines.put_nowait(b"")

    async def readline(self) -> bytes:
        return await self._lines.get()


class FakeProcess:
    """Stand-in for ``asyncio.subprocess.Process`` driven by the test."""

    def __init__(self) -> None:
        self.stdin = FakeWriter()
        self.stdout = FakeStream()
        self.stderr = FakeStream()
        self.returncode: Optional[int] = None
        self.killed = False
        self._exited = asyncio.Event()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def exit(self, code: int = 1) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.close()
        self.stderr.close()
        self._exited.set()

    def report_exit(self, code: int = 1) -> None:
        """Exit notification only; output already buffered stays readable."""
        self.returncode = code
        self._exited.set()

    def kill(self) -> None:
        self.killed = True
        self.exit(-9)

    def respond(self, request_id: int, result: Any = None, error: Optional[Dict[str, Any]] = None) -> None:
        message: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id}
        if error is not None:
            message["error"] = error
        else:
            message["result"] = result
        self.stdout.feed(json.dumps(message))


class FakeSpawner:
    """Spawner double; ``behaviour`` picks what each new process does."""

    def __init__(self, behaviour: str = "ready", ready_line: str = "Tatum MCP server ready") -> None:
        self.behaviour = behaviour
        self.ready_line = ready_line
        self.processes: List[FakeProcess] = []
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, command, env) -> FakeProcess:
        self.calls.append({"command": list(command), "env": dict(env)})
        if self.behaviour == "fail":
            raise FileNotFoundError("npx: command not found")

        process = FakeProcess()
        self.processes.append(process)
        if self.behaviour == "ready":
            process.stderr.feed(self.ready_line)
        elif self.behaviour == "exit":
            process.exit(1)
        return process

    @property
    def latest(self) -> FakeProcess:
        return self.processes[-1]


class FakeChainProvider:
    """In-memory chain data provider; chains listed in ``failing`` raise."""

    name = "fake"

    def __init__(
        self,
        balances: Optional[Dict[str, Dict[str, Any]]] = None,
        tokens: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        nfts: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        failing: Optional[set] = None,
        gas_wei: int = 20_000_000_000,
        block_numbers: Optional[Dict[str, int]] = None,
        balances_wei: Optional[Dict[str, int]] = None,
        configured: bool = True,
    ) -> None:
        self.balances = balances or {}
        self.tokens = tokens or {}
        self.nfts = nfts or {}
        self.failing = failing or set()
        self.gas_wei = gas_wei
        self.block_numbers = block_numbers or {}
        self.balances_wei = balances_wei or {}
        self.configured = configured
        self.calls: List[tuple] = []

    def _check(self, operation: str, chain: str) -> None:
        self.calls.append((operation, chain))
        if chain in self.failing:
            raise UpstreamHTTPError("Request failed with status code 500", status_code=500)

    async def ready(self) -> bool:
        return self.configured

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def get_native_balance(self, address, chain, timeout=None):
        self._check("native", chain)
        return self.balances.get(chain, {"balance": "0"})

    async def get_token_balances(self, address, chain, timeout=None):
        self._check("tokens", chain)
        return list(self.tokens.get(chain, []))

    async def get_nft_balances(self, address, chain, timeout=None):
        self._check("nfts", chain)
        return list(self.nfts.get(chain, []))

    async def get_chain_info(self, chain):
        self._check("info", chain)
        return {"blockHeight": 19_000_000}

    async def get_gas_price_wei(self, chain):
        self._check("gas", chain)
        return self.gas_wei

    async def get_block_number(self, chain):
        self._check("block", chain)
        return self.block_numbers.get(chain, 19_000_000)

    async def get_balance_wei(self, address, chain):
        self._check("balance_wei", chain)
        return self.balances_wei.get(chain, 0)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def writer() -> FakeWriter:
    return FakeWriter()


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def fake_provider() -> FakeChainProvider:
    return FakeChainProvider()


@pytest.fixture
def make_provider():
    return FakeChainProvider
