import httpx
import pytest

from chainlens.providers import tatum
from chainlens.providers.errors import UpstreamHTTPError
from chainlens.providers.tatum import KEY_CHECK_ADDRESS, TatumProvider


ADDRESS = "0x1111111111111111111111111111111111111111"


class _DummyResponse:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        return None

    def json(self):
        return self._payload


class _DummyClient:
    """Replays queued payloads; an exception in the queue is raised instead."""

    requests = []
    replies = []

    def __init__(self, *_, **__):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        _DummyClient.requests.append(
            {"method": method, "url": url, "params": params, "json": json, "headers": headers, "timeout": timeout}
        )
        reply = _DummyClient.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        return _DummyResponse(reply)


@pytest.fixture
def provider(monkeypatch):
    _DummyClient.requests = []
    _DummyClient.replies = []
    monkeypatch.setattr(tatum.httpx, "AsyncClient", _DummyClient)
    return TatumProvider(
        api_key="t-key",
        base_url="https://api.example/v3/",
        data_base_url="https://api.example/v4",
        timeout_s=12,
    )


@pytest.mark.asyncio
async def test_native_balance_endpoint_and_headers(provider):
    _DummyClient.replies = [{"balance": "1.5"}]

    result = await provider.get_native_balance(ADDRESS, "polygon", timeout=10)

    assert result == {"balance": "1.5"}
    request = _DummyClient.requests[0]
    assert request["method"] == "GET"
    assert request["url"] == f"https://api.example/v3/polygon/account/balance/{ADDRESS}"
    assert request["headers"] == {"x-api-key": "t-key", "Content-Type": "application/json"}
    assert request["timeout"] == 10


@pytest.mark.asyncio
async def test_token_balances_use_data_chain_and_drop_native(provider):
    _DummyClient.replies = [
        {
            "result": [
                {"type": "native", "balance": "2"},
                {"type": "fungible", "symbol": "USDC", "balance": "10"},
                {"symbol": "DAI", "balance": "3"},
            ]
        }
    ]

    tokens = await provider.get_token_balances(ADDRESS, "arbitrum")

    assert [token["symbol"] for token in tokens] == ["USDC", "DAI"]
    request = _DummyClient.requests[0]
    assert request["url"] == "https://api.example/v4/data/wallet/balances"
    assert request["params"] == {"chain": "arbitrum-one-mainnet", "addresses": ADDRESS}
    assert request["timeout"] == 12


@pytest.mark.asyncio
async def test_nft_balances_tolerate_non_list_payload(provider):
    _DummyClient.replies = [{"unexpected": True}]

    assert await provider.get_nft_balances(ADDRESS, "ethereum") == []
    assert _DummyClient.requests[0]["url"] == f"https://api.example/v3/nft/address/balance/ethereum/{ADDRESS}"


@pytest.mark.asyncio
async def test_unsupported_chain_is_rejected_before_io(provider):
    with pytest.raises(ValueError, match="Unsupported chain"):
        await provider.get_native_balance(ADDRESS, "solana")
    assert _DummyClient.requests == []


@pytest.mark.asyncio
async def test_gas_price_parses_hex_result(provider):
    _DummyClient.replies = [{"jsonrpc": "2.0", "id": 1, "result": "0x4a817c800"}]

    assert await provider.get_gas_price_wei("bsc") == 20_000_000_000
    request = _DummyClient.requests[0]
    assert request["method"] == "POST"
    assert request["url"] == "https://api.example/v3/blockchain/node/BSC"
    assert request["json"] == {"jsonrpc": "2.0", "method": "eth_gasPrice", "params": [], "id": 1}


@pytest.mark.asyncio
async def test_rpc_error_raises_upstream_error(provider):
    _DummyClient.replies = [{"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "boom"}}]

    with pytest.raises(UpstreamHTTPError, match="RPC error: boom"):
        await provider.rpc_call("ethereum", "eth_blockNumber")


@pytest.mark.asyncio
async def test_http_status_error_is_normalised(provider):
    url = f"https://api.example/v3/ethereum/account/balance/{ADDRESS}"
    _DummyClient.replies = [httpx.Response(401, request=httpx.Request("GET", url))]

    with pytest.raises(UpstreamHTTPError) as excinfo:
        await provider.get_native_balance(ADDRESS, "ethereum")

    assert excinfo.value.message == "Request failed with status code 401"
    assert excinfo.value.status_code == 401
    assert excinfo.value.url == url


@pytest.mark.asyncio
async def test_timeout_is_normalised(provider):
    _DummyClient.replies = [httpx.ReadTimeout("timed out")]

    with pytest.raises(UpstreamHTTPError, match="Request timed out"):
        await provider.get_chain_info("base")


@pytest.mark.asyncio
async def test_test_api_key_overrides_header(provider):
    _DummyClient.replies = [{"balance": "42"}]

    assert await provider.test_api_key("other-key") == {"balance": "42"}
    request = _DummyClient.requests[0]
    assert request["url"].endswith(f"/ethereum/account/balance/{KEY_CHECK_ADDRESS}")
    assert request["headers"]["x-api-key"] == "other-key"


@pytest.mark.asyncio
async def test_health_check_without_key_makes_no_request(monkeypatch):
    monkeypatch.setattr(tatum.httpx, "AsyncClient", _DummyClient)
    _DummyClient.requests = []

    provider = TatumProvider(api_key="your_tatum_api_key_here")

    assert await provider.ready() is False
    assert await provider.health_check() == {"status": "unavailable", "reason": "API key not configured"}
    assert _DummyClient.requests == []


@pytest.mark.asyncio
async def test_health_check_reports_upstream_error(provider):
    _DummyClient.replies = [{"error": "bad key"}]

    assert await provider.health_check() == {"status": "error", "reason": "RPC error: bad key"}


@pytest.mark.asyncio
async def test_block_number_parses_hex_result(provider):
    _DummyClient.replies = [{"jsonrpc": "2.0", "id": 1, "result": "0x121eac0"}]

    assert await provider.get_block_number("optimism") == 19_000_000
    assert _DummyClient.requests[0]["json"]["method"] == "eth_blockNumber"


@pytest.mark.asyncio
async def test_balance_wei_reads_latest_block(provider):
    _DummyClient.replies = [{"jsonrpc": "2.0", "id": 1, "result": "0x14d1120d7b160000"}]

    assert await provider.get_balance_wei(ADDRESS, "polygon") == 1_500_000_000_000_000_000
    request = _DummyClient.requests[0]
    assert request["url"] == "https://api.example/v3/blockchain/node/MATIC"
    assert request["json"] == {"jsonrpc": "2.0", "method": "eth_getBalance", "params": [ADDRESS, "latest"], "id": 1}


@pytest.mark.asyncio
async def test_balance_wei_treats_empty_result_as_zero(provider):
    _DummyClient.replies = [{"jsonrpc": "2.0", "id": 1, "result": None}]

    assert await provider.get_balance_wei(ADDRESS, "ethereum") == 0
