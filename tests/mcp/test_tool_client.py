import asyncio
import json

import pytest

from chainlens.mcp.client import ToolProcessClient
from chainlens.mcp.errors import ToolError, ToolNotConnectedError, ToolTimeoutError


def _respond(client, request_id, result=None, error=None):
    message = {"jsonrpc": "2.0", "id": request_id}
    if error is not None:
        message["error"] = error
    else:
        message["result"] = result
    return client.feed_line(json.dumps(message))


async def _issue(client, writer, tool_name="get_wallet_portfolio", params=None):
    task = asyncio.create_task(client.call_tool(tool_name, params or {}))
    await asyncio.sleep(0)
    return task, writer.messages[-1]["id"]


@pytest.mark.asyncio
async def test_call_without_connection_fails_before_io(writer):
    client = ToolProcessClient(is_connected=lambda: False)
    client.attach(writer)

    with pytest.raises(ToolNotConnectedError) as excinfo:
        await client.call_tool("get_wallet_portfolio", {"address": "0xabc"})

    assert excinfo.value.message == "MCP server not connected"
    assert writer.messages == []
    assert client.pending_count == 0


@pytest.mark.asyncio
async def test_call_without_attached_stream_fails():
    client = ToolProcessClient()

    with pytest.raises(ToolNotConnectedError):
        await client.call_tool("gateway_get_supported_chains")


@pytest.mark.asyncio
async def test_request_envelope_and_result(writer):
    client = ToolProcessClient()
    client.attach(writer)

    task, request_id = await _issue(client, writer, params={"address": "0xabc", "chain": "ethereum"})
    request = writer.messages[-1]
    assert request == {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": "get_wallet_portfolio", "arguments": {"address": "0xabc", "chain": "ethereum"}},
    }
    assert client.pending_count == 1

    assert _respond(client, request_id, {"tokens": [{"symbol": "USDC"}]}) is True
    assert await task == {"tokens": [{"symbol": "USDC"}]}
    assert client.pending_count == 0


@pytest.mark.asyncio
async def test_responses_match_by_id_not_order(writer):
    client = ToolProcessClient()
    client.attach(writer)

    first, first_id = await _issue(client, writer, "get_tokens")
    second, second_id = await _issue(client, writer, "get_wallet_portfolio")

    _respond(client, second_id, "second")
    _respond(client, first_id, "first")

    assert await first == "first"
    assert await second == "second"


@pytest.mark.asyncio
async def test_non_protocol_lines_are_ignored(writer):
    client = ToolProcessClient()
    client.attach(writer)
    task, request_id = await _issue(client, writer)

    assert client.feed_line("Tatum MCP server ready") is False
    assert client.feed_line("") is False
    assert client.feed_line("[1, 2, 3]") is False
    assert client.feed_line(json.dumps({"id": request_id + 100, "result": "stray"})) is False
    assert client.feed_line(json.dumps({"id": True, "result": "bool id"})) is False
    assert not task.done()

    assert client.feed_line(json.dumps({"id": request_id, "result": "ok"}).encode("utf-8")) is True
    assert await task == "ok"


@pytest.mark.asyncio
async def test_error_response_raises_tool_error(writer):
    client = ToolProcessClient()
    client.attach(writer)
    task, request_id = await _issue(client, writer)

    _respond(client, request_id, error={"code": -32602, "message": "Invalid address"})

    with pytest.raises(ToolError) as excinfo:
        await task
    assert excinfo.value.message == "Invalid address"
    assert excinfo.value.code == -32602
    assert excinfo.value.tool_name == "get_wallet_portfolio"


@pytest.mark.asyncio
async def test_timeout_removes_pending_entry(writer):
    client = ToolProcessClient(timeout_seconds=0.01)
    client.attach(writer)

    with pytest.raises(ToolTimeoutError) as excinfo:
        await client.call_tool("get_wallet_portfolio", {})

    assert excinfo.value.message == "MCP request timeout"
    assert client.pending_count == 0
    # A late answer for the abandoned id is dropped
    assert _respond(client, writer.messages[-1]["id"], "late") is False


@pytest.mark.asyncio
async def test_detach_fails_in_flight_calls(writer):
    client = ToolProcessClient()
    client.attach(writer)
    task, _ = await _issue(client, writer)

    client.detach("Tool process exited")

    with pytest.raises(ToolError, match="Tool process exited"):
        await task
    assert client.attached is False
    assert client.pending_count == 0


@pytest.mark.asyncio
async def test_write_failure_becomes_tool_error(writer):
    client = ToolProcessClient()
    client.attach(writer)
    writer.fail_with = BrokenPipeError("pipe closed")

    with pytest.raises(ToolError, match="Failed to write request"):
        await client.call_tool("get_tokens", {})
    assert client.pending_count == 0


@pytest.mark.asyncio
async def test_correlation_ids_are_never_reused_across_reattach(writer):
    client = ToolProcessClient()
    client.attach(writer)
    handshake_id = await client.send_handshake()
    task, first_id = await _issue(client, writer)
    _respond(client, first_id, "one")
    await task

    client.detach()
    client.attach(writer)
    second_handshake = await client.send_handshake()
    task, second_id = await _issue(client, writer)
    _respond(client, second_id, "two")
    await task

    ids = [message["id"] for message in writer.messages]
    assert ids == [handshake_id, first_id, second_handshake, second_id]
    assert ids == sorted(set(ids))
    assert writer.requests("initialize")[0]["params"]["protocolVersion"] == "2024-11-05"
