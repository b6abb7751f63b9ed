"""
Chat dispatch.

Classifies the message, then answers through the MCP tool process while it is
connected and through the fallback responder otherwise. A failed tool call
switches the supervisor to fallback mode and the same request is answered by
the fallback responder, so callers always get text back.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..mcp.errors import ToolCallError
from ..mcp.supervisor import ProcessSupervisor
from . import formatting
from .chains import DEFAULT_CHAIN, get_chain
from .fallback import FallbackResponder
from .intent import Intent, IntentKind, classify


logger = logging.getLogger(__name__)

AUTO_FALLBACK_REASON = "Auto-enable fallback due to MCP unavailability"
ADDRESS_KINDS = (IntentKind.WALLET, IntentKind.PORTFOLIO, IntentKind.NFT)


@dataclass(frozen=True)
class AssistantReply:
    text: str
    source: str
    intent: Optional[Intent] = None

    @property
    def failed(self) -> bool:
        return self.source == "error"


def system_error_text(error: Any) -> str:
    return (
        "❌ **System Error:**\n\n"
        f"Sorry, there was an error processing your request: {error}\n\n"
        "*Please try again.*"
    )


class Assistant:
    """Routes chat messages to the MCP tool process or the fallback responder."""

    def __init__(self, supervisor: ProcessSupervisor, responder: FallbackResponder):
        self.supervisor = supervisor
        self.responder = responder

    async def answer(self, message: str) -> AssistantReply:
        intent: Optional[Intent] = None
        try:
            if not self.supervisor.is_connected and not self.supervisor.fallback_active:
                logger.info("Neither MCP nor fallback available, enabling fallback mode")
                self.supervisor.enable_fallback_mode(AUTO_FALLBACK_REASON)

            intent = classify(message)
            logger.info(
                "Chat intent %s (multi_chain=%s, mcp=%s)",
                intent.kind.value,
                intent.multi_chain,
                self.supervisor.state.value,
            )

            if not self.supervisor.is_connected:
                return await self._fallback(message, intent)

            if intent.needs_data and (intent.address or intent.kind not in ADDRESS_KINDS):
                return await self._answer_with_tool(message, intent)
            return await self._answer_general(message, intent)
        except Exception as exc:  # noqa: BLE001
            logger.error("Chat dispatch failed: %s", exc, exc_info=True)
            return AssistantReply(text=system_error_text(exc), source="error", intent=intent)

    async def _fallback(self, message: str, intent: Intent) -> AssistantReply:
        text = await self.responder.respond(message, intent)
        return AssistantReply(text=text, source="fallback", intent=intent)

    async def _switch_to_fallback(self, message: str, intent: Intent, exc: ToolCallError) -> AssistantReply:
        logger.warning("MCP tool error, switching to fallback mode: %s", exc.message)
        self.supervisor.enable_fallback_mode(f"MCP tool error: {exc.message}")
        return await self._fallback(message, intent)

    @staticmethod
    def tool_request(intent: Intent) -> Tuple[str, Dict[str, Any]]:
        chain = intent.chain or DEFAULT_CHAIN
        if intent.kind in (IntentKind.WALLET, IntentKind.PORTFOLIO):
            return "get_wallet_portfolio", {"address": intent.address, "chain": chain}
        if intent.kind is IntentKind.NFT:
            return "get_tokens", {"address": intent.address, "chain": chain}
        if intent.kind is IntentKind.GAS:
            descriptor = get_chain(chain)
            network = descriptor.data_chain if descriptor else chain
            return "gateway_execute_rpc", {"chain": network, "method": "eth_gasPrice", "params": []}
        return "gateway_get_supported_chains", {}

    async def _answer_with_tool(self, message: str, intent: Intent) -> AssistantReply:
        tool_name, params = self.tool_request(intent)
        try:
            result = await self.supervisor.call_tool(tool_name, params)
        except ToolCallError as exc:
            return await self._switch_to_fallback(message, intent, exc)

        data = formatting.unwrap_tool_result(result)
        chain = intent.chain or DEFAULT_CHAIN
        if intent.kind is IntentKind.WALLET:
            text = formatting.format_wallet(intent.address, data)
        elif intent.kind is IntentKind.PORTFOLIO:
            text = formatting.format_portfolio(intent.address, data)
        elif intent.kind is IntentKind.NFT:
            text = formatting.format_nfts(intent.address, data)
        elif intent.kind is IntentKind.GAS:
            text = formatting.format_gas(chain, data)
        else:
            text = formatting.format_chain(chain, data)
        return AssistantReply(text=text, source="mcp", intent=intent)

    async def _answer_general(self, message: str, intent: Intent) -> AssistantReply:
        try:
            result = await self.supervisor.call_tool("gateway_get_supported_chains", {})
        except ToolCallError as exc:
            return await self._switch_to_fallback(message, intent, exc)
        data = formatting.unwrap_tool_result(result)
        return AssistantReply(text=formatting.format_general(message, data), source="mcp", intent=intent)
