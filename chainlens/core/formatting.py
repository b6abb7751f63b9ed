"""
Rendering of MCP tool results.

Tool results arrive in the MCP content envelope
(``{"content": [{"type": "text", "text": "..."}]}``) where the text is usually
a JSON document. :func:`unwrap_tool_result` turns that into plain Python data;
the ``format_*`` helpers never raise and fall back to a short summary when the
payload does not have the expected shape.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from .fallback.analysis import GasTiers


logger = logging.getLogger(__name__)

MCP_FOOTER = "*This analysis uses real blockchain data via Tatum MCP server!*"


def unwrap_tool_result(result: Any) -> Any:
    if not isinstance(result, dict) or not isinstance(result.get("content"), list):
        return result

    texts = [
        item.get("text", "")
        for item in result["content"]
        if isinstance(item, dict) and item.get("type") == "text"
    ]
    if not texts:
        return result
    text = "\n".join(texts)
    try:
        return json.loads(text)
    except ValueError:
        return text


def _as_list(data: Any, key: str) -> List[Any]:
    if isinstance(data, dict):
        value = data.get(key)
        return value if isinstance(value, list) else []
    return []


def _token_line(index: int, token: Dict[str, Any]) -> str:
    name = token.get("name") or "Unknown Token"
    symbol = token.get("symbol") or "Unknown"
    balance = token.get("balance") or "0"
    return f"{index}. **{name}** ({symbol}): {balance}"


def format_wallet(address: str, data: Any) -> str:
    try:
        lines = ["💰 **Wallet Analysis (MCP Data):**", "", f"**Address:** `{address}`", ""]
        tokens = [t for t in _as_list(data, "tokens") if isinstance(t, dict)]
        if tokens:
            lines += [f"**Total Tokens Found:** {len(tokens)}", "", "**Top Holdings:**"]
            lines += [_token_line(i, token) for i, token in enumerate(tokens[:5], start=1)]
            if len(tokens) > 5:
                lines.append(f"... and {len(tokens) - 5} more tokens")
        else:
            lines.append("**Status:** No tokens found in this wallet")

        nfts = _as_list(data, "nfts")
        if nfts:
            lines += ["", f"**NFTs Found:** {len(nfts)}"]
        lines += ["", f"{MCP_FOOTER} 🔗"]
        return "\n".join(lines)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Error formatting MCP wallet response: %s", exc)
        return (
            f"💰 **Wallet Analysis:**\n\n**Address:** `{address}`\n\n"
            "**Status:** Analysis completed using Tatum MCP server\n\n*Powered by Tatum MCP!* 🔗"
        )


def format_portfolio(address: str, data: Any) -> str:
    try:
        lines = ["📊 **Portfolio Analysis (MCP Data):**", "", f"**Address:** `{address}`", ""]
        tokens = [t for t in _as_list(data, "tokens") if isinstance(t, dict)]
        if tokens:
            by_chain: Dict[str, int] = {}
            for token in tokens:
                chain = str(token.get("chain") or "unknown")
                by_chain[chain] = by_chain.get(chain, 0) + 1
            lines += [
                "**Portfolio Summary:**",
                f"• **Total Tokens**: {len(tokens)}",
                f"• **Active Chains**: {len(by_chain)}",
                "",
                "**Chain Distribution:**",
            ]
            lines += [f"• **{chain.upper()}**: {count} tokens" for chain, count in by_chain.items()]
            lines += ["", "**Top Holdings:**"]
            lines += [_token_line(i, token) for i, token in enumerate(tokens[:3], start=1)]
        else:
            lines.append("**Status:** No tokens found in this wallet")

        nfts = _as_list(data, "nfts")
        if nfts:
            lines += ["", f"**NFT Collection:** {len(nfts)} NFTs found"]
        lines += ["", f"{MCP_FOOTER} 💰"]
        return "\n".join(lines)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Error formatting MCP portfolio response: %s", exc)
        return (
            f"📊 **Portfolio Analysis:**\n\n**Address:** `{address}`\n\n"
            "**Status:** Analysis completed using Tatum MCP server\n\n*Powered by Tatum MCP!* 💰"
        )


def format_nfts(address: str, data: Any) -> str:
    try:
        nfts = data if isinstance(data, list) else _as_list(data, "nfts") or _as_list(data, "tokens")
        nfts = [nft for nft in nfts if isinstance(nft, dict)]
        lines = ["🖼️ **NFT Analysis (MCP Data):**", "", f"**Address:** `{address}`", ""]
        if nfts:
            lines += ["**NFT Collection Found:**", f"• **Total NFTs**: {len(nfts)}", "", "**Top NFTs:**"]
            for index, nft in enumerate(nfts[:3], start=1):
                lines.append(f"{index}. **{nft.get('name') or 'Unknown NFT'}** (ID: {nft.get('tokenId') or 'Unknown'})")
            if len(nfts) > 3:
                lines.append(f"... and {len(nfts) - 3} more NFTs")
        else:
            lines.append("**Status:** No NFTs found in this wallet")
        lines += ["", f"{MCP_FOOTER} 🖼️"]
        return "\n".join(lines)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Error formatting MCP NFT response: %s", exc)
        return (
            f"🖼️ **NFT Analysis:**\n\n**Address:** `{address}`\n\n"
            "**Status:** Analysis completed using Tatum MCP server\n\n*Powered by Tatum MCP!* 🖼️"
        )


def _chain_name(entry: Any) -> str:
    if isinstance(entry, dict):
        return str(entry.get("name") or entry.get("chain") or entry.get("id") or "unknown")
    return str(entry)


def supported_chain_names(data: Any) -> List[str]:
    if isinstance(data, list):
        return [_chain_name(entry) for entry in data]
    return [_chain_name(entry) for entry in _as_list(data, "chains")]


def format_chain(chain: str, data: Any) -> str:
    try:
        lines = ["🔗 **Blockchain Information (MCP Data):**", ""]
        names = supported_chain_names(data)
        if names:
            lines.append("**Supported Chains:**")
            lines += [f"{index}. **{name}**" for index, name in enumerate(names, start=1)]
            lines += ["", f"**Current Chain:** {chain.upper()}"]
        else:
            lines += [f"**Chain:** {chain.upper()}", "**Status:** Blockchain data retrieved via Tatum MCP"]
        lines += ["", "*This data comes directly from Tatum MCP server!* 🔗"]
        return "\n".join(lines)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Error formatting MCP chain response: %s", exc)
        return (
            f"🔗 **Blockchain Information:**\n\n**Chain:** {chain.upper()}\n\n"
            "**Status:** Data retrieved via Tatum MCP server\n\n*Powered by Tatum MCP!* 🔗"
        )


def _gas_price_wei(data: Any) -> Optional[int]:
    if isinstance(data, dict):
        data = data.get("result")
    if isinstance(data, int) and not isinstance(data, bool):
        return data
    if isinstance(data, str):
        try:
            return int(data, 16) if data.startswith("0x") else int(data)
        except ValueError:
            return None
    return None


def format_gas(chain: str, data: Any) -> str:
    wei = _gas_price_wei(data)
    if wei is None:
        return f"⛽ **Gas Prices (MCP Data):**\n\n**Chain:** {chain}\n**Status:** Gas price unavailable\n\n{MCP_FOOTER}"
    tiers = GasTiers.from_wei(wei)
    return "\n".join(
        [
            "⛽ **Gas Prices (MCP Data):**",
            "",
            f"**Chain:** {chain}",
            f"**Slow:** {tiers.slow} Gwei",
            f"**Standard:** {tiers.standard} Gwei",
            f"**Fast:** {tiers.fast} Gwei",
            f"**Base Fee:** {tiers.base_fee} Gwei",
            "",
            f"{MCP_FOOTER} ⛽",
        ]
    )


def format_general(message: str, data: Any) -> str:
    names = supported_chain_names(data)
    chains = "\n".join(f"• {name}" for name in names) if names else "Unable to fetch chains"
    return (
        f"🤖 **AI Assistant Response (MCP)**\n\n{message}\n\n"
        f"**Available Blockchains:**\n{chains}\n\n"
        "*Ask me about wallet analysis, portfolio tracking, or NFT information!*"
    )
