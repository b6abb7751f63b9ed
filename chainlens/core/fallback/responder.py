from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from ...config import settings
from ...providers.base import ChainDataProvider
from ...providers.errors import UpstreamHTTPError
from ..chains import DEFAULT_CHAIN, SUPPORTED_CHAINS, ChainDescriptor, require_chain
from ..intent import Intent, IntentKind
from . import templates
from .analysis import (
    ChainHoldings,
    GasTiers,
    NFTHoldings,
    assess_risk,
    nft_insights,
    percentage,
    portfolio_recommendations,
    shorten_address,
    to_float,
    token_label,
    top_collections,
)


logger = logging.getLogger(__name__)

# Multi-chain wallet reports add a configuration hint from this many failed chains.
API_ISSUE_THRESHOLD = 3


def _describe(exc: BaseException) -> str:
    if isinstance(exc, UpstreamHTTPError):
        return exc.message
    if isinstance(exc, asyncio.TimeoutError):
        return "Request timed out"
    return str(exc) or exc.__class__.__name__


class FallbackResponder:
    """Answers chat intents straight from the Tatum APIs.

    Used whenever the MCP tool process is unavailable or a tool call fails.
    ``respond`` never raises: single-chain failures become a fallback error
    text, and each chain in a multi-chain fan-out is isolated so one failing
    chain only shows up in the error count.
    """

    def __init__(
        self,
        provider: ChainDataProvider,
        chains: Sequence[ChainDescriptor] = SUPPORTED_CHAINS,
        chain_timeout: Optional[float] = None,
    ) -> None:
        self.provider = provider
        self.chains = tuple(chains)
        self.chain_timeout = chain_timeout or settings.chain_request_timeout_seconds

    async def respond(self, message: str, intent: Intent) -> str:
        logger.info("Fallback response for %s intent (multi_chain=%s)", intent.kind.value, intent.multi_chain)
        try:
            return await self._dispatch(message or "", intent)
        except Exception as exc:  # noqa: BLE001
            logger.error("Fallback responder failed: %s", exc, exc_info=True)
            return templates.responder_failure(_describe(exc))

    async def _dispatch(self, message: str, intent: Intent) -> str:
        lower = message.lower()
        chain = intent.chain or DEFAULT_CHAIN

        if intent.kind is IntentKind.WALLET and intent.address:
            if intent.multi_chain or "all chain" in lower or "multi-chain" in lower:
                return await self.multi_chain_wallet(intent.address)
            return await self.wallet(intent.address, chain)

        if intent.kind is IntentKind.PORTFOLIO and intent.address:
            if intent.multi_chain or any(word in lower for word in ("all chain", "multi-chain", "portfolio")):
                return await self.multi_chain_portfolio(intent.address)
            return await self.portfolio(intent.address, chain)

        if intent.kind is IntentKind.NFT and intent.address:
            return await self.multi_chain_nfts(intent.address)

        if intent.kind is IntentKind.CHAIN_INFO:
            if not intent.needs_data:
                return templates.chain_catalog(self.chains)
            return await self.chain_info(chain)

        if intent.kind is IntentKind.GAS:
            return await self.gas(chain)

        return self.general(message)

    # ---------------------------
    # Single chain
    # ---------------------------
    async def wallet(self, address: str, chain: str = DEFAULT_CHAIN) -> str:
        logger.info("Fetching wallet data for %s on %s", address, chain)
        try:
            descriptor = require_chain(chain)
            native = await self.provider.get_native_balance(address, descriptor.id)
            tokens = await self.provider.get_token_balances(address, descriptor.id)
        except (UpstreamHTTPError, ValueError) as exc:
            logger.warning("Single-chain wallet analysis failed: %s", _describe(exc))
            return templates.fallback_error("wallet data", _describe(exc))

        lines = [
            "💰 **Wallet Analysis (Fallback Mode)**",
            "",
            f"**Address:** `{address}`",
            f"**Chain:** {descriptor.id}",
            f"**Native Balance:** {native.get('balance') or '0'} {descriptor.native_symbol}",
            "",
        ]
        if tokens:
            lines.append("**Token Holdings:**")
            total_value = 0.0
            for token in tokens:
                total_value += to_float(token.get("usdValue"))
                lines.append(f"• **{token_label(token)}**: {token.get('balance') or '0'} tokens")
            lines += ["", f"**Total Portfolio Value:** ${total_value:.2f}"]
        else:
            lines.append("**No token holdings found**")
        lines += ["", templates.FALLBACK_FOOTER]
        return "\n".join(lines)

    async def portfolio(self, address: str, chain: str = DEFAULT_CHAIN) -> str:
        logger.info("Fetching portfolio data for %s on %s", address, chain)
        try:
            descriptor = require_chain(chain)
            native = await self.provider.get_native_balance(address, descriptor.id)
            tokens = await self.provider.get_token_balances(address, descriptor.id)
        except (UpstreamHTTPError, ValueError) as exc:
            logger.warning("Single-chain portfolio analysis failed: %s", _describe(exc))
            return templates.fallback_error("portfolio data", _describe(exc))

        holdings = ChainHoldings.from_responses(descriptor, native, tokens)
        lines = [
            "📊 **Portfolio Analysis (Fallback Mode)**",
            "",
            f"**Address:** `{address}`",
            f"**Chain:** {descriptor.id}",
            "",
            f"**Native Balance:** {holdings.native_balance} {descriptor.native_symbol} (${holdings.native_value:.2f})",
            "",
        ]
        if holdings.tokens:
            lines.append("**Token Holdings:**")
            ranked = sorted(holdings.tokens, key=lambda t: to_float(t.get("usdValue")), reverse=True)
            for index, token in enumerate(ranked, start=1):
                value = to_float(token.get("usdValue"))
                share = percentage(value, holdings.total_value)
                lines.append(
                    f"{index}. **{token_label(token)}**: {token.get('balance') or '0'} (${value:.2f} - {share:.1f}%)"
                )
            lines += [
                "",
                f"**Total Portfolio Value:** ${holdings.total_value:.2f}",
                f"**Token Count:** {holdings.token_count}",
            ]
        else:
            lines.append("**No token holdings found**")
        lines += ["", templates.FALLBACK_FOOTER]
        return "\n".join(lines)

    async def chain_info(self, chain: str = DEFAULT_CHAIN) -> str:
        try:
            descriptor = require_chain(chain)
            info = await self.provider.get_chain_info(descriptor.id)
        except (UpstreamHTTPError, ValueError) as exc:
            logger.warning("Chain info analysis failed: %s", _describe(exc))
            return templates.fallback_error("chain data", _describe(exc))

        return "\n".join(
            [
                "🔄 **Fallback Analysis - Chain Information**",
                "",
                f"**Chain:** {descriptor.id}",
                f"**Block Height:** {info.get('blockHeight') or info.get('blocks') or 'N/A'}",
                f"**Gas Price:** {info.get('gasPrice') or 'N/A'} Gwei",
                "",
                templates.RESPONSE_FOOTER,
            ]
        )

    async def gas(self, chain: str = DEFAULT_CHAIN) -> str:
        try:
            descriptor = require_chain(chain)
            tiers = GasTiers.from_wei(await self.provider.get_gas_price_wei(descriptor.id))
        except (UpstreamHTTPError, ValueError) as exc:
            logger.warning("Gas info analysis failed: %s", _describe(exc))
            return templates.fallback_error("gas data", _describe(exc))

        return "\n".join(
            [
                "🔄 **Fallback Analysis - Gas Prices**",
                "",
                f"**Chain:** {descriptor.id}",
                f"**Slow:** {tiers.slow} Gwei",
                f"**Standard:** {tiers.standard} Gwei",
                f"**Fast:** {tiers.fast} Gwei",
                f"**Base Fee:** {tiers.base_fee} Gwei",
                "",
                templates.RESPONSE_FOOTER,
            ]
        )

    def general(self, message: str) -> str:
        lower = (message or "").lower()
        if "help" in lower or "what can you do" in lower:
            return templates.HELP_TEXT
        if any(word in lower for word in ("supported", "chains", "networks")):
            return templates.SUPPORTED_CHAINS_TEXT
        if "status" in lower or "health" in lower:
            return templates.STATUS_TEXT
        return templates.default_text(message)

    # ---------------------------
    # Multi-chain fan-out
    # ---------------------------
    async def _fetch_holdings(self, address: str, chain: ChainDescriptor) -> ChainHoldings:
        timeout = self.chain_timeout
        native, tokens = await asyncio.wait_for(
            asyncio.gather(
                self.provider.get_native_balance(address, chain.id, timeout=timeout),
                self.provider.get_token_balances(address, chain.id, timeout=timeout),
            ),
            timeout=timeout,
        )
        return ChainHoldings.from_responses(chain, native, tokens)

    async def _fetch_nfts(self, address: str, chain: ChainDescriptor) -> NFTHoldings:
        timeout = self.chain_timeout
        nfts = await asyncio.wait_for(
            self.provider.get_nft_balances(address, chain.id, timeout=timeout),
            timeout=timeout,
        )
        return NFTHoldings(chain=chain, nfts=[{**nft, "chain": chain.id} for nft in nfts])

    async def collect_holdings(self, address: str) -> List[ChainHoldings]:
        """Fetch every chain concurrently; failed chains come back zeroed with ``error`` set."""
        results = await asyncio.gather(
            *(self._fetch_holdings(address, chain) for chain in self.chains),
            return_exceptions=True,
        )
        holdings: List[ChainHoldings] = []
        for chain, result in zip(self.chains, results):
            if isinstance(result, Exception):
                logger.warning("Error fetching data for %s: %s", chain.id, _describe(result))
                holdings.append(ChainHoldings(chain=chain, error=_describe(result)))
            else:
                holdings.append(result)
        return holdings

    async def collect_nfts(self, address: str) -> List[NFTHoldings]:
        results = await asyncio.gather(
            *(self._fetch_nfts(address, chain) for chain in self.chains),
            return_exceptions=True,
        )
        holdings: List[NFTHoldings] = []
        for chain, result in zip(self.chains, results):
            if isinstance(result, Exception):
                logger.warning("Error fetching NFT data for %s: %s", chain.id, _describe(result))
                holdings.append(NFTHoldings(chain=chain, error=_describe(result)))
            else:
                holdings.append(result)
        return holdings

    async def _key_configured(self) -> bool:
        try:
            return await self.provider.ready()
        except Exception:  # noqa: BLE001
            return False

    async def multi_chain_wallet(self, address: str) -> str:
        chain_count = len(self.chains)
        logger.info("Fetching multi-chain wallet data for %s across %d chains", address, chain_count)
        if not await self._key_configured():
            logger.warning("TATUM_API_KEY not configured, returning setup notice")
            return templates.api_key_notice("💰 **Multi-Chain Wallet Analysis", address, chain_count)

        try:
            holdings = await self.collect_holdings(address)
        except Exception as exc:  # noqa: BLE001
            logger.error("Multi-chain wallet analysis failed: %s", exc, exc_info=True)
            return templates.fallback_error("multi-chain wallet data", _describe(exc))

        total_value = sum(item.total_value for item in holdings)
        total_tokens = sum(item.token_count for item in holdings)
        active = [item for item in holdings if item.is_active]
        api_errors = sum(1 for item in holdings if item.error)
        logger.info(
            "Multi-chain analysis complete: value=%.2f active=%d/%d tokens=%d errors=%d",
            total_value, len(active), chain_count, total_tokens, api_errors,
        )

        lines = [
            "💰 **Multi-Chain Wallet Analysis (Fallback Mode)**",
            "",
            f"**Address:** `{address}`",
            f"**Total Portfolio Value:** ${total_value:.2f}",
            f"**Active Chains:** {len(active)}/{chain_count}",
            f"**Total Tokens:** {total_tokens}",
        ]
        if api_errors:
            lines.append(f"**API Errors:** {api_errors}/{chain_count} chains")
        lines += ["", "**Chain Breakdown:**"]

        if active:
            for item in sorted(active, key=lambda h: h.total_value + h.token_count, reverse=True):
                share = percentage(item.total_value, total_value)
                lines += [
                    f"• **{item.chain.id.upper()}**: ${item.total_value:.2f} ({share:.1f}%)",
                    f"  - Native: {item.native_balance} {item.chain.native_symbol} (${item.native_value:.2f})",
                    f"  - Tokens: {item.token_count} tokens (${item.token_value:.2f})",
                ]
        else:
            lines += [
                "• No active chains found",
                "• This could be due to:",
                "  - Invalid API key",
                "  - Network issues",
                "  - Wallet has no assets",
            ]

        all_tokens = [token for item in holdings for token in item.tokens]
        top_tokens = sorted(all_tokens, key=lambda t: to_float(t.get("balance")), reverse=True)[:5]
        if top_tokens:
            lines += ["", "**Top Holdings Across All Chains:**"]
            for index, token in enumerate(top_tokens, start=1):
                lines.append(
                    f"{index}. **{token_label(token)}** ({token['chain']}): {token.get('balance') or '0'} tokens "
                    f"({token.get('decimals') or 18} decimals, {token.get('type') or 'fungible'})"
                )

        if api_errors >= API_ISSUE_THRESHOLD:
            lines += [
                "",
                "⚠️ **API Issues Detected:**",
                f"• {api_errors}/{chain_count} chains failed to respond",
                "• Please check your API key configuration",
                "• Get a free API key from: https://tatum.io/",
            ]

        lines += ["", templates.MULTI_CHAIN_FOOTER.format(subject="analysis")]
        return "\n".join(lines)

    async def multi_chain_portfolio(self, address: str) -> str:
        chain_count = len(self.chains)
        logger.info("Fetching multi-chain portfolio data for %s", address)
        if not await self._key_configured():
            return templates.api_key_notice("📊 **Multi-Chain Portfolio Analysis", address, chain_count)

        try:
            holdings = await self.collect_holdings(address)
        except Exception as exc:  # noqa: BLE001
            logger.error("Multi-chain portfolio analysis failed: %s", exc, exc_info=True)
            return templates.fallback_error("multi-chain portfolio data", _describe(exc))

        total_value = sum(item.total_value for item in holdings)
        total_tokens = sum(item.token_count for item in holdings)
        active_count = sum(1 for item in holdings if item.is_active)
        api_errors = sum(1 for item in holdings if item.error)
        risk = assess_risk(holdings, chain_count)

        lines = [
            "📊 **Multi-Chain Portfolio Analysis (Fallback Mode)**",
            "",
            f"**Address:** `{address}`",
            f"**Total Portfolio Value:** ${total_value:.2f}",
            f"**Active Chains:** {active_count}/{chain_count}",
            f"**Total Tokens:** {total_tokens}",
        ]
        if api_errors:
            lines.append(f"**API Errors:** {api_errors}/{chain_count} chains")
        lines += [
            "",
            "**Risk Analysis:**",
            f"• **Diversification:** {risk.diversification:.1f}% ({active_count}/{chain_count} chains)",
            f"• **Concentration Risk:** {risk.concentration:.1f}% (highest chain)",
            f"• **Portfolio Stability:** {risk.stability:.1f}% (based on token count)",
            "",
            "**Chain Distribution:**",
        ]
        valued = sorted((item for item in holdings if item.total_value > 0), key=lambda h: h.total_value, reverse=True)
        for item in valued:
            share = percentage(item.total_value, total_value)
            lines += [
                f"• **{item.chain.display_name}**: ${item.total_value:.2f} ({share:.1f}%)",
                f"  - Native: {item.native_balance} {item.chain.native_symbol} (${item.native_value:.2f})",
                f"  - Tokens: {item.token_count} tokens (${item.token_value:.2f})",
            ]

        all_tokens = [token for item in holdings for token in item.tokens]
        top_tokens = sorted(all_tokens, key=lambda t: to_float(t.get("usdValue")), reverse=True)[:10]
        if top_tokens:
            lines += ["", "**Top 10 Holdings Across All Chains:**"]
            for index, token in enumerate(top_tokens, start=1):
                value = to_float(token.get("usdValue"))
                lines.append(
                    f"{index}. **{token_label(token)}** ({token['chain']}): {token.get('balance') or '0'} "
                    f"(${value:.2f} - {percentage(value, total_value):.1f}%)"
                )

        lines += ["", "**Portfolio Recommendations:**"]
        lines += [f"• {text}" for text in portfolio_recommendations(risk, total_tokens, active_count)]
        lines += ["", templates.MULTI_CHAIN_FOOTER.format(subject="portfolio analysis")]
        return "\n".join(lines)

    async def multi_chain_nfts(self, address: str) -> str:
        chain_count = len(self.chains)
        logger.info("Fetching multi-chain NFT data for %s", address)
        if not await self._key_configured():
            return templates.api_key_notice("🖼️ **Multi-Chain NFT Analysis", address, chain_count)

        try:
            holdings = await self.collect_nfts(address)
        except Exception as exc:  # noqa: BLE001
            logger.error("Multi-chain NFT analysis failed: %s", exc, exc_info=True)
            return templates.fallback_error("multi-chain NFT data", _describe(exc))

        total = sum(item.count for item in holdings)
        active_count = sum(1 for item in holdings if item.count > 0)
        collections = {key for item in holdings for key in item.collection_keys()}
        api_errors = sum(1 for item in holdings if item.error)

        lines = [
            "🖼️ **Multi-Chain NFT Analysis (Fallback Mode)**",
            "",
            f"**Address:** `{address}`",
            f"**Total NFTs:** {total}",
            f"**Active Chains:** {active_count}/{chain_count}",
            f"**Unique Collections:** {len(collections)}",
        ]
        if api_errors:
            lines.append(f"**API Errors:** {api_errors}/{chain_count} chains")
        lines += ["", "**NFT Distribution by Chain:**"]
        for item in sorted((h for h in holdings if h.count > 0), key=lambda h: h.count, reverse=True):
            lines.append(f"• **{item.chain.display_name}**: {item.count} NFTs ({percentage(item.count, total):.1f}%)")

        ranked = top_collections(holdings)
        if ranked:
            lines += ["", "**Top Collections:**"]
            for index, ((contract, chain_id), count) in enumerate(ranked, start=1):
                lines.append(f"{index}. **{shorten_address(contract)}** ({chain_id}): {count} NFTs")

        recent: List[Dict[str, Any]] = [nft for item in holdings for nft in item.nfts][:5]
        if recent:
            lines += ["", "**Recent NFTs:**"]
            for index, nft in enumerate(recent, start=1):
                lines += [
                    f"{index}. **{nft.get('name') or 'Unnamed'}** ({nft['chain']})",
                    f"   Token ID: {nft.get('tokenId') or 'Unknown'}",
                    f"   Collection: {shorten_address(nft.get('contractAddress'))}",
                ]

        lines += ["", "**NFT Portfolio Insights:**"]
        lines += [f"• {text}" for text in nft_insights(total, active_count)]
        lines += ["", templates.MULTI_CHAIN_FOOTER.format(subject="NFT analysis")]
        return "\n".join(lines)
