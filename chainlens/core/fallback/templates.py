"""Static text used by the fallback responder."""

from typing import Sequence

from ..chains import SUPPORTED_CHAINS, ChainDescriptor


FALLBACK_FOOTER = "*This analysis was generated using fallback mode due to MCP server issues.*"
RESPONSE_FOOTER = "*This response was generated using fallback mode due to MCP server issues.*"
MULTI_CHAIN_FOOTER = (
    "*This comprehensive {subject} was generated using fallback mode "
    "with real blockchain data from all supported chains.*"
)


def fallback_error(subject: str, error: str) -> str:
    return (
        "❌ **Fallback Error:**\n\n"
        f"Unable to fetch {subject}: {error}\n\n"
        "*This is a fallback response due to MCP server issues.*"
    )


def responder_failure(error: str) -> str:
    return (
        "I apologize, but I'm experiencing technical difficulties with both the MCP server "
        f"and fallback systems. Please try again later. Error: {error}"
    )


def api_key_notice(title: str, address: str, chain_count: int) -> str:
    return (
        f"{title} (Mock Data)**\n\n"
        f"**Address:** `{address}`\n"
        "**Total Portfolio Value:** $0.00\n"
        f"**Active Chains:** 0/{chain_count}\n"
        "**Total Tokens:** 0\n\n"
        "**Chain Breakdown:**\n"
        "• No active chains found\n\n"
        "⚠️ **API Key Not Configured:**\n"
        "• Please set TATUM_API_KEY in your .env file\n"
        "• Get a free API key from: https://tatum.io/\n"
        "• Example: TATUM_API_KEY=your_api_key_here\n\n"
        "*This is mock data. Configure your API key for real blockchain data.*"
    )


def chain_catalog(chains: Sequence[ChainDescriptor] = SUPPORTED_CHAINS) -> str:
    sections = [
        f"**{chain.display_name} ({chain.catalog_symbol})**\n"
        f"• {chain.network_type}\n"
        f"• Native Token: {chain.native_symbol}\n"
        f"• Features: {chain.features}\n"
        for chain in chains
    ]
    return (
        "🔗 **Supported Blockchains**\n\n"
        + "\n".join(sections)
        + "\n**Available Commands:**\n"
        "• `analyze <address>` - Wallet analysis\n"
        "• `portfolio <address>` - Portfolio tracking\n"
        "• `nft <address>` - NFT collection\n"
        "• `gas` - Gas prices\n"
        "• Add `multi` for cross-chain analysis\n\n"
        "*All analysis uses real blockchain data from Tatum API.*"
    )


HELP_TEXT = (
    "🔄 **Fallback AI Response - Help**\n\n"
    "**Available Commands in Fallback Mode:**\n\n"
    "**Wallet Analysis:**\n"
    '• "Analyze wallet 0x1234..." - Single chain analysis\n'
    '• "Multi-chain wallet 0x1234..." - All chains analysis\n\n'
    "**Portfolio Tracking:**\n"
    '• "Portfolio 0x1234..." - Comprehensive portfolio analysis\n'
    '• "All chains portfolio 0x1234..." - Multi-chain portfolio\n\n'
    "**NFT Analysis:**\n"
    '• "NFTs 0x1234..." - NFT collection analysis\n'
    '• "Multi-chain NFTs 0x1234..." - All chains NFT analysis\n\n'
    "**Blockchain Info:**\n"
    '• "Ethereum info" - Chain information\n'
    '• "Gas prices" - Current gas fees\n'
    '• "Supported chains" - Available networks\n\n'
    "**Status:** Fallback Mode Active\n"
    "*I can still provide real blockchain data using Tatum APIs!*"
)

SUPPORTED_CHAINS_TEXT = (
    "🔄 **Fallback AI Response - Supported Chains**\n\n"
    "**Available Blockchains:**\n"
    "• **Ethereum (ETH)** - Mainnet\n"
    "• **Polygon (MATIC)** - Layer 2\n"
    "• **BNB Smart Chain (BNB)** - Binance Chain\n"
    "• **Arbitrum (ETH)** - Layer 2\n"
    "• **Base (ETH)** - Coinbase Layer 2\n"
    "• **Optimism (ETH)** - Layer 2\n\n"
    "**Features Available:**\n"
    "• Wallet balance checking\n"
    "• Token portfolio analysis\n"
    "• NFT collection tracking\n"
    "• Gas price monitoring\n"
    "• Multi-chain support\n\n"
    "**Status:** Fallback Mode Active\n"
    "*All data comes from real blockchain via Tatum APIs!*"
)

STATUS_TEXT = (
    "🔄 **Fallback AI Response - System Status**\n\n"
    "**Current Status:**\n"
    "• **MCP Server:** Fallback Mode\n"
    "• **Tatum APIs:** Active ✅\n"
    "• **Multi-Chain Support:** Available ✅\n"
    "• **Real-time Data:** Available ✅\n\n"
    "**What's Working:**\n"
    "• Wallet analysis across all chains\n"
    "• Portfolio tracking and risk analysis\n"
    "• NFT collection analysis\n"
    "• Gas price monitoring\n"
    "• Blockchain information\n\n"
    "**What's Limited:**\n"
    "• Advanced AI analysis (using fallback)\n"
    "• MCP-specific features\n\n"
    "*I'm still fully functional for blockchain analysis!*"
)


def default_text(message: str) -> str:
    return (
        "🔄 **Fallback AI Response**\n\n"
        f'**Your Query:** "{message}"\n\n'
        "I'm currently operating in fallback mode due to MCP server connectivity issues. "
        "However, I can still provide comprehensive blockchain analysis:\n\n"
        "**Available Features:**\n"
        "• **Multi-Chain Wallet Analysis** - Check balances across 6 chains\n"
        "• **Portfolio Tracking** - Complete portfolio analysis with risk assessment\n"
        "• **NFT Analysis** - Multi-chain NFT collection tracking\n"
        "• **Real-time Data** - Live blockchain data via Tatum APIs\n"
        "• **Gas Price Monitoring** - Current network fees\n\n"
        "**Example Commands:**\n"
        '• "Analyze wallet 0x1234..."\n'
        '• "Multi-chain portfolio 0x1234..."\n'
        '• "NFTs 0x1234..."\n'
        '• "Supported chains"\n\n'
        "**Status:** Fallback Mode Active\n"
        "*I'm still fully functional for blockchain analysis!*"
    )
