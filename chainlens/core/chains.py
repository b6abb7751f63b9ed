"""
Static chain registry.

Every chain the backend can query, with the identifiers the Tatum APIs expect.
Descriptors are immutable for the lifetime of the process.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ChainDescriptor:
    """Static configuration for a supported chain."""
    id: str
    display_name: str
    native_symbol: str
    decimals: int
    api_chain: str
    data_chain: str
    network_type: str = ""
    features: str = ""

    @property
    def catalog_symbol(self) -> str:
        """Ticker shown in the chain catalog (the L2s list their own tag)."""
        return _CATALOG_SYMBOLS.get(self.id, self.native_symbol)


_CATALOG_SYMBOLS = {
    "bsc": "BSC",
    "arbitrum": "ARB",
    "base": "BASE",
    "optimism": "OP",
}


SUPPORTED_CHAINS: Tuple[ChainDescriptor, ...] = (
    ChainDescriptor(
        id="ethereum",
        display_name="Ethereum",
        native_symbol="ETH",
        decimals=18,
        api_chain="ETH",
        data_chain="ethereum-mainnet",
        network_type="Mainnet: Ethereum main network",
        features="Smart contracts, DeFi, NFTs",
    ),
    ChainDescriptor(
        id="polygon",
        display_name="Polygon",
        native_symbol="MATIC",
        decimals=18,
        api_chain="MATIC",
        data_chain="polygon-mainnet",
        network_type="Layer 2: Ethereum scaling solution",
        features="Low fees, fast transactions",
    ),
    ChainDescriptor(
        id="bsc",
        display_name="BNB Smart Chain",
        native_symbol="BNB",
        decimals=18,
        api_chain="BSC",
        data_chain="bsc-mainnet",
        network_type="Binance Chain: High performance",
        features="DeFi, DApps, low costs",
    ),
    ChainDescriptor(
        id="arbitrum",
        display_name="Arbitrum",
        native_symbol="ETH",
        decimals=18,
        api_chain="ETH",
        data_chain="arbitrum-one-mainnet",
        network_type="Layer 2: Optimistic rollup",
        features="Ethereum compatibility, low fees",
    ),
    ChainDescriptor(
        id="base",
        display_name="Base",
        native_symbol="ETH",
        decimals=18,
        api_chain="ETH",
        data_chain="base-mainnet",
        network_type="Coinbase Layer 2: OP Stack",
        features="Coinbase integration, fast finality",
    ),
    ChainDescriptor(
        id="optimism",
        display_name="Optimism",
        native_symbol="ETH",
        decimals=18,
        api_chain="ETH",
        data_chain="optimism-mainnet",
        network_type="Layer 2: Optimistic rollup",
        features="Ethereum scaling, low fees",
    ),
)

DEFAULT_CHAIN = "ethereum"

_BY_ID: Dict[str, ChainDescriptor] = {chain.id: chain for chain in SUPPORTED_CHAINS}


def get_chain(chain_id: str) -> Optional[ChainDescriptor]:
    """Look up a chain by id (case-insensitive)."""
    return _BY_ID.get((chain_id or "").strip().lower())


def require_chain(chain_id: str) -> ChainDescriptor:
    chain = get_chain(chain_id)
    if chain is None:
        raise ValueError(f"Unsupported chain: {chain_id}")
    return chain


def chain_ids() -> List[str]:
    return [chain.id for chain in SUPPORTED_CHAINS]


def is_supported(chain_id: str) -> bool:
    return get_chain(chain_id) is not None
