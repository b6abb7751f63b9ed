"""Network activity snapshot across the supported chains.

Each chain contributes its current gas price and block height from the RPC
gateway. Activity figures are scaled from the block height; a lookup that
fails reports zeros for that chain instead of failing the snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Sequence

from ..providers.base import ChainDataProvider
from ..providers.errors import UpstreamHTTPError
from .chains import SUPPORTED_CHAINS, ChainDescriptor
from .fallback.analysis import WEI_PER_GWEI


logger = logging.getLogger(__name__)

BLOCKS_PER_ACTIVITY_UNIT = 1000


def wei_to_gwei(wei: int) -> int:
    return int((Decimal(wei) / WEI_PER_GWEI).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_native_amount(wei: int, decimals: int, places: int = 6) -> str:
    """Base units to a fixed-point string, e.g. 1500000000000000000 -> "1.500000"."""
    amount = Decimal(wei).scaleb(-decimals)
    return str(amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class NetworkStats:
    transaction_count: int = 0
    volume: int = 0
    active_wallets: int = 0
    block_number: int = 0

    @classmethod
    def from_block_number(cls, block_number: int) -> "NetworkStats":
        activity = block_number // BLOCKS_PER_ACTIVITY_UNIT
        return cls(
            transaction_count=activity * 100,
            volume=activity * 1_000_000,
            active_wallets=activity * 10,
            block_number=block_number,
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "transaction_count": self.transaction_count,
            "volume": self.volume,
            "active_wallets": self.active_wallets,
            "block_number": self.block_number,
        }


@dataclass(frozen=True)
class ChainActivity:
    chain: ChainDescriptor
    gas_price_gwei: int = 0
    stats: NetworkStats = NetworkStats()


@dataclass(frozen=True)
class AnalyticsSnapshot:
    chains: Sequence[ChainActivity]

    @property
    def total_transactions(self) -> int:
        return sum(item.stats.transaction_count for item in self.chains)

    @property
    def total_volume(self) -> int:
        return sum(item.stats.volume for item in self.chains)

    @property
    def active_wallets(self) -> int:
        return sum(item.stats.active_wallets for item in self.chains)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_transactions": self.total_transactions,
            "total_volume": self.total_volume,
            "active_wallets": self.active_wallets,
            "chain_distribution": {
                item.chain.id: {
                    "name": item.chain.display_name,
                    "symbol": item.chain.native_symbol,
                    "gas_price": item.gas_price_gwei,
                    "network_stats": item.stats.to_dict(),
                }
                for item in self.chains
            },
            "market_cap": 0,
            "price_changes": {},
            "network_stats": {},
        }


async def _chain_activity(provider: ChainDataProvider, chain: ChainDescriptor) -> ChainActivity:
    gas_wei, block_number = await asyncio.gather(
        provider.get_gas_price_wei(chain.id),
        provider.get_block_number(chain.id),
        return_exceptions=True,
    )

    if isinstance(gas_wei, (UpstreamHTTPError, ValueError)):
        logger.warning("Gas price fetch failed for %s: %s", chain.id, gas_wei)
        gas_price = 0
    elif isinstance(gas_wei, BaseException):
        raise gas_wei
    else:
        gas_price = wei_to_gwei(gas_wei)

    if isinstance(block_number, (UpstreamHTTPError, ValueError)):
        logger.warning("Network stats fetch failed for %s: %s", chain.id, block_number)
        stats = NetworkStats()
    elif isinstance(block_number, BaseException):
        raise block_number
    else:
        stats = NetworkStats.from_block_number(block_number)

    return ChainActivity(chain=chain, gas_price_gwei=gas_price, stats=stats)


async def collect_analytics(
    provider: ChainDataProvider,
    chains: Sequence[ChainDescriptor] = SUPPORTED_CHAINS,
) -> AnalyticsSnapshot:
    logger.info("Fetching analytics across %d chains", len(chains))
    results: List[ChainActivity] = await asyncio.gather(
        *(_chain_activity(provider, chain) for chain in chains)
    )
    return AnalyticsSnapshot(chains=tuple(results))
