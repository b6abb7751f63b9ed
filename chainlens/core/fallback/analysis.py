"""
Value objects and heuristics behind the fallback multi-chain reports.

Values are USD amounts when the upstream API reports them and zero otherwise;
the Tatum balance endpoints rarely do, so most reports are driven by balances
and token counts rather than value.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..chains import SUPPORTED_CHAINS, ChainDescriptor


WEI_PER_GWEI = Decimal(10) ** 9


def to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def shorten_address(address: Optional[str]) -> str:
    if not address:
        return "Unknown"
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def token_label(token: Dict[str, Any]) -> str:
    return token.get("symbol") or shorten_address(token.get("tokenAddress"))


def percentage(part: float, total: float) -> float:
    return (part / total) * 100 if total > 0 else 0.0


@dataclass
class ChainHoldings:
    """Native and fungible holdings of one address on one chain."""

    chain: ChainDescriptor
    native_balance: str = "0"
    native_value: float = 0.0
    tokens: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def token_value(self) -> float:
        return sum(to_float(token.get("usdValue")) for token in self.tokens)

    @property
    def total_value(self) -> float:
        return self.native_value + self.token_value

    @property
    def token_count(self) -> int:
        return len(self.tokens)

    @property
    def is_active(self) -> bool:
        return self.total_value > 0 or self.token_count > 0 or to_float(self.native_balance) > 0

    @classmethod
    def from_responses(
        cls,
        chain: ChainDescriptor,
        native: Dict[str, Any],
        tokens: Iterable[Dict[str, Any]],
    ) -> "ChainHoldings":
        return cls(
            chain=chain,
            native_balance=str(native.get("balance") or "0"),
            native_value=to_float(native.get("usdValue")),
            tokens=[{**token, "chain": chain.id} for token in tokens],
        )


@dataclass
class NFTHoldings:
    chain: ChainDescriptor
    nfts: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.nfts)

    def collection_keys(self) -> List[Tuple[str, str]]:
        return [(nft.get("contractAddress") or "unknown", self.chain.id) for nft in self.nfts]


@dataclass(frozen=True)
class PortfolioRisk:
    diversification: float
    concentration: float
    stability: float


def assess_risk(holdings: Sequence[ChainHoldings], total_chains: int = len(SUPPORTED_CHAINS)) -> PortfolioRisk:
    """Heuristic risk figures, all in percent.

    concentration: share of the largest chain in the total value.
    diversification: active chains over all supported chains.
    stability: token count against a ten-token reference, capped at 100.
    """
    total_value = sum(item.total_value for item in holdings)
    largest = max((item.total_value for item in holdings), default=0.0)
    active = sum(1 for item in holdings if item.is_active)
    tokens = sum(item.token_count for item in holdings)

    concentration = (largest / total_value) * 100 if total_value > 0 else 0.0
    diversification = active / total_chains * 100 if total_chains else 0.0
    stability = min(100.0, (tokens / 10) * 100) if tokens > 0 else 0.0
    return PortfolioRisk(
        diversification=diversification,
        concentration=concentration,
        stability=stability,
    )


def portfolio_recommendations(risk: PortfolioRisk, total_tokens: int, active_chains: int) -> List[str]:
    recommendations = []
    if risk.diversification < 50:
        recommendations.append("Consider diversifying across more chains")
    if risk.concentration > 70:
        recommendations.append("High concentration risk - consider rebalancing")
    if total_tokens < 5:
        recommendations.append("Consider adding more tokens for better diversification")
    if active_chains >= 4:
        recommendations.append("Good multi-chain diversification! ✅")
    return recommendations


def nft_insights(total_nfts: int, active_chains: int) -> List[str]:
    if total_nfts == 0:
        return [
            "No NFTs found across all chains",
            "Consider exploring popular collections on different chains",
        ]
    if total_nfts < 5:
        return [
            "Small NFT collection - consider expanding",
            "Good opportunity to diversify across chains",
        ]
    if active_chains >= 3:
        return [
            "Well-diversified NFT portfolio across multiple chains! ✅",
            "Good balance of collections and chains",
        ]
    return [
        "Consider diversifying across more chains",
        f"Current focus on {active_chains} chain(s)",
    ]


def top_collections(holdings: Sequence[NFTHoldings], limit: int = 5) -> List[Tuple[Tuple[str, str], int]]:
    counts: Counter = Counter()
    for item in holdings:
        counts.update(item.collection_keys())
    return counts.most_common(limit)


def _round_gwei(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class GasTiers:
    """Gas price tiers in whole Gwei derived from a single ``eth_gasPrice`` reading."""

    slow: int
    standard: int
    fast: int
    base_fee: int

    @classmethod
    def from_wei(cls, wei: int) -> "GasTiers":
        gwei = (Decimal(wei) / WEI_PER_GWEI).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return cls(
            slow=_round_gwei(gwei * Decimal("0.8")),
            standard=_round_gwei(gwei),
            fast=_round_gwei(gwei * Decimal("1.2")),
            base_fee=_round_gwei(gwei * Decimal("0.9")),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "slow": self.slow,
            "standard": self.standard,
            "fast": self.fast,
            "baseFee": self.base_fee,
        }
