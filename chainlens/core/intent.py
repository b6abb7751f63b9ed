"""
Keyword-based intent classification for chat messages.

Rules are evaluated in order and the first match wins. Address-bearing
messages always take precedence, and chain-name mentions outrank the generic
gas/wallet/portfolio keywords. Matching is plain substring search on the
lower-cased message, so short keywords such as "eth" or "op" also match inside
longer words.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from .chains import DEFAULT_CHAIN


ADDRESS_PATTERN = re.compile(r"0x[a-fA-F0-9]{40}")

MULTI_CHAIN_PHRASES: Tuple[str, ...] = (
    "all chain",
    "multi-chain",
    "multi chain",
    "across all",
    "every chain",
    "all networks",
    "multi",
    "all chains",
)

# Sub-classification of address-bearing messages, in priority order.
ADDRESS_PORTFOLIO_KEYWORDS = ("portfolio", "portofolio")
ADDRESS_NFT_KEYWORDS = ("nft", "collection")
ADDRESS_WALLET_KEYWORDS = ("wallet", "balance", "analysis", "check", "analyze")

CHAIN_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("ethereum", ("ethereum", "eth")),
    ("polygon", ("polygon", "matic")),
    ("bsc", ("bsc", "bnb")),
    ("arbitrum", ("arbitrum", "arb")),
    ("base", ("base",)),
    ("optimism", ("optimism", "op")),
)

GAS_KEYWORDS = ("gas", "fee")
CHAIN_LISTING_KEYWORDS = ("chains", "chain info", "supported chains", "blockchain info", "chain")
NFT_KEYWORDS = ("nft", "token", "collection")
WALLET_KEYWORDS = ("wallet", "balance", "hold", "checker")
PORTFOLIO_KEYWORDS = ("portfolio", "portofolio")


class IntentKind(str, Enum):
    WALLET = "wallet"
    PORTFOLIO = "portfolio"
    NFT = "nft"
    CHAIN_INFO = "chain_info"
    GAS = "gas"
    GENERAL = "general"


@dataclass(frozen=True)
class Intent:
    """Structured reading of a chat message."""

    kind: IntentKind
    address: Optional[str] = None
    chain: Optional[str] = None
    multi_chain: bool = False
    needs_data: bool = False

    @property
    def has_address(self) -> bool:
        return self.address is not None


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def extract_address(message: str) -> Optional[str]:
    """Return the first 0x-prefixed 40 hex digit address, case preserved."""
    match = ADDRESS_PATTERN.search(message or "")
    return match.group(0) if match else None


def is_multi_chain_request(message: str) -> bool:
    return _contains_any((message or "").lower(), MULTI_CHAIN_PHRASES)


def _classify_address(lower: str, address: str, multi_chain: bool) -> Intent:
    # The type keyword doubles as a multi-chain hint; kept as-is.
    if _contains_any(lower, ADDRESS_PORTFOLIO_KEYWORDS):
        return Intent(
            kind=IntentKind.PORTFOLIO,
            address=address,
            chain=DEFAULT_CHAIN,
            multi_chain=multi_chain or "portfolio" in lower,
            needs_data=True,
        )
    if _contains_any(lower, ADDRESS_NFT_KEYWORDS):
        return Intent(
            kind=IntentKind.NFT,
            address=address,
            chain=DEFAULT_CHAIN,
            multi_chain=multi_chain or "nft" in lower,
            needs_data=True,
        )
    if _contains_any(lower, ADDRESS_WALLET_KEYWORDS):
        return Intent(
            kind=IntentKind.WALLET,
            address=address,
            chain=DEFAULT_CHAIN,
            multi_chain=multi_chain or "wallet" in lower,
            needs_data=True,
        )
    return Intent(
        kind=IntentKind.WALLET,
        address=address,
        chain=DEFAULT_CHAIN,
        multi_chain=multi_chain,
        needs_data=True,
    )


def classify(message: str) -> Intent:
    """Map a free-text message to an :class:`Intent`."""
    text = message or ""
    lower = text.lower()
    multi_chain = _contains_any(lower, MULTI_CHAIN_PHRASES)

    address = extract_address(text)
    if address:
        return _classify_address(lower, address, multi_chain)

    for chain_id, keywords in CHAIN_KEYWORDS:
        if _contains_any(lower, keywords):
            return Intent(kind=IntentKind.CHAIN_INFO, chain=chain_id, needs_data=True)

    if _contains_any(lower, GAS_KEYWORDS):
        return Intent(kind=IntentKind.GAS, chain=DEFAULT_CHAIN, needs_data=True)

    if _contains_any(lower, CHAIN_LISTING_KEYWORDS):
        return Intent(kind=IntentKind.CHAIN_INFO, chain=DEFAULT_CHAIN, needs_data=False)

    for kind, keywords in (
        (IntentKind.NFT, NFT_KEYWORDS),
        (IntentKind.WALLET, WALLET_KEYWORDS),
        (IntentKind.PORTFOLIO, PORTFOLIO_KEYWORDS),
    ):
        if _contains_any(lower, keywords):
            return Intent(kind=kind, chain=DEFAULT_CHAIN, multi_chain=multi_chain, needs_data=True)

    return Intent(kind=IntentKind.GENERAL, needs_data=False)
