from .analysis import (
    ChainHoldings,
    GasTiers,
    NFTHoldings,
    PortfolioRisk,
    assess_risk,
    nft_insights,
    portfolio_recommendations,
)
from .responder import FallbackResponder

__all__ = [
    "ChainHoldings",
    "FallbackResponder",
    "GasTiers",
    "NFTHoldings",
    "PortfolioRisk",
    "assess_risk",
    "nft_insights",
    "portfolio_recommendations",
]
