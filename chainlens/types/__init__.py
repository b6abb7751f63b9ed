from .requests import ChatRequest, KeyTestRequest, MultiChainTestRequest
from .responses import (
    AnalyticsData,
    AnalyticsResponse,
    AppStatusResponse,
    ChainActivitySummary,
    ChainNetworkStats,
    ChainSummary,
    ChainsResponse,
    ChatResponse,
    GasPrice,
    GasPriceResponse,
    KeyTestResponse,
    MCPActionResponse,
    MCPStatus,
    MCPStatusResponse,
    MultiChainTestResponse,
    ServerInfo,
    WalletBalance,
    WalletBalanceResponse,
)

__all__ = [
    "ChatRequest",
    "KeyTestRequest",
    "MultiChainTestRequest",
    "AnalyticsData",
    "AnalyticsResponse",
    "AppStatusResponse",
    "ChainActivitySummary",
    "ChainNetworkStats",
    "ChainSummary",
    "ChainsResponse",
    "ChatResponse",
    "GasPrice",
    "GasPriceResponse",
    "KeyTestResponse",
    "MCPActionResponse",
    "MCPStatus",
    "MCPStatusResponse",
    "MultiChainTestResponse",
    "ServerInfo",
    "WalletBalance",
    "WalletBalanceResponse",
]
