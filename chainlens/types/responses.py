from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ChatResponse(BaseModel):
    response: str = Field(description="Markdown answer text")
    source: str = Field(description="Where the answer came from: mcp, fallback or error")
    mcp_connected: bool = Field(description="Whether the MCP tool process is connected")
    fallback_mode: bool = Field(description="Whether fallback mode is active")
    last_error: Optional[str] = Field(default=None, description="Last supervisor error")
    status: str = Field(description="Human-readable mode: MCP Active, Fallback Mode or MCP Inactive")


class MCPStatus(BaseModel):
    connected: bool
    fallback_active: bool
    state: str
    last_error: Optional[str] = None
    attempts_used: int
    max_attempts: int
    has_process_handle: bool
    process_is_dead: bool
    pending_requests: int = 0
    restart_pending: bool = False


class MCPStatusResponse(BaseModel):
    success: bool = True
    mcp: MCPStatus
    timestamp: datetime


class ServerInfo(BaseModel):
    status: str = Field(default="running")
    port: int
    uptime_seconds: float


class AppStatusResponse(BaseModel):
    success: bool = True
    server: ServerInfo
    mcp: MCPStatus
    timestamp: datetime


class MCPActionResponse(BaseModel):
    success: bool
    message: str
    mcp: MCPStatus


class MultiChainTestResponse(BaseModel):
    success: bool = True
    type: str
    address: str
    result: str
    timestamp: datetime


class KeyTestResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class ChainSummary(BaseModel):
    id: str
    name: str
    symbol: str


class ChainsResponse(BaseModel):
    chains: List[ChainSummary]
    mcp_connected: bool


class GasPrice(BaseModel):
    slow: int
    standard: int
    fast: int
    base_fee: int


class GasPriceResponse(BaseModel):
    chain: str
    gas_price: GasPrice


class WalletBalance(BaseModel):
    balance: str = Field(description="Native balance in whole coins, six decimal places")
    usd_value: float = 0


class WalletBalanceResponse(BaseModel):
    balance: WalletBalance
    chain: str
    address: str


class ChainNetworkStats(BaseModel):
    transaction_count: int = 0
    volume: int = 0
    active_wallets: int = 0
    block_number: int = 0


class ChainActivitySummary(BaseModel):
    name: str
    symbol: str
    gas_price: int = Field(description="Gas price in Gwei, 0 when unavailable")
    network_stats: ChainNetworkStats


class AnalyticsData(BaseModel):
    total_transactions: int
    total_volume: int
    active_wallets: int
    chain_distribution: Dict[str, ChainActivitySummary]
    market_cap: float = 0
    price_changes: Dict[str, float] = Field(default_factory=dict)
    network_stats: Dict[str, Any] = Field(default_factory=dict)


class AnalyticsResponse(BaseModel):
    success: bool = True
    data: AnalyticsData
