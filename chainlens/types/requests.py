from typing import Optional
from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str = Field(description="Free-text chat message")


class MultiChainTestRequest(BaseModel):
    address: Optional[str] = Field(default=None, description="Wallet address to analyze across all chains")
    type: str = Field(default="wallet", description="Analysis type: wallet, portfolio or nft")


class KeyTestRequest(BaseModel):
    api_key: Optional[str] = Field(default=None, description="Tatum API key to validate")
