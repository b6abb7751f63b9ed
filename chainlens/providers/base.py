from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class ChainDataProvider(Provider):
    """Provider for per-chain wallet, NFT and network data"""

    @abstractmethod
    async def get_native_balance(self, address: str, chain: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Get native coin balance (ETH, MATIC, BNB)"""
        pass

    @abstractmethod
    async def get_token_balances(self, address: str, chain: str, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        """Get fungible token balances for an address"""
        pass

    @abstractmethod
    async def get_nft_balances(self, address: str, chain: str, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        """Get NFTs owned by an address"""
        pass

    @abstractmethod
    async def get_chain_info(self, chain: str) -> Dict[str, Any]:
        """Get current network information (block height, etc.)"""
        pass

    @abstractmethod
    async def get_gas_price_wei(self, chain: str) -> int:
        """Get the current gas price in wei"""
        pass

    @abstractmethod
    async def get_block_number(self, chain: str) -> int:
        """Get the latest block height"""
        pass

    @abstractmethod
    async def get_balance_wei(self, address: str, chain: str) -> int:
        """Get the native balance in base units from the chain node"""
        pass
