import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import is_configured_key, settings
from ..core.chains import require_chain
from .base import ChainDataProvider
from .errors import UpstreamHTTPError


logger = logging.getLogger(__name__)

# Address with a long public history, used to validate API keys.
KEY_CHECK_ADDRESS = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


class TatumProvider(ChainDataProvider):
    """Tatum REST/RPC gateway provider used for direct (non-MCP) data access"""

    name = "tatum"
    timeout_s = 30

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        data_base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ):
        self.api_key = settings.tatum_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.tatum_api_url).rstrip("/")
        self.data_base_url = (data_base_url or settings.tatum_data_api_url).rstrip("/")
        self.timeout_s = timeout_s or settings.request_timeout_seconds

    def _headers(self, api_key: Optional[str] = None) -> Dict[str, str]:
        return {
            "x-api-key": api_key if api_key is not None else self.api_key,
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
    ) -> Any:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._headers(api_key),
                    timeout=timeout or self.timeout_s,
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("Tatum API error %s for %s %s", status, method, url)
            raise UpstreamHTTPError(
                f"Request failed with status code {status}",
                status_code=status,
                url=url,
            ) from exc
        except httpx.TimeoutException as exc:
            logger.warning("Tatum API timeout for %s %s", method, url)
            raise UpstreamHTTPError(f"Request timed out: {url}", url=url) from exc
        except httpx.HTTPError as exc:
            logger.warning("Tatum API transport error for %s %s: %s", method, url, exc)
            raise UpstreamHTTPError(str(exc) or exc.__class__.__name__, url=url) from exc
        except ValueError as exc:
            raise UpstreamHTTPError(f"Invalid JSON from {url}", url=url) from exc

    async def ready(self) -> bool:
        return is_configured_key(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {
                "status": "unavailable",
                "reason": "API key not configured"
            }

        try:
            await self.get_gas_price_wei("ethereum")
            return {"status": "healthy"}
        except UpstreamHTTPError as e:
            return {"status": "error", "reason": e.message}

    async def test_api_key(self, api_key: Optional[str] = None) -> Dict[str, Any]:
        """Validate a key by reading a known address balance."""
        return await self._request(
            "GET",
            f"{self.base_url}/ethereum/account/balance/{KEY_CHECK_ADDRESS}",
            api_key=api_key,
            timeout=10,
        )

    async def get_native_balance(self, address: str, chain: str = "ethereum", timeout: Optional[float] = None) -> Dict[str, Any]:
        """Native balance as reported by the v3 account endpoint: {"balance": "1.23", ...}"""
        descriptor = require_chain(chain)
        data = await self._request(
            "GET",
            f"{self.base_url}/{descriptor.id}/account/balance/{address}",
            timeout=timeout,
        )
        return data if isinstance(data, dict) else {"balance": "0"}

    async def get_token_balances(self, address: str, chain: str = "ethereum", timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        """Fungible token balances from the v4 wallet data endpoint"""
        descriptor = require_chain(chain)
        data = await self._request(
            "GET",
            f"{self.data_base_url}/data/wallet/balances",
            params={"chain": descriptor.data_chain, "addresses": address},
            timeout=timeout,
        )
        if isinstance(data, dict):
            result = data.get("result") or []
        else:
            result = data or []
        # Native entries are reported separately by get_native_balance
        return [item for item in result if item.get("type", "fungible") != "native"]

    async def get_nft_balances(self, address: str, chain: str = "ethereum", timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        descriptor = require_chain(chain)
        data = await self._request(
            "GET",
            f"{self.base_url}/nft/address/balance/{descriptor.id}/{address}",
            timeout=timeout,
        )
        return data if isinstance(data, list) else []

    async def get_chain_info(self, chain: str = "ethereum") -> Dict[str, Any]:
        descriptor = require_chain(chain)
        data = await self._request("GET", f"{self.base_url}/blockchain/info/{descriptor.id}")
        return data if isinstance(data, dict) else {}

    async def rpc_call(self, chain: str, method: str, params: Optional[List[Any]] = None) -> Any:
        """JSON-RPC 2.0 passthrough via the Tatum RPC gateway"""
        descriptor = require_chain(chain)
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": 1
        }
        data = await self._request(
            "POST",
            f"{self.base_url}/blockchain/node/{descriptor.api_chain}",
            json=payload,
        )

        if not isinstance(data, dict):
            raise UpstreamHTTPError(f"Unexpected RPC response for {method}")

        if "error" in data:
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise UpstreamHTTPError(f"RPC error: {message}")

        return data.get("result")

    async def get_gas_price_wei(self, chain: str = "ethereum") -> int:
        result = await self.rpc_call(chain, "eth_gasPrice")
        return int(result or "0x0", 16)

    async def get_block_number(self, chain: str = "ethereum") -> int:
        result = await self.rpc_call(chain, "eth_blockNumber")
        return int(result or "0x0", 16)

    async def get_balance_wei(self, address: str, chain: str = "ethereum") -> int:
        """Native balance in base units straight from the node (eth_getBalance)"""
        result = await self.rpc_call(chain, "eth_getBalance", [address, "latest"])
        return int(result or "0x0", 16)
