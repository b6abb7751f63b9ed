import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..core.analytics import format_native_amount
from ..core.chains import SUPPORTED_CHAINS, get_chain
from ..core.fallback import GasTiers
from ..mcp.supervisor import ProcessSupervisor
from ..providers.errors import UpstreamHTTPError
from ..providers.tatum import TatumProvider
from ..types import (
    ChainSummary,
    ChainsResponse,
    GasPrice,
    GasPriceResponse,
    WalletBalance,
    WalletBalanceResponse,
)
from .deps import get_provider, get_supervisor

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/api/chains", response_model=ChainsResponse)
async def list_chains(supervisor: ProcessSupervisor = Depends(get_supervisor)):
    return ChainsResponse(
        chains=[
            ChainSummary(id=chain.id, name=chain.display_name, symbol=chain.native_symbol)
            for chain in SUPPORTED_CHAINS
        ],
        mcp_connected=supervisor.is_connected,
    )


@router.get("/api/gas/{chain}", response_model=GasPriceResponse)
async def gas_price(chain: str, provider: TatumProvider = Depends(get_provider)):
    """Gas price tiers in Gwei from the chain's RPC gateway"""

    descriptor = get_chain(chain)
    if descriptor is None:
        raise HTTPException(status_code=400, detail="Unsupported chain")

    try:
        tiers = GasTiers.from_wei(await provider.get_gas_price_wei(descriptor.id))
    except UpstreamHTTPError as e:
        logger.warning("Gas price lookup failed for %s: %s", descriptor.id, e.message)
        raise HTTPException(status_code=500, detail=f"Failed to get gas price: {e.message}")

    return GasPriceResponse(
        chain=descriptor.id,
        gas_price=GasPrice(
            slow=tiers.slow,
            standard=tiers.standard,
            fast=tiers.fast,
            base_fee=tiers.base_fee,
        ),
    )


@router.get("/api/wallet/{address}", response_model=WalletBalanceResponse)
async def wallet_balance(
    address: str,
    chain: Optional[str] = None,
    provider: TatumProvider = Depends(get_provider),
):
    """Native balance read from the chain node (eth_getBalance), in whole coins"""

    descriptor = get_chain(chain)
    if descriptor is None:
        raise HTTPException(status_code=400, detail="Unsupported chain")

    logger.info("Wallet balance request for %s on %s", address, descriptor.id)
    try:
        wei = await provider.get_balance_wei(address, descriptor.id)
    except (UpstreamHTTPError, ValueError) as e:
        logger.warning("Wallet balance lookup failed for %s on %s: %s", address, descriptor.id, e)
        raise HTTPException(status_code=500, detail=f"Failed to get wallet balance: {e}")

    return WalletBalanceResponse(
        balance=WalletBalance(balance=format_native_amount(wei, descriptor.decimals)),
        chain=descriptor.id,
        address=address,
    )
