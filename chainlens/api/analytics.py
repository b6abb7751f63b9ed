import logging

from fastapi import APIRouter, Depends, HTTPException

from ..core.analytics import collect_analytics
from ..providers.tatum import TatumProvider
from ..types import AnalyticsData, AnalyticsResponse
from .deps import get_provider

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/api/analytics", response_model=AnalyticsResponse)
async def analytics(provider: TatumProvider = Depends(get_provider)):
    """Gas price and block-height activity for every supported chain"""
    try:
        snapshot = await collect_analytics(provider)
    except Exception as e:  # noqa: BLE001
        logger.error("Analytics snapshot failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch analytics data")

    return AnalyticsResponse(data=AnalyticsData(**snapshot.to_dict()))
