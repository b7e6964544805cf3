"""
Result cache API routes
"""
from fastapi import APIRouter, status
from pydantic import BaseModel

from ..services.report_service import get_report_service
from ..utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/cache", tags=["cache"])


class CacheStatsResponse(BaseModel):
    """Cache statistics response"""
    size: int
    live: int
    hits: int
    misses: int
    hit_rate: str
    total_requests: int


@router.get("/stats", response_model=CacheStatsResponse, status_code=status.HTTP_200_OK)
async def get_cache_stats():
    """
    Cache statistics
    """
    try:
        stats = get_report_service().cache.get_stats()
        return CacheStatsResponse(**stats)

    except Exception as e:
        logger.error(f"Failed to read cache stats: {str(e)}", exc_info=True)
        raise


@router.post("/cleanup", status_code=status.HTTP_200_OK)
async def cleanup_expired_cache():
    """
    Delete expired cached results
    """
    try:
        result = get_report_service().cleanup_expired_cache()
        logger.info(f"Expired cache cleanup: {result['cleaned']} rows")
        return result

    except Exception as e:
        logger.error(f"Expired cache cleanup failed: {str(e)}", exc_info=True)
        raise
