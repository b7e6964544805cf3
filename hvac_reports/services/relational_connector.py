"""
External relational source connector
"""
from typing import Dict, List, Any, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)


class RelationalConnector:
    """External relational store; no backend is wired up, so sources return no rows"""

    async def fetch(self, table: Optional[str], query: Optional[str] = None) -> List[Dict[str, Any]]:
        logger.debug(f"Relational source not configured: table={table}")
        return []
