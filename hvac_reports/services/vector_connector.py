"""
Vector search connector
Semantic search over the knowledge base through an HTTP search endpoint
"""
import os
from typing import Dict, List, Any, Optional

import httpx

from ..utils.logger import get_logger

logger = get_logger(__name__)

MAX_RESULTS = 100


class VectorSearchConnector:
    """Vector search connector"""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            url: search endpoint, read from VECTOR_SEARCH_URL when None
            timeout: request timeout in seconds, read from VECTOR_SEARCH_TIMEOUT when None
            transport: httpx transport, the default network transport when None
        """
        self.url = url if url is not None else os.getenv("VECTOR_SEARCH_URL", "")
        self.timeout = timeout if timeout is not None else float(os.getenv("VECTOR_SEARCH_TIMEOUT", "10"))
        self.transport = transport

    async def fetch(self, query: Optional[str], result_type: Optional[str]) -> List[Dict[str, Any]]:
        """
        Run a semantic search

        Args:
            query: free-text query
            result_type: result type tag, "knowledge" when None

        Returns:
            up to 100 result rows; a payload without a results list yields none

        Raises:
            httpx.HTTPError: if the endpoint fails
        """
        if not self.url:
            logger.debug("VECTOR_SEARCH_URL not set, vector source returns no rows")
            return []

        payload = {
            "query": query or "",
            "type": result_type or "knowledge",
            "limit": MAX_RESULTS,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()

        body = response.json()
        results = body.get("results") if isinstance(body, dict) else None
        if not isinstance(results, list):
            logger.warning(f"Vector search response has no results list: {type(results).__name__}")
            return []

        return [row for row in results if isinstance(row, dict)][:MAX_RESULTS]
