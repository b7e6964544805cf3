"""
Document store connector
Reads CRM collections (contacts, jobs, quotes, equipment) as flat rows
"""
import json
from typing import Dict, List, Any, Optional

from ..database import Database, get_database
from ..models.document import Document
from ..utils.logger import get_logger

logger = get_logger(__name__)

COLLECTIONS = ("contacts", "jobs", "quotes", "equipment")


class DocumentConnector:
    """Document store connector"""

    def __init__(self, database: Optional[Database] = None):
        """
        Args:
            database: database holding the documents table, global instance when None
        """
        self.database = database or get_database()

    async def fetch(self, collection: Optional[str], tenant_id: int = 0) -> List[Dict[str, Any]]:
        """
        All rows of a collection, oldest first

        Args:
            collection: contacts, jobs, quotes or equipment
            tenant_id: tenant whose documents are read

        Returns:
            list of row dicts; unknown collections yield an empty list
        """
        if collection not in COLLECTIONS:
            logger.debug(f"Unknown document collection: {collection}")
            return []

        with self.database.get_session() as session:
            documents = session.query(Document).filter(
                Document.tenant_id == tenant_id,
                Document.collection == collection
            ).order_by(Document.created_at, Document.id).all()

            rows = []
            for document in documents:
                row = json.loads(document.payload)
                row.setdefault("id", document.id)
                rows.append(row)

        logger.debug(f"Fetched {len(rows)} rows from {collection} for tenant {tenant_id}")
        return rows
