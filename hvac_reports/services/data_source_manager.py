"""
Data source manager
Routes each report data source to its connector and absorbs fetch failures
"""
from typing import Dict, List, Any, Optional

from .document_connector import DocumentConnector
from .relational_connector import RelationalConnector
from .vector_connector import VectorSearchConnector
from .formula_evaluator import evaluate_formula
from .dto import DataSourceConfig
from ..utils.logger import get_logger, log_data_source_error

logger = get_logger(__name__)


def only_rows(rows: Any, source_type: str) -> List[Dict[str, Any]]:
    """The dict items of a connector result; a non-list result yields no rows"""
    if not isinstance(rows, list):
        logger.warning(f"{source_type} source returned {type(rows).__name__}, expected a list of rows")
        return []

    valid = [row for row in rows if isinstance(row, dict)]
    if len(valid) != len(rows):
        logger.warning(f"{source_type} source: dropped {len(rows) - len(valid)} non-object rows")
    return valid


class DataSourceManager:
    """Data source manager"""

    def __init__(
        self,
        document_connector: Optional[DocumentConnector] = None,
        relational_connector: Optional[RelationalConnector] = None,
        vector_connector: Optional[VectorSearchConnector] = None
    ):
        """
        Args:
            document_connector: document store connector, default instance when None
            relational_connector: relational connector, default instance when None
            vector_connector: vector search connector, default instance when None
        """
        self.documents = document_connector or DocumentConnector()
        self.relational = relational_connector or RelationalConnector()
        self.vector = vector_connector or VectorSearchConnector()

    async def fetch_rows(
        self,
        data_source: DataSourceConfig,
        existing_results: List[Dict[str, Any]],
        tenant_id: int = 0
    ) -> List[Dict[str, Any]]:
        """
        Rows of one data source

        Failures are logged and yield an empty list, so one broken source
        never aborts a report. Anything a connector returns that is not a
        row dict is dropped.

        Args:
            data_source: data source configuration
            existing_results: rows accumulated from earlier sources
            tenant_id: tenant whose documents are read

        Returns:
            list of row dicts
        """
        try:
            if data_source.type == "document":
                rows = await self.documents.fetch(data_source.table, tenant_id)

            elif data_source.type == "relational":
                rows = await self.relational.fetch(data_source.table, data_source.query)

            elif data_source.type == "vector":
                rows = await self.vector.fetch(data_source.query, data_source.table)

            elif data_source.type == "calculated":
                rows = self.derive_rows(data_source, existing_results)

            else:
                logger.warning(f"Unknown data source type: {data_source.type}")
                return []

            return only_rows(rows, data_source.type)

        except Exception as e:
            log_data_source_error(
                logger,
                data_source.type,
                e,
                table=data_source.table,
                query=data_source.query
            )
            return []

    def derive_rows(
        self,
        data_source: DataSourceConfig,
        existing_results: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """
        Copies of the accumulated rows with a calculatedValue column

        The source's query is the formula; an empty query evaluates to 0.
        """
        formula = data_source.query or "0"
        return [
            {**row, "calculatedValue": evaluate_formula(formula, row)}
            for row in existing_results
        ]
