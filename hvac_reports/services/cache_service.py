"""
Report result cache
Stores execution results in the report_results table with an absolute expiry
"""
import hashlib
import json
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Dict, List

from .dto import ExecutionResult, WarsawMetrics
from ..database import Database, get_database
from ..models.report_result import ReportResult
from ..utils.datetime_helper import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CacheService:
    """Report result cache backed by the configuration database"""

    def __init__(self, database: Database, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            database: database holding the report_results table
            clock: returns the current naive UTC time
        """
        self.database = database
        self.clock = clock or utc_now
        self.hits = 0
        self.misses = 0

    def generate_key(self, report_id: str, parameters: Optional[Dict[str, Any]]) -> str:
        """
        Cache key for a report and its parameters

        Args:
            report_id: report id
            parameters: execution parameters (canonicalised with sorted keys)

        Returns:
            "<report_id>:<md5 of the canonical parameters>"
        """
        data_str = json.dumps(parameters or {}, sort_keys=True, ensure_ascii=False, default=str)
        hash_str = hashlib.md5(data_str.encode('utf-8')).hexdigest()
        return f"{report_id}:{hash_str}"

    def get(self, report_id: str, parameters: Optional[Dict[str, Any]] = None) -> Optional[ExecutionResult]:
        """
        First non-expired cached result for the report and parameters

        Args:
            report_id: report id
            parameters: execution parameters

        Returns:
            the cached ExecutionResult, or None on a miss
        """
        cache_key = self.generate_key(report_id, parameters)
        now = self.clock()

        with self.database.get_session() as session:
            entry = session.query(ReportResult).filter(
                ReportResult.cache_key == cache_key,
                ReportResult.expires_at > now
            ).order_by(ReportResult.created_at).first()

            if entry is None:
                self.misses += 1
                logger.debug(f"Cache miss: {cache_key}")
                return None

            results = json.loads(entry.results)

        self.hits += 1
        logger.debug(f"Cache hit: {cache_key}")
        return ExecutionResult.model_validate(results)

    def set(
        self,
        report_id: str,
        executed_by: Optional[str],
        parameters: Optional[Dict[str, Any]],
        result: ExecutionResult,
        total_time: int,
        ttl_ms: int
    ) -> str:
        """
        Store an execution result

        Args:
            report_id: report id
            executed_by: user that ran the report
            parameters: execution parameters
            result: execution result to cache
            total_time: wall time of the execution in milliseconds
            ttl_ms: time to live in milliseconds

        Returns:
            id of the cache row
        """
        metadata = result.metadata
        query_performance = {
            "total_time": total_time,
            "document_time": metadata.document_time,
            "relational_time": metadata.relational_time,
            "vector_time": metadata.vector_time,
        }
        warsaw_metrics = metadata.warsaw_metrics.model_dump() if metadata.warsaw_metrics else None
        expires_at = self.clock() + timedelta(milliseconds=ttl_ms)

        entry = ReportResult(
            id=str(uuid.uuid4()),
            report_id=report_id,
            cache_key=self.generate_key(report_id, parameters),
            executed_by=executed_by,
            parameters=json.dumps(parameters or {}, ensure_ascii=False, default=str),
            results=result.model_dump_json(),
            query_performance=json.dumps(query_performance),
            warsaw_metrics=json.dumps(warsaw_metrics, ensure_ascii=False) if warsaw_metrics else None,
            expires_at=expires_at,
            created_at=self.clock(),
        )

        with self.database.get_session() as session:
            session.add(entry)

        logger.debug(f"Cached result: report_id={report_id}, expires_at={expires_at.isoformat()}")
        return entry.id

    def delete_for_report(self, report_id: str) -> int:
        """
        Delete every cached result of a report

        Returns:
            number of rows deleted
        """
        with self.database.get_session() as session:
            count = session.query(ReportResult).filter(
                ReportResult.report_id == report_id
            ).delete(synchronize_session=False)

        if count:
            logger.info(f"Deleted {count} cached results of report {report_id}")
        return count

    def cleanup_expired(self) -> int:
        """
        Delete cached results whose expiry has passed

        Returns:
            number of rows deleted
        """
        now = self.clock()
        with self.database.get_session() as session:
            count = session.query(ReportResult).filter(
                ReportResult.expires_at < now
            ).delete(synchronize_session=False)

        if count:
            logger.info(f"Cleaned up {count} expired cached results")
        return count

    def list_results(
        self,
        since: datetime,
        report_id: Optional[str] = None,
        executed_by: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Cached executions created since a point in time

        Args:
            since: lower bound on created_at
            report_id: restrict to one report
            executed_by: restrict to one user (ignored when report_id is given)

        Returns:
            decoded rows with results, query_performance and warsaw_metrics
        """
        with self.database.get_session() as session:
            query = session.query(ReportResult).filter(ReportResult.created_at >= since)
            if report_id:
                query = query.filter(ReportResult.report_id == report_id)
            elif executed_by:
                query = query.filter(ReportResult.executed_by == executed_by)
            entries = query.all()

            return [
                {
                    "report_id": entry.report_id,
                    "results": json.loads(entry.results),
                    "query_performance": json.loads(entry.query_performance),
                    "warsaw_metrics": (
                        WarsawMetrics.model_validate_json(entry.warsaw_metrics)
                        if entry.warsaw_metrics else None
                    ),
                }
                for entry in entries
            ]

    def get_stats(self) -> Dict[str, Any]:
        """
        Cache statistics

        Returns:
            size, live entries, hits, misses and hit rate
        """
        now = self.clock()
        with self.database.get_session() as session:
            size = session.query(ReportResult).count()
            live = session.query(ReportResult).filter(ReportResult.expires_at > now).count()

        total_requests = self.hits + self.misses
        hit_rate = (self.hits / total_requests * 100) if total_requests > 0 else 0

        return {
            'size': size,
            'live': live,
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': f"{hit_rate:.2f}%",
            'total_requests': total_requests
        }


_cache_service = None


def get_cache_service() -> CacheService:
    """
    Get the global cache service

    Returns:
        CacheService instance
    """
    global _cache_service

    if _cache_service is None:
        _cache_service = CacheService(get_database())

    return _cache_service
