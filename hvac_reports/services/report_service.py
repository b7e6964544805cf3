"""
Report service
Report definition store, execution pipeline, result caching, sharing and export
"""
import json
import os
import time
import uuid
from datetime import timedelta
from typing import Dict, List, Any, Optional, Union

from .aggregation import apply_aggregation
from .cache_service import CacheService
from .data_source_manager import DataSourceManager
from .dto import (
    ReportConfig,
    ScheduleConfig,
    ExecutionResult,
    ExecutionMetadata,
)
from .exceptions import (
    NotAuthenticatedError,
    PermissionDeniedError,
    ReportNotFoundError,
    TemplateNotFoundError,
    UnsupportedExportFormatError,
)
from .export_service import ExportService, ReportData, EXPORT_FORMATS
from .filter_service import FilterService
from .formula_evaluator import evaluate_formula
from .warsaw_service import WarsawService
from ..database import Database, get_database
from ..models.report import Report
from ..utils.datetime_helper import utc_now, to_iso_string, to_epoch_ms
from ..utils.logger import get_logger, log_report_execution

logger = get_logger(__name__)

DEFAULT_CACHE_TTL_MS = int(os.getenv("REPORT_CACHE_TTL_MS", "300000"))
DEFAULT_LIST_LIMIT = 50

TIME_RANGES = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}

# data source type -> metadata timing field
TIMING_BUCKETS = {
    "document": "document_time",
    "relational": "relational_time",
    "vector": "vector_time",
}

UPDATABLE_FIELDS = (
    "name",
    "description",
    "config",
    "category",
    "tags",
    "is_public",
    "is_favorite",
    "cache_enabled",
    "cache_ttl",
)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _load_json(value: Optional[str], default: Any) -> Any:
    return json.loads(value) if value else default


def report_to_dict(report: Report) -> Dict[str, Any]:
    """
    Serialize a report row

    Args:
        report: Report model

    Returns:
        dict with JSON columns decoded and timestamps as ISO strings
    """
    return {
        "id": report.id,
        "tenant_id": report.tenant_id,
        "name": report.name,
        "description": report.description,
        "type": report.type,
        "config": _load_json(report.config, {}),
        "created_by": report.created_by,
        "category": report.category,
        "tags": _load_json(report.tags, []),
        "is_public": report.is_public,
        "is_template": report.is_template,
        "template_category": report.template_category,
        "is_favorite": report.is_favorite,
        "shared_with": _load_json(report.shared_with, []),
        "cache_enabled": report.cache_enabled,
        "cache_ttl": report.cache_ttl,
        "schedule": _load_json(report.schedule, None),
        "last_executed": to_iso_string(report.last_executed),
        "execution_time": report.execution_time,
        "created_at": to_iso_string(report.created_at),
        "updated_at": to_iso_string(report.updated_at),
    }


class ReportService:
    """Report service"""

    def __init__(
        self,
        database: Database,
        data_source_manager: DataSourceManager,
        cache_service: CacheService,
        filter_service: Optional[FilterService] = None,
        warsaw_service: Optional[WarsawService] = None,
        export_service: Optional[ExportService] = None
    ):
        """
        Initialise the report service

        Args:
            database: configuration database holding the reports table
            data_source_manager: row source routing
            cache_service: result cache
            filter_service: filter evaluation, default instance when None
            warsaw_service: district weighting, default instance when None
            export_service: export formatting, default instance when None
        """
        self.db = database
        self.data_source = data_source_manager
        self.cache = cache_service
        self.filter = filter_service or FilterService()
        self.warsaw = warsaw_service or WarsawService()
        self.export = export_service or ExportService()

    # ============ Permissions ============

    @staticmethod
    def _require_user(user_id: Optional[str]) -> str:
        if not user_id:
            raise NotAuthenticatedError()
        return user_id

    @staticmethod
    def _share_permission(report: Report, user_id: str) -> Optional[str]:
        for share in _load_json(report.shared_with, []):
            if share.get("user_id") == user_id:
                return share.get("permission")
        return None

    def can_view(self, report: Report, user_id: str) -> bool:
        """Public, owned, or shared with any permission"""
        return (
            report.is_public
            or report.created_by == user_id
            or self._share_permission(report, user_id) is not None
        )

    def can_edit(self, report: Report, user_id: str) -> bool:
        """Owned, or shared with edit/admin"""
        return (
            report.created_by == user_id
            or self._share_permission(report, user_id) in ("edit", "admin")
        )

    def can_admin(self, report: Report, user_id: str) -> bool:
        """Owned, or shared with admin"""
        return (
            report.created_by == user_id
            or self._share_permission(report, user_id) == "admin"
        )

    def _load(self, session, report_id: str, tenant_id: int) -> Report:
        report = session.query(Report).filter(Report.id == report_id).first()
        # other tenants' reports are reported as missing
        if report is None or report.tenant_id != tenant_id:
            raise ReportNotFoundError(report_id)
        return report

    # ============ CRUD ============

    def list_reports(
        self,
        user_id: Optional[str],
        tenant_id: int = 0,
        type: Optional[str] = None,
        category: Optional[str] = None,
        is_template: Optional[bool] = None,
        is_public: Optional[bool] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Reports visible to the user, newest first

        Args:
            user_id: acting user
            tenant_id: tenant scope
            type: report type filter
            category: category filter
            is_template: template flag filter
            is_public: public flag filter
            search: case-insensitive name match
            limit: maximum number of reports (50 when None)

        Returns:
            list of report dicts
        """
        user_id = self._require_user(user_id)
        limit = limit or DEFAULT_LIST_LIMIT

        with self.db.get_session() as session:
            query = session.query(Report).filter(Report.tenant_id == tenant_id)
            if search:
                query = query.filter(Report.name.ilike(f"%{search}%"))
            if type:
                query = query.filter(Report.type == type)
            if category:
                query = query.filter(Report.category == category)
            if is_template is not None:
                query = query.filter(Report.is_template == is_template)
            if is_public is not None:
                query = query.filter(Report.is_public == is_public)

            reports = query.order_by(Report.created_at.desc(), Report.id).all()
            visible = [r for r in reports if self.can_view(r, user_id)]
            return [report_to_dict(r) for r in visible[:limit]]

    def get_report(self, report_id: str, user_id: Optional[str], tenant_id: int = 0) -> Dict[str, Any]:
        """
        A report the user may view

        Raises:
            NotAuthenticatedError: no user
            ReportNotFoundError: unknown report
            PermissionDeniedError: the user may not view it
        """
        user_id = self._require_user(user_id)
        with self.db.get_session() as session:
            report = self._load(session, report_id, tenant_id)
            if not self.can_view(report, user_id):
                raise PermissionDeniedError("Access denied", report_id, user_id)
            return report_to_dict(report)

    def create_report(
        self,
        user_id: Optional[str],
        name: str,
        type: str,
        config: Union[ReportConfig, Dict[str, Any]],
        description: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[List[str]] = None,
        is_public: bool = False,
        is_template: bool = False,
        template_category: Optional[str] = None,
        cache_enabled: bool = True,
        cache_ttl: Optional[int] = None,
        tenant_id: int = 0
    ) -> str:
        """
        Create a report owned by the user

        Returns:
            the new report id
        """
        user_id = self._require_user(user_id)
        config = ReportConfig.model_validate(config)

        report = Report(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            name=name,
            description=description,
            type=type,
            config=config.model_dump_json(),
            created_by=user_id,
            category=category,
            tags=json.dumps(tags or [], ensure_ascii=False),
            is_public=is_public,
            is_template=is_template,
            template_category=template_category,
            is_favorite=False,
            shared_with=json.dumps([]),
            cache_enabled=cache_enabled,
            cache_ttl=cache_ttl if cache_ttl is not None else DEFAULT_CACHE_TTL_MS,
        )

        with self.db.get_session() as session:
            session.add(report)

        logger.info(f"Report created: id={report.id}, name={name}, type={type}, created_by={user_id}")
        return report.id

    def update_report(
        self,
        report_id: str,
        user_id: Optional[str],
        tenant_id: int = 0,
        **updates: Any
    ) -> Dict[str, Any]:
        """
        Patch the supplied fields of a report

        Only fields in UPDATABLE_FIELDS whose value is not None are written.

        Raises:
            PermissionDeniedError: the user lacks edit permission
        """
        user_id = self._require_user(user_id)

        with self.db.get_session() as session:
            report = self._load(session, report_id, tenant_id)
            if not self.can_edit(report, user_id):
                raise PermissionDeniedError("Edit permission denied", report_id, user_id)

            changed = []
            for field in UPDATABLE_FIELDS:
                value = updates.get(field)
                if value is None:
                    continue
                if field == "config":
                    value = ReportConfig.model_validate(value).model_dump_json()
                elif field == "tags":
                    value = json.dumps(value, ensure_ascii=False)
                setattr(report, field, value)
                changed.append(field)

            session.flush()
            logger.info(f"Report updated: id={report_id}, fields={changed}")
            return report_to_dict(report)

    def delete_report(self, report_id: str, user_id: Optional[str], tenant_id: int = 0) -> None:
        """
        Delete a report and its cached results

        Raises:
            PermissionDeniedError: the user is neither owner nor admin
        """
        user_id = self._require_user(user_id)

        with self.db.get_session() as session:
            report = self._load(session, report_id, tenant_id)
            if not self.can_admin(report, user_id):
                raise PermissionDeniedError("Delete permission denied", report_id, user_id)
            session.delete(report)

        self.cache.delete_for_report(report_id)
        logger.info(f"Report deleted: id={report_id}, by={user_id}")

    # ============ Templates ============

    def get_templates(self, category: Optional[str] = None, tenant_id: int = 0) -> List[Dict[str, Any]]:
        """Template reports, optionally of one template category"""
        with self.db.get_session() as session:
            query = session.query(Report).filter(
                Report.tenant_id == tenant_id,
                Report.is_template.is_(True)
            )
            if category:
                query = query.filter(Report.template_category == category)
            return [report_to_dict(r) for r in query.order_by(Report.created_at).all()]

    def create_from_template(
        self,
        template_id: str,
        user_id: Optional[str],
        name: str,
        description: Optional[str] = None,
        tenant_id: int = 0
    ) -> str:
        """
        Copy a template into a new private report

        Raises:
            TemplateNotFoundError: the id is unknown or not a template
        """
        user_id = self._require_user(user_id)

        with self.db.get_session() as session:
            template = session.query(Report).filter(Report.id == template_id).first()
            if template is None or template.tenant_id != tenant_id or not template.is_template:
                raise TemplateNotFoundError(template_id)

            report = Report(
                id=str(uuid.uuid4()),
                tenant_id=template.tenant_id,
                name=name,
                description=description or template.description,
                type=template.type,
                config=template.config,
                created_by=user_id,
                category=template.category,
                tags=template.tags,
                is_public=False,
                is_template=False,
                is_favorite=False,
                shared_with=json.dumps([]),
                cache_enabled=True,
                cache_ttl=DEFAULT_CACHE_TTL_MS,
            )
            session.add(report)

        logger.info(f"Report created from template: id={report.id}, template_id={template_id}")
        return report.id

    # ============ Sharing and scheduling ============

    def share_report(
        self,
        report_id: str,
        user_id: Optional[str],
        target_user_id: str,
        permission: str,
        tenant_id: int = 0
    ) -> None:
        """
        Grant or change a share

        Raises:
            PermissionDeniedError: the user is neither owner nor admin
        """
        user_id = self._require_user(user_id)

        with self.db.get_session() as session:
            report = self._load(session, report_id, tenant_id)
            if not self.can_admin(report, user_id):
                raise PermissionDeniedError("Share permission denied", report_id, user_id)

            shares = _load_json(report.shared_with, [])
            for share in shares:
                if share.get("user_id") == target_user_id:
                    share["permission"] = permission
                    break
            else:
                shares.append({"user_id": target_user_id, "permission": permission})
            report.shared_with = json.dumps(shares)

        logger.info(f"Report shared: id={report_id}, user={target_user_id}, permission={permission}")

    def unshare_report(
        self,
        report_id: str,
        user_id: Optional[str],
        target_user_id: str,
        tenant_id: int = 0
    ) -> None:
        """
        Remove a share

        Raises:
            PermissionDeniedError: the user is neither owner nor admin
        """
        user_id = self._require_user(user_id)

        with self.db.get_session() as session:
            report = self._load(session, report_id, tenant_id)
            if not self.can_admin(report, user_id):
                raise PermissionDeniedError("Unshare permission denied", report_id, user_id)

            shares = [s for s in _load_json(report.shared_with, []) if s.get("user_id") != target_user_id]
            report.shared_with = json.dumps(shares)

        logger.info(f"Report unshared: id={report_id}, user={target_user_id}")

    def schedule_report(
        self,
        report_id: str,
        user_id: Optional[str],
        schedule: Union[ScheduleConfig, Dict[str, Any]],
        tenant_id: int = 0
    ) -> None:
        """
        Store a delivery schedule on the report

        Raises:
            PermissionDeniedError: the user lacks edit permission
        """
        user_id = self._require_user(user_id)
        schedule = ScheduleConfig.model_validate(schedule)

        with self.db.get_session() as session:
            report = self._load(session, report_id, tenant_id)
            if not self.can_edit(report, user_id):
                raise PermissionDeniedError("Edit permission denied", report_id, user_id)
            report.schedule = schedule.model_dump_json()

        logger.info(f"Report schedule stored: id={report_id}, frequency={schedule.frequency}")

    # ============ Execution ============

    async def execute_report(
        self,
        report_id: str,
        user_id: Optional[str],
        parameters: Optional[Dict[str, Any]] = None,
        use_cache: bool = True,
        tenant_id: int = 0
    ) -> ExecutionResult:
        """
        Execute a report

        Flow:
        1. load the report (view permission)
        2. serve a cached result when caching is on and one is still live
        3. otherwise run the pipeline over every data source
        4. cache the result when the report has caching enabled
        5. record execution stats on the report

        Args:
            report_id: report id
            user_id: acting user
            parameters: execution parameters (part of the cache key)
            use_cache: whether a cached result may be served
            tenant_id: caller's tenant; the report's sources are read in it

        Returns:
            ExecutionResult with rows and metadata
        """
        start = time.perf_counter()
        user_id = self._require_user(user_id)
        parameters = parameters or {}

        report = self.get_report(report_id, user_id, tenant_id)
        config = ReportConfig.model_validate(report["config"])

        if use_cache and report["cache_enabled"]:
            cached = self.cache.get(report_id, parameters)
            if cached is not None:
                log_report_execution(
                    logger, report_id, user_id, cached.metadata.total_rows, _elapsed_ms(start), cached=True
                )
                return cached

        result = await self.run_pipeline(config, parameters, tenant_id=report["tenant_id"])
        total_time = _elapsed_ms(start)

        if report["cache_enabled"]:
            self.cache.set(
                report_id=report_id,
                executed_by=user_id,
                parameters=parameters,
                result=result,
                total_time=total_time,
                ttl_ms=report["cache_ttl"] if report["cache_ttl"] is not None else DEFAULT_CACHE_TTL_MS
            )

        self._update_execution_stats(report_id, total_time)

        log_report_execution(
            logger, report_id, user_id, result.metadata.total_rows, total_time, cached=False
        )
        return result

    async def run_pipeline(
        self,
        config: ReportConfig,
        parameters: Optional[Dict[str, Any]] = None,
        tenant_id: int = 0
    ) -> ExecutionResult:
        """
        Run the per-source pipeline, calculated fields and aggregation

        Sources run one after another in declared order. Each source's rows
        are filtered, weighted (when Warsaw settings exist) and appended to
        the running result; rows are concatenated, never joined.

        Args:
            config: report configuration
            parameters: execution parameters
            tenant_id: tenant whose documents the sources read

        Returns:
            ExecutionResult
        """
        start = time.perf_counter()
        results: List[Dict[str, Any]] = []
        metadata = ExecutionMetadata(generated_at=to_epoch_ms(utc_now()))

        for data_source in config.data_sources:
            source_start = time.perf_counter()

            source_data = await self.data_source.fetch_rows(data_source, results, tenant_id)
            bucket = TIMING_BUCKETS.get(data_source.type)
            if bucket:
                setattr(metadata, bucket, getattr(metadata, bucket) + _elapsed_ms(source_start))

            if data_source.filters:
                source_data = self.filter.apply_filters(source_data, data_source.filters)

            if config.warsaw_settings:
                source_data, warsaw_metrics = self.warsaw.apply(source_data, config.warsaw_settings)
                metadata.warsaw_metrics = warsaw_metrics

            results.extend(source_data)
            metadata.data_sources_used.append(data_source.type)

        for field in config.calculated_fields:
            for row in results:
                row[field.name] = evaluate_formula(field.formula, row)

        final_results = apply_aggregation(results, config.visualization)

        metadata.total_rows = len(final_results)
        metadata.execution_time = _elapsed_ms(start)

        return ExecutionResult(data=final_results, metadata=metadata)

    def _update_execution_stats(self, report_id: str, execution_time: int) -> None:
        with self.db.get_session() as session:
            report = session.query(Report).filter(Report.id == report_id).first()
            if report is not None:
                report.last_executed = utc_now()
                report.execution_time = execution_time

    # ============ Export ============

    async def export_report(
        self,
        report_id: str,
        user_id: Optional[str],
        export_format: str,
        parameters: Optional[Dict[str, Any]] = None,
        tenant_id: int = 0
    ) -> str:
        """
        Execute (cache allowed) and render as csv, excel or pdf text

        Raises:
            UnsupportedExportFormatError: unknown format
        """
        user_id = self._require_user(user_id)
        if export_format not in EXPORT_FORMATS:
            raise UnsupportedExportFormatError(export_format)

        result = await self.execute_report(
            report_id, user_id, parameters, use_cache=True, tenant_id=tenant_id
        )
        return self.export.export_text(result, export_format)

    async def render_report_file(
        self,
        report_id: str,
        user_id: Optional[str],
        export_format: str,
        parameters: Optional[Dict[str, Any]] = None,
        tenant_id: int = 0
    ) -> bytes:
        """
        Execute (cache allowed) and render a PDF document or an xlsx workbook

        Args:
            export_format: "pdf" or "excel"
        """
        user_id = self._require_user(user_id)
        if export_format not in ("pdf", "excel"):
            raise UnsupportedExportFormatError(export_format)

        report = self.get_report(report_id, user_id, tenant_id)
        result = await self.execute_report(
            report_id, user_id, parameters, use_cache=True, tenant_id=tenant_id
        )
        report_data = ReportData(
            title=report["name"],
            description=report["description"],
            data=result.data,
            metadata=result.metadata
        )

        if export_format == "pdf":
            return await self.export.export_to_pdf(report_data)
        return await self.export.export_to_excel(report_data)

    # ============ Maintenance and analytics ============

    def cleanup_expired_cache(self) -> Dict[str, int]:
        """Delete expired cached results"""
        return {"cleaned": self.cache.cleanup_expired()}

    def get_report_analytics(
        self,
        user_id: Optional[str],
        report_id: Optional[str] = None,
        time_range: str = "7d",
        tenant_id: int = 0
    ) -> Dict[str, Any]:
        """
        Usage analytics over cached executions

        Args:
            user_id: acting user; scopes the executions when report_id is None
            report_id: restrict to one report
            time_range: 24h, 7d or 30d
            tenant_id: caller's tenant

        Returns:
            total executions, average time, data source usage and Warsaw averages
        """
        user_id = self._require_user(user_id)
        if report_id:
            self.get_report(report_id, user_id, tenant_id)
        since = utc_now() - TIME_RANGES.get(time_range, TIME_RANGES["7d"])

        results = self.cache.list_results(since, report_id=report_id, executed_by=user_id)

        total = len(results)
        data_source_usage: Dict[str, int] = {}
        affluence_total = 0.0
        route_total = 0.0
        districts: List[str] = []

        for entry in results:
            for source in entry["results"].get("metadata", {}).get("data_sources_used", []):
                data_source_usage[source] = data_source_usage.get(source, 0) + 1

            warsaw_metrics = entry["warsaw_metrics"]
            if warsaw_metrics:
                affluence_total += warsaw_metrics.affluence_score
                route_total += warsaw_metrics.route_efficiency
                for district in warsaw_metrics.districts_analyzed:
                    if district not in districts:
                        districts.append(district)

        avg_time = sum(e["query_performance"]["total_time"] for e in results) / total if total else 0

        return {
            "total_executions": total,
            "avg_execution_time": avg_time,
            "data_source_usage": data_source_usage,
            "warsaw_metrics": {
                "avg_affluence_score": affluence_total / total if total else 0,
                "avg_route_efficiency": route_total / total if total else 0,
                "districts_analyzed": districts,
            },
        }


_report_service = None


def get_report_service() -> ReportService:
    """
    Get the global report service

    Returns:
        ReportService instance
    """
    global _report_service

    if _report_service is None:
        from .cache_service import get_cache_service

        database = get_database()
        _report_service = ReportService(
            database=database,
            data_source_manager=DataSourceManager(),
            cache_service=get_cache_service()
        )

    return _report_service
