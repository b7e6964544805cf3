"""
Service layer
"""
from .document_connector import DocumentConnector
from .relational_connector import RelationalConnector
from .vector_connector import VectorSearchConnector
from .data_source_manager import DataSourceManager
from .filter_service import FilterService
from .warsaw_service import WarsawService
from .cache_service import CacheService, get_cache_service
from .report_service import ReportService, get_report_service
from .export_service import ExportService, ReportData, get_export_service
from .dto import (
    ReportFilter,
    DataSourceConfig,
    VisualizationConfig,
    CalculatedField,
    WarsawSettings,
    ReportConfig,
    ScheduleConfig,
    WarsawMetrics,
    ExecutionMetadata,
    ExecutionResult,
)

__all__ = [
    "DocumentConnector",
    "RelationalConnector",
    "VectorSearchConnector",
    "DataSourceManager",
    "FilterService",
    "WarsawService",
    "CacheService",
    "get_cache_service",
    "ReportService",
    "get_report_service",
    "ExportService",
    "ReportData",
    "get_export_service",
    "ReportFilter",
    "DataSourceConfig",
    "VisualizationConfig",
    "CalculatedField",
    "WarsawSettings",
    "ReportConfig",
    "ScheduleConfig",
    "WarsawMetrics",
    "ExecutionMetadata",
    "ExecutionResult",
]
