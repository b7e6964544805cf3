"""
Database models package
"""
from .base import Base
from .report import Report
from .report_result import ReportResult
from .document import Document

__all__ = [
    "Base",
    "Report",
    "ReportResult",
    "Document",
]
