"""
Cached report execution results
"""
from sqlalchemy import Column, String, Text, DateTime
from ..utils.datetime_helper import utc_now
from .base import Base


class ReportResult(Base):
    """Cached result of one report execution"""
    __tablename__ = "report_results"

    id = Column(String(36), primary_key=True)
    report_id = Column(String(36), nullable=False, index=True)
    cache_key = Column(String(80), nullable=False, index=True)  # report_id + parameters hash
    executed_by = Column(String(64), nullable=True, index=True)
    parameters = Column(Text, nullable=False)  # JSON
    results = Column(Text, nullable=False)  # JSON: {"data": [...], "metadata": {...}}
    query_performance = Column(Text, nullable=False)  # JSON
    warsaw_metrics = Column(Text, nullable=True)  # JSON
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f"<ReportResult(id={self.id}, report_id={self.report_id}, expires_at={self.expires_at})>"
