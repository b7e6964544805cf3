"""
Report definition model
"""
from sqlalchemy import Column, String, Text, Boolean, Integer, DateTime
from .base import Base, TimestampMixin


class Report(Base, TimestampMixin):
    """Saved report definitions"""
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(Integer, nullable=False, default=0, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, index=True)  # dashboard, table, chart, kpi, custom
    config = Column(Text, nullable=False)  # JSON: ReportConfig
    created_by = Column(String(64), nullable=False, index=True)
    category = Column(String(100), nullable=True, index=True)
    tags = Column(Text, nullable=True)  # JSON array
    is_public = Column(Boolean, default=False, nullable=False)
    is_template = Column(Boolean, default=False, nullable=False)
    template_category = Column(String(50), nullable=True)
    is_favorite = Column(Boolean, default=False, nullable=False)
    shared_with = Column(Text, nullable=True)  # JSON array: [{"user_id", "permission"}]
    cache_enabled = Column(Boolean, default=True, nullable=False)
    cache_ttl = Column(Integer, default=300000, nullable=False)  # milliseconds
    schedule = Column(Text, nullable=True)  # JSON
    last_executed = Column(DateTime, nullable=True)
    execution_time = Column(Integer, nullable=True)  # milliseconds

    def __repr__(self):
        return f"<Report(id={self.id}, name={self.name}, type={self.type})>"
