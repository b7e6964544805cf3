"""
SQLAlchemy base configuration
"""
from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, DateTime

from ..utils.datetime_helper import utc_now

Base = declarative_base()


class TimestampMixin:
    """Timestamp mixin"""
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)
