"""
CRM document rows (contacts, jobs, quotes, equipment)
"""
from sqlalchemy import Column, String, Text, Integer
from .base import Base, TimestampMixin


class Document(Base, TimestampMixin):
    """One flat CRM record stored as JSON"""
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(Integer, nullable=False, default=0, index=True)
    collection = Column(String(50), nullable=False, index=True)  # contacts, jobs, quotes, equipment
    payload = Column(Text, nullable=False)  # JSON object

    def __repr__(self):
        return f"<Document(id={self.id}, collection={self.collection})>"
