"""
Shared test fixtures
"""
import json
import uuid
from datetime import datetime

import pytest

from hvac_reports.database import Database
from hvac_reports.models.document import Document


@pytest.fixture
def database(tmp_path):
    """Temporary SQLite database with all tables created"""
    db = Database(f"sqlite:///{tmp_path}/test.db")
    db.create_tables()
    yield db
    db.engine.dispose()


@pytest.fixture
def add_documents(database):
    """Insert CRM rows into the documents table"""
    def _add(collection, rows, tenant_id=0):
        with database.get_session() as session:
            for index, row in enumerate(rows):
                session.add(Document(
                    id=str(row.get("id", uuid.uuid4())),
                    tenant_id=tenant_id,
                    collection=collection,
                    payload=json.dumps(row, ensure_ascii=False),
                    created_at=datetime(2024, 1, 1, 0, 0, index),
                ))
    return _add


class FakeClock:
    """Settable clock for cache expiry and seasonal tests"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 7, 15, 12, 0, 0))
