"""
HTTP API tests
"""
import pytest
from fastapi.testclient import TestClient

from hvac_reports.main import app
from hvac_reports.services import report_service as report_service_module
from hvac_reports.services.report_service import ReportService
from hvac_reports.services.cache_service import CacheService
from hvac_reports.services.data_source_manager import DataSourceManager
from hvac_reports.services.document_connector import DocumentConnector
from hvac_reports.services.vector_connector import VectorSearchConnector


ALICE = {"X-User-ID": "alice", "X-Tenant-ID": "1"}
BOB = {"X-User-ID": "bob", "X-Tenant-ID": "1"}

REPORT = {
    "name": "Open jobs",
    "type": "table",
    "config": {
        "data_sources": [{
            "id": "jobs",
            "type": "document",
            "table": "jobs",
            "filters": [{"field": "status", "operator": "equals", "value": "open"}],
        }],
        "visualization": {"type": "table"},
    },
}


@pytest.fixture
def client(database, add_documents, monkeypatch):
    """Test client whose report service uses the test database"""
    add_documents("jobs", [
        {"id": "j1", "status": "open", "customer": "Kowalski, Jan", "value": 100},
        {"id": "j2", "status": "closed", "customer": "Nowak", "value": 200},
    ], tenant_id=1)
    add_documents("jobs", [{"id": "j9", "status": "open", "customer": "Other tenant", "value": 1}])
    service = ReportService(
        database=database,
        data_source_manager=DataSourceManager(
            document_connector=DocumentConnector(database),
            vector_connector=VectorSearchConnector(url="")
        ),
        cache_service=CacheService(database)
    )
    monkeypatch.setattr(report_service_module, "_report_service", service)
    return TestClient(app)


def create_report(client, body=None, headers=ALICE):
    response = client.post("/api/reports", json=body or REPORT, headers=headers)
    assert response.status_code == 201
    return response.json()["id"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_missing_user_is_unauthorized(client):
    response = client.get("/api/reports")

    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


def test_create_list_get(client):
    report_id = create_report(client)

    listed = client.get("/api/reports", headers=ALICE).json()
    fetched = client.get(f"/api/reports/{report_id}", headers=ALICE).json()

    assert [r["id"] for r in listed] == [report_id]
    assert fetched["tenant_id"] == 1
    assert fetched["name"] == "Open jobs"


def test_tenant_scopes_listing(client):
    create_report(client)

    assert client.get("/api/reports", headers={"X-User-ID": "alice", "X-Tenant-ID": "2"}).json() == []


def test_other_tenant_cannot_reach_report(client):
    report_id = create_report(client, dict(REPORT, is_public=True))
    other = {"X-User-ID": "alice", "X-Tenant-ID": "2"}

    assert client.get(f"/api/reports/{report_id}", headers=other).status_code == 404
    assert client.post(f"/api/reports/{report_id}/execute", headers=other).status_code == 404
    assert client.get(f"/api/export/{report_id}?format=csv", headers=other).status_code == 404
    assert client.delete(f"/api/reports/{report_id}", headers=other).status_code == 404
    assert client.get("/api/reports/templates", headers=other).json() == []


def test_invalid_config_is_rejected(client):
    body = dict(REPORT, config={"data_sources": []})

    response = client.post("/api/reports", json=body, headers=ALICE)

    assert response.status_code == 422


def test_error_mapping(client):
    report_id = create_report(client)

    assert client.get("/api/reports/missing", headers=ALICE).status_code == 404
    assert client.get(f"/api/reports/{report_id}", headers=BOB).status_code == 403
    assert client.delete(f"/api/reports/{report_id}", headers=BOB).status_code == 403
    assert client.get(f"/api/export/{report_id}?format=xml", headers=ALICE).status_code == 400
    assert client.post("/api/reports/templates/missing", json={"name": "x"}, headers=ALICE).status_code == 404


def test_update_and_share(client):
    report_id = create_report(client)

    response = client.patch(f"/api/reports/{report_id}", json={"name": "Renamed"}, headers=ALICE)
    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"

    response = client.post(
        f"/api/reports/{report_id}/share",
        json={"user_id": "bob", "permission": "view"},
        headers=ALICE
    )
    assert response.status_code == 204
    assert client.get(f"/api/reports/{report_id}", headers=BOB).status_code == 200

    response = client.delete(f"/api/reports/{report_id}/share/bob", headers=ALICE)
    assert response.status_code == 204
    assert client.get(f"/api/reports/{report_id}", headers=BOB).status_code == 403


def test_schedule(client):
    report_id = create_report(client)

    response = client.put(
        f"/api/reports/{report_id}/schedule",
        json={"enabled": True, "frequency": "daily", "time": "07:00"},
        headers=ALICE
    )

    assert response.status_code == 204
    assert client.get(f"/api/reports/{report_id}", headers=ALICE).json()["schedule"]["time"] == "07:00"


def test_execute(client):
    report_id = create_report(client)

    response = client.post(f"/api/reports/{report_id}/execute", json={"parameters": {"week": 3}}, headers=ALICE)

    assert response.status_code == 200
    body = response.json()
    assert [row["id"] for row in body["data"]] == ["j1"]
    assert body["metadata"]["total_rows"] == 1
    assert body["metadata"]["data_sources_used"] == ["document"]


def test_export_csv(client):
    report_id = create_report(client)

    response = client.get(f"/api/export/{report_id}?format=csv", headers=ALICE)

    assert response.status_code == 200
    assert response.text.split("\n") == ["id,status,customer,value", 'j1,open,"Kowalski, Jan",100']


def test_download_pdf(client):
    report_id = create_report(client)

    response = client.get(f"/api/export/{report_id}/download?format=pdf", headers=ALICE)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "Open%20jobs.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b'%PDF')


def test_templates_and_copy(client):
    template_id = create_report(client, dict(REPORT, is_template=True, template_category="operational"))

    templates = client.get("/api/reports/templates?category=operational", headers=ALICE).json()
    assert [t["id"] for t in templates] == [template_id]

    response = client.post(f"/api/reports/templates/{template_id}", json={"name": "Copy"}, headers=BOB)
    assert response.status_code == 201
    copy = client.get(f"/api/reports/{response.json()['id']}", headers=BOB).json()
    assert copy["created_by"] == "bob"


def test_analytics_and_cache_endpoints(client):
    report_id = create_report(client)
    client.post(f"/api/reports/{report_id}/execute", headers=ALICE)

    analytics = client.get(f"/api/reports/analytics?report_id={report_id}", headers=ALICE).json()
    stats = client.get("/api/cache/stats").json()
    cleanup = client.post("/api/cache/cleanup").json()

    assert analytics["total_executions"] == 1
    assert stats["size"] == 1
    assert cleanup == {"cleaned": 0}


def test_delete(client):
    report_id = create_report(client)

    assert client.delete(f"/api/reports/{report_id}", headers=ALICE).status_code == 204
    assert client.get(f"/api/reports/{report_id}", headers=ALICE).status_code == 404
