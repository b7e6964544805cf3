"""
Export service tests
"""
import json
from datetime import datetime
from io import BytesIO

import pytest
from openpyxl import load_workbook

from hvac_reports.services.export_service import (
    ExportService,
    ReportData,
    collect_columns,
    infer_column_type,
)
from hvac_reports.services.dto import ExecutionResult, ExecutionMetadata, WarsawMetrics
from hvac_reports.services.exceptions import UnsupportedExportFormatError


@pytest.fixture
def export_service():
    return ExportService()


@pytest.fixture
def sample_rows():
    return [
        {"customer": "Kowalski, Jan", "district": "Wola", "value": 1200.0, "active": True},
        {"customer": "Nowak", "district": "Mokotów", "value": 850.5, "active": False},
        {"customer": "Zielińska", "district": None, "value": 300, "active": True},
    ]


@pytest.fixture
def sample_report_data(sample_rows):
    metadata = ExecutionMetadata(
        total_rows=3,
        execution_time=42,
        data_sources_used=["document"],
        warsaw_metrics=WarsawMetrics(districts_analyzed=["Wola"], affluence_score=1.0),
    )
    return ReportData(
        title="Quarterly <installations>",
        description="Heat pump & AC installations by district",
        data=sample_rows,
        metadata=metadata
    )


def test_csv_header_and_quoting(export_service, sample_rows):
    csv = export_service.generate_csv(sample_rows)

    assert csv.split("\n") == [
        "customer,district,value,active",
        '"Kowalski, Jan",Wola,1200,true',
        "Nowak,Mokotów,850.5,false",
        "Zielińska,,300,true",
    ]


def test_csv_uses_first_row_keys(export_service):
    rows = [{"a": 1}, {"a": 2, "b": 3}, {"b": 4}]

    assert export_service.generate_csv(rows) == "a\n1\n2\n"


def test_csv_without_rows(export_service):
    assert export_service.generate_csv([]) == "No data available"
    assert export_service.generate_excel_csv([]) == "No data available"


def test_text_report_layout(export_service, sample_rows):
    text = export_service.generate_text_report(sample_rows, generated_at=datetime(2024, 7, 1, 8, 30))

    lines = text.split("\n")
    assert lines[:5] == [
        "HVAC CRM Report",
        "Generated: 2024-07-01 08:30:00",
        "Total Records: 3",
        "",
        "Data:",
    ]
    assert json.loads("\n".join(lines[5:])) == sample_rows


def test_export_text_dispatches_by_format(export_service, sample_rows):
    result = ExecutionResult(data=sample_rows)

    assert export_service.export_text(result, "csv") == export_service.generate_csv(sample_rows)
    assert export_service.export_text(result, "excel") == export_service.generate_csv(sample_rows)
    assert export_service.export_text(result, "pdf").startswith("HVAC CRM Report")

    with pytest.raises(UnsupportedExportFormatError):
        export_service.export_text(result, "xml")


def test_collect_columns_and_types(sample_rows):
    rows = sample_rows + [{"scheduled": datetime(2024, 1, 1)}]

    assert collect_columns(rows) == ["customer", "district", "value", "active", "scheduled"]
    assert infer_column_type(rows, "value") == "number"
    assert infer_column_type(rows, "active") == "boolean"
    assert infer_column_type(rows, "district") == "string"
    assert infer_column_type(rows, "scheduled") == "date"
    assert infer_column_type(rows, "missing") == "unknown"


@pytest.mark.asyncio
async def test_export_to_pdf(export_service, sample_report_data):
    pdf_bytes = await export_service.export_to_pdf(sample_report_data)

    assert isinstance(pdf_bytes, bytes)
    assert pdf_bytes.startswith(b'%PDF')
    print(f"✓ PDF rendered: {len(pdf_bytes)} bytes")


@pytest.mark.asyncio
async def test_export_to_pdf_truncates_rows(export_service):
    rows = [{"id": i, "note": "x" * 80} for i in range(150)]
    report_data = ReportData(title="Large", data=rows, metadata=ExecutionMetadata(total_rows=150))

    pdf_bytes = await export_service.export_to_pdf(report_data, max_rows=100)

    assert pdf_bytes.startswith(b'%PDF')


@pytest.mark.asyncio
async def test_export_to_pdf_without_rows(export_service):
    report_data = ReportData(title="Empty", data=[], metadata=ExecutionMetadata())

    pdf_bytes = await export_service.export_to_pdf(report_data)

    assert pdf_bytes.startswith(b'%PDF')


@pytest.mark.asyncio
async def test_export_to_excel(export_service, sample_report_data):
    excel_bytes = await export_service.export_to_excel(sample_report_data)

    wb = load_workbook(BytesIO(excel_bytes))
    assert wb.sheetnames == ["Data", "Metadata"]

    ws = wb["Data"]
    assert [cell.value for cell in ws[1]] == ["customer", "district", "value", "active"]
    assert ws.cell(row=2, column=1).value == "Kowalski, Jan"
    assert ws.cell(row=4, column=2).value is None
    assert ws.max_row == 4

    meta = wb["Metadata"]
    assert meta.cell(row=1, column=1).value == "Quarterly <installations>"
    assert meta.cell(row=4, column=2).value == 3


@pytest.mark.asyncio
async def test_export_to_excel_without_metadata(export_service, sample_report_data):
    excel_bytes = await export_service.export_to_excel(sample_report_data, include_metadata=False)

    wb = load_workbook(BytesIO(excel_bytes))
    assert wb.sheetnames == ["Data"]
