"""
Export API routes
"""
from typing import Literal
from urllib.parse import quote

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from .reports import to_http_exception
from ..services.report_service import get_report_service
from ..utils.logger import get_logger
from ..utils.tenant_helpers import get_tenant_id, get_user_id

logger = get_logger(__name__)
router = APIRouter(prefix="/api/export", tags=["export"])

TEXT_MEDIA_TYPES = {
    "csv": "text/csv",
    "excel": "text/csv",
    "pdf": "text/plain",
}

FILE_TYPES = {
    "pdf": ("application/pdf", "pdf"),
    "excel": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
}


@router.get("/{report_id}")
async def export_report(request: Request, report_id: str, format: str = "csv"):
    """
    Export a report as text

    csv and excel give comma separated rows; pdf gives a plain text report.
    """
    try:
        logger.info(f"Export request: report_id={report_id}, format={format}")
        content = await get_report_service().export_report(
            report_id, get_user_id(request), format, tenant_id=get_tenant_id(request)
        )
        return PlainTextResponse(content=content, media_type=TEXT_MEDIA_TYPES[format])
    except Exception as e:
        raise to_http_exception(e, "Export report")


@router.get("/{report_id}/download")
async def download_report(request: Request, report_id: str, format: Literal["pdf", "excel"] = "pdf"):
    """
    Download a report as a PDF document or an Excel workbook
    """
    try:
        service = get_report_service()
        user_id = get_user_id(request)
        tenant_id = get_tenant_id(request)
        content = await service.render_report_file(report_id, user_id, format, tenant_id=tenant_id)
        report = service.get_report(report_id, user_id, tenant_id)

        media_type, extension = FILE_TYPES[format]
        encoded_filename = quote(f"{report['name']}.{extension}")

        logger.info(f"Report file rendered: report_id={report_id}, format={format}, size={len(content)} bytes")
        return Response(
            content=content,
            media_type=media_type,
            headers={
                "Content-Disposition": f"attachment; filename*=UTF-8''{encoded_filename}"
            }
        )
    except Exception as e:
        raise to_http_exception(e, "Download report")
