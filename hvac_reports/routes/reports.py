"""
Report API routes
"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, Field

from ..services.report_service import get_report_service
from ..services.dto import (
    ReportConfig,
    ReportType,
    Permission,
    ScheduleConfig,
    ExecutionResult,
)
from ..services.exceptions import (
    ReportBaseException,
    NotAuthenticatedError,
    PermissionDeniedError,
    ReportNotFoundError,
    TemplateNotFoundError,
    UnsupportedExportFormatError,
)
from ..utils.logger import get_logger
from ..utils.tenant_helpers import get_tenant_id, get_user_id

logger = get_logger(__name__)
router = APIRouter(prefix="/api/reports", tags=["reports"])

ERROR_STATUS = (
    (NotAuthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (ReportNotFoundError, status.HTTP_404_NOT_FOUND),
    (TemplateNotFoundError, status.HTTP_404_NOT_FOUND),
    (UnsupportedExportFormatError, status.HTTP_400_BAD_REQUEST),
)


def to_http_exception(error: Exception, action: str) -> HTTPException:
    """
    Map a service error to an HTTPException

    Report errors keep their message; anything else is logged and becomes a 500.
    """
    if isinstance(error, ReportBaseException):
        for error_type, status_code in ERROR_STATUS:
            if isinstance(error, error_type):
                return HTTPException(status_code=status_code, detail=error.message)

    logger.error(f"{action} failed: {str(error)}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{action} failed: {str(error)}"
    )


# ============ Request/Response Models ============

class CreateReportRequest(BaseModel):
    """Create report request"""
    name: str = Field(..., min_length=1, description="Report name")
    description: Optional[str] = None
    type: ReportType
    config: ReportConfig
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_public: bool = False
    is_template: bool = False
    template_category: Optional[str] = None
    cache_enabled: bool = True
    cache_ttl: Optional[int] = Field(None, ge=0, description="Cache time to live in milliseconds")


class UpdateReportRequest(BaseModel):
    """Update report request; omitted fields are left unchanged"""
    name: Optional[str] = None
    description: Optional[str] = None
    config: Optional[ReportConfig] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    is_favorite: Optional[bool] = None
    cache_enabled: Optional[bool] = None
    cache_ttl: Optional[int] = Field(None, ge=0)


class ExecuteReportRequest(BaseModel):
    """Execute report request"""
    parameters: Dict[str, Any] = Field(default_factory=dict)
    use_cache: bool = True


class ShareReportRequest(BaseModel):
    """Share report request"""
    user_id: str
    permission: Permission = "view"


class CreateFromTemplateRequest(BaseModel):
    """Create report from template request"""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class CreatedResponse(BaseModel):
    """Id of a created report"""
    id: str


# ============ API Endpoints ============

@router.get("", status_code=status.HTTP_200_OK)
async def list_reports(
    request: Request,
    type: Optional[ReportType] = None,
    category: Optional[str] = None,
    is_template: Optional[bool] = None,
    is_public: Optional[bool] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None
):
    """List reports the caller may view"""
    try:
        return get_report_service().list_reports(
            get_user_id(request),
            tenant_id=get_tenant_id(request),
            type=type,
            category=category,
            is_template=is_template,
            is_public=is_public,
            search=search,
            limit=limit
        )
    except Exception as e:
        raise to_http_exception(e, "List reports")


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_report(request: Request, body: CreateReportRequest):
    """Create a report owned by the caller"""
    try:
        report_id = get_report_service().create_report(
            get_user_id(request),
            name=body.name,
            type=body.type,
            config=body.config,
            description=body.description,
            category=body.category,
            tags=body.tags,
            is_public=body.is_public,
            is_template=body.is_template,
            template_category=body.template_category,
            cache_enabled=body.cache_enabled,
            cache_ttl=body.cache_ttl,
            tenant_id=get_tenant_id(request)
        )
        return CreatedResponse(id=report_id)
    except Exception as e:
        raise to_http_exception(e, "Create report")


@router.get("/templates", status_code=status.HTTP_200_OK)
async def get_templates(request: Request, category: Optional[str] = None):
    """Template reports of the caller's tenant"""
    try:
        return get_report_service().get_templates(category, tenant_id=get_tenant_id(request))
    except Exception as e:
        raise to_http_exception(e, "Get templates")


@router.post("/templates/{template_id}", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_from_template(request: Request, template_id: str, body: CreateFromTemplateRequest):
    """Copy a template into a new report owned by the caller"""
    try:
        report_id = get_report_service().create_from_template(
            template_id,
            get_user_id(request),
            name=body.name,
            description=body.description,
            tenant_id=get_tenant_id(request)
        )
        return CreatedResponse(id=report_id)
    except Exception as e:
        raise to_http_exception(e, "Create report from template")


@router.get("/analytics", status_code=status.HTTP_200_OK)
async def get_analytics(request: Request, report_id: Optional[str] = None, time_range: str = "7d"):
    """Execution analytics of one report or of the caller's executions"""
    try:
        return get_report_service().get_report_analytics(
            get_user_id(request),
            report_id=report_id,
            time_range=time_range,
            tenant_id=get_tenant_id(request)
        )
    except Exception as e:
        raise to_http_exception(e, "Get report analytics")


@router.get("/{report_id}", status_code=status.HTTP_200_OK)
async def get_report(request: Request, report_id: str):
    """Get one report"""
    try:
        return get_report_service().get_report(report_id, get_user_id(request), get_tenant_id(request))
    except Exception as e:
        raise to_http_exception(e, "Get report")


@router.patch("/{report_id}", status_code=status.HTTP_200_OK)
async def update_report(request: Request, report_id: str, body: UpdateReportRequest):
    """Update the supplied fields of a report"""
    try:
        updates = body.model_dump(exclude_none=True)
        return get_report_service().update_report(
            report_id, get_user_id(request), get_tenant_id(request), **updates
        )
    except Exception as e:
        raise to_http_exception(e, "Update report")


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(request: Request, report_id: str):
    """Delete a report and its cached results"""
    try:
        get_report_service().delete_report(report_id, get_user_id(request), get_tenant_id(request))
        return None
    except Exception as e:
        raise to_http_exception(e, "Delete report")


@router.post("/{report_id}/execute", response_model=ExecutionResult, status_code=status.HTTP_200_OK)
async def execute_report(request: Request, report_id: str, body: Optional[ExecuteReportRequest] = None):
    """Run a report, serving a live cached result when allowed"""
    body = body or ExecuteReportRequest()
    try:
        logger.info(f"Execute report request: report_id={report_id}, use_cache={body.use_cache}")
        return await get_report_service().execute_report(
            report_id,
            get_user_id(request),
            parameters=body.parameters,
            use_cache=body.use_cache,
            tenant_id=get_tenant_id(request)
        )
    except Exception as e:
        raise to_http_exception(e, "Execute report")


@router.post("/{report_id}/share", status_code=status.HTTP_204_NO_CONTENT)
async def share_report(request: Request, report_id: str, body: ShareReportRequest):
    """Grant or change a share"""
    try:
        get_report_service().share_report(
            report_id,
            get_user_id(request),
            body.user_id,
            body.permission,
            tenant_id=get_tenant_id(request)
        )
        return None
    except Exception as e:
        raise to_http_exception(e, "Share report")


@router.delete("/{report_id}/share/{target_user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unshare_report(request: Request, report_id: str, target_user_id: str):
    """Remove a share"""
    try:
        get_report_service().unshare_report(
            report_id, get_user_id(request), target_user_id, tenant_id=get_tenant_id(request)
        )
        return None
    except Exception as e:
        raise to_http_exception(e, "Unshare report")


@router.put("/{report_id}/schedule", status_code=status.HTTP_204_NO_CONTENT)
async def schedule_report(request: Request, report_id: str, body: ScheduleConfig):
    """Store a delivery schedule"""
    try:
        get_report_service().schedule_report(
            report_id, get_user_id(request), body, tenant_id=get_tenant_id(request)
        )
        return None
    except Exception as e:
        raise to_http_exception(e, "Schedule report")
