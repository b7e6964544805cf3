"""
Report engine exceptions
"""
from typing import Optional


class ReportBaseException(Exception):
    """Base exception for report errors surfaced to callers."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotAuthenticatedError(ReportBaseException):
    """Raised when no user identity accompanies the request."""
    def __init__(self):
        super().__init__("Not authenticated")


class PermissionDeniedError(ReportBaseException):
    """Raised when the user lacks the permission an operation needs."""
    def __init__(self, message: str = "Access denied", report_id: Optional[str] = None,
                 user_id: Optional[str] = None):
        super().__init__(message, {"report_id": report_id, "user_id": user_id})


class ReportNotFoundError(ReportBaseException):
    """Raised when a report does not exist."""
    def __init__(self, report_id: str):
        super().__init__("Report not found", {"report_id": report_id})


class TemplateNotFoundError(ReportBaseException):
    """Raised when a template id is absent or not flagged as a template."""
    def __init__(self, template_id: str):
        super().__init__("Template not found", {"template_id": template_id})


class UnsupportedExportFormatError(ReportBaseException):
    """Raised for export formats other than csv, excel and pdf."""
    def __init__(self, export_format: str):
        super().__init__("Unsupported export format", {"format": export_format})
