"""
Request identity middleware
The API gateway authenticates callers and forwards who they are in headers
"""
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request
from ..utils.logger import get_logger

logger = get_logger(__name__)

TENANT_HEADER = "X-Tenant-ID"
USER_HEADER = "X-User-ID"
USERNAME_HEADER = "X-Username"


def parse_tenant_id(raw: Optional[str]) -> int:
    """Tenant id from the header value; 0 when absent, malformed or negative"""
    if not raw:
        return 0
    try:
        tenant_id = int(raw.strip())
    except ValueError:
        logger.warning(f"Invalid {TENANT_HEADER} header: {raw!r}, using tenant 0")
        return 0
    return tenant_id if tenant_id >= 0 else 0


def header_value(request: Request, name: str) -> Optional[str]:
    """Stripped header value, None when missing or blank"""
    value = request.headers.get(name)
    if value is None:
        return None
    return value.strip() or None


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Puts tenant_id, user_id and username on request.state

    Requests without X-User-ID are anonymous (user_id None); report
    operations reject them as unauthenticated.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.tenant_id = parse_tenant_id(request.headers.get(TENANT_HEADER))
        request.state.user_id = header_value(request, USER_HEADER)
        request.state.username = header_value(request, USERNAME_HEADER)

        logger.debug(
            f"{request.method} {request.url.path} "
            f"tenant={request.state.tenant_id} user={request.state.user_id or 'anonymous'}"
        )

        return await call_next(request)
