"""
Request identity helpers

Read the tenant and user set on request.state by TenantMiddleware
"""
from typing import Optional

from fastapi import Request


def get_tenant_id(request: Request) -> int:
    """
    Tenant of the request

    Args:
        request: FastAPI Request object

    Returns:
        tenant_id: Integer tenant ID (0 when absent)
    """
    return getattr(request.state, 'tenant_id', 0)


def get_user_id(request: Request) -> Optional[str]:
    """
    Acting user of the request

    Args:
        request: FastAPI Request object

    Returns:
        user id string, or None for anonymous requests
    """
    return getattr(request.state, 'user_id', None)
