"""
Request middleware

Extracts tenant and user identity from headers injected by the API gateway
"""
from .tenant import TenantMiddleware

__all__ = ["TenantMiddleware"]
