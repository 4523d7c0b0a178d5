"""
Tenant Middleware

Resolves the business behind the request host (platform subdomain or
verified custom domain), exposes its branding as response headers and keeps
tenant hosts inside the business portal.
"""

import logging
from typing import Callable, Optional
from urllib.parse import quote

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse, Response

from ...config import IS_DEVELOPMENT, PLATFORM_DOMAIN
from ...database import SessionLocal
from .service import resolve_tenant

logger = logging.getLogger(__name__)

LOGIN_PATH = "/business/login"
SIGNUP_PATH = "/business/signup"
TENANT_ALLOWED_PREFIXES = (
    "/business",
    "/api/business",
    "/api/tenant",
    "/api/currency",
    "/webhooks",
    "/health",
    "/docs",
    "/openapi.json",
)


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def isolation_redirect(path: str) -> Optional[str]:
    """Where a tenant-host request must go instead, or None to serve it"""
    if path == "/" or _matches(path, SIGNUP_PATH):
        return LOGIN_PATH
    if any(_matches(path, prefix) for prefix in TENANT_ALLOWED_PREFIXES):
        return None
    return LOGIN_PATH


def platform_url(path: str) -> str:
    protocol = "http" if IS_DEVELOPMENT else "https"
    return f"{protocol}://{PLATFORM_DOMAIN}{path}"


def _header_value(value) -> str:
    # Header values must stay latin-1 encodable
    return quote(str(value), safe=" !#$&'()*+,-./:;=?@_~")


def branding_headers(tenant: dict) -> dict[str, str]:
    colors = tenant.get("colors") or {}
    headers = {
        "x-business-id": tenant["id"],
        "x-business-name": tenant.get("business_name"),
        "x-brand-name": tenant.get("brand_name"),
        "x-logo-url": tenant.get("logo_url"),
        "x-primary-color": colors.get("primary"),
        "x-secondary-color": colors.get("secondary"),
        "x-accent-color": colors.get("accent"),
        "x-custom-domain": tenant.get("custom_domain"),
    }
    return {name: _header_value(value) for name, value in headers.items() if value is not None}


class TenantMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        host = request.headers.get("x-forwarded-host") or request.headers.get("host", "")

        db = SessionLocal()
        try:
            kind, tenant = resolve_tenant(db, host)
        except Exception as e:
            logger.error(f"❌ Tenant resolution failed for {host}: {e}")
            kind, tenant = "platform", None
        finally:
            db.close()

        if kind == "platform":
            return await call_next(request)

        if tenant is None:
            if IS_DEVELOPMENT:
                return await call_next(request)
            logger.info(f"🔀 Unknown tenant host {host}, redirecting to platform")
            return RedirectResponse(platform_url("/business-not-found"))

        request.state.business = tenant
        target = isolation_redirect(request.url.path)
        if target:
            response = RedirectResponse(target)
        else:
            response = await call_next(request)

        for name, value in branding_headers(tenant).items():
            response.headers[name] = value
        return response
