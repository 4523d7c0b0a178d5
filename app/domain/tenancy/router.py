"""Tenancy router - Public tenant branding and custom domain setup"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ...auth import require_business_owner
from ...database import get_db
from ...models import BusinessUser
from .schemas import CustomDomainRequest
from .service import DomainService, resolve_tenant

router = APIRouter(tags=["Tenancy"])


def get_domain_service(db: Session = Depends(get_db)) -> DomainService:
    return DomainService(db)


@router.get("/api/tenant")
async def get_tenant(request: Request, db: Session = Depends(get_db)):
    """Branding for the business that owns the request host"""
    tenant = getattr(request.state, "business", None)
    if tenant is None:
        host = request.headers.get("x-forwarded-host") or request.headers.get("host", "")
        kind, tenant = resolve_tenant(db, host)
        if kind == "platform":
            return {"is_tenant": False, "business": None}
    if tenant is None:
        raise HTTPException(status_code=404, detail="Business not found")
    return {"is_tenant": True, "business": tenant}


@router.get("/api/business/domain")
async def get_domain(
    owner: BusinessUser = Depends(require_business_owner),
    service: DomainService = Depends(get_domain_service),
):
    return service.get_domain(owner)


@router.post("/api/business/domain")
async def configure_domain(
    data: CustomDomainRequest,
    owner: BusinessUser = Depends(require_business_owner),
    service: DomainService = Depends(get_domain_service),
):
    """Connect a custom domain; returns the DNS records to create"""
    return service.configure_custom_domain(owner, data.domain)


@router.post("/api/business/domain/verify")
async def verify_domain(
    owner: BusinessUser = Depends(require_business_owner),
    service: DomainService = Depends(get_domain_service),
):
    return service.verify_custom_domain(owner)


@router.delete("/api/business/domain")
async def remove_domain(
    owner: BusinessUser = Depends(require_business_owner),
    service: DomainService = Depends(get_domain_service),
):
    return service.remove_custom_domain(owner)
