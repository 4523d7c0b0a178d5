"""Business routers - Portal signup/profile and admin account management"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_business_user, get_current_profile, require_admin, require_business_owner
from ...database import get_db
from ...models import BusinessUser, Profile
from .schemas import BrandingUpdate, BulkBusinessAction, BusinessSignup, CurrencyUpdate, StatusReason
from .service import BusinessAdminService, BusinessService

router = APIRouter(prefix="/api/business", tags=["Business"])
admin_router = APIRouter(prefix="/api/admin/businesses", tags=["Admin Businesses"])


def get_business_service(db: Session = Depends(get_db)) -> BusinessService:
    return BusinessService(db)


def get_business_admin_service(db: Session = Depends(get_db)) -> BusinessAdminService:
    return BusinessAdminService(db)


# ============================================================================
# BUSINESS PORTAL
# ============================================================================


@router.post("/signup", status_code=201)
async def signup(
    data: BusinessSignup,
    profile: Profile = Depends(get_current_profile),
    service: BusinessService = Depends(get_business_service),
):
    """Register a business; the account stays pending until an admin approves it"""
    return service.signup(profile, data)


@router.get("/me")
async def get_me(
    business_user: BusinessUser = Depends(get_business_user),
    service: BusinessService = Depends(get_business_service),
):
    return service.get_me(business_user)


@router.patch("/branding")
async def update_branding(
    data: BrandingUpdate,
    owner: BusinessUser = Depends(require_business_owner),
    service: BusinessService = Depends(get_business_service),
):
    return service.update_branding(owner, data)


@router.patch("/currency")
async def update_currency(
    data: CurrencyUpdate,
    owner: BusinessUser = Depends(require_business_owner),
    service: BusinessService = Depends(get_business_service),
):
    return service.update_preferred_currency(owner, data.currency)


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("")
async def list_businesses(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: Profile = Depends(require_admin),
    service: BusinessAdminService = Depends(get_business_admin_service),
):
    return service.list_businesses(status, search, page, limit)


@admin_router.post("/bulk")
async def bulk_action(
    data: BulkBusinessAction,
    background_tasks: BackgroundTasks,
    admin: Profile = Depends(require_admin),
    service: BusinessAdminService = Depends(get_business_admin_service),
):
    result = service.bulk_action(data.business_ids, data.action, data.reason)
    background_tasks.add_task(service.notifier.flush)
    return result


@admin_router.get("/{business_id}")
async def get_business(
    business_id: int,
    admin: Profile = Depends(require_admin),
    service: BusinessAdminService = Depends(get_business_admin_service),
):
    return service.get_business(business_id)


@admin_router.post("/{business_id}/approve")
async def approve_business(
    business_id: int,
    background_tasks: BackgroundTasks,
    admin: Profile = Depends(require_admin),
    service: BusinessAdminService = Depends(get_business_admin_service),
):
    result = service.change_status(business_id, "approve")
    background_tasks.add_task(service.notifier.flush)
    return result


@admin_router.post("/{business_id}/reject")
async def reject_business(
    business_id: int,
    data: StatusReason,
    background_tasks: BackgroundTasks,
    admin: Profile = Depends(require_admin),
    service: BusinessAdminService = Depends(get_business_admin_service),
):
    result = service.change_status(business_id, "reject", data.reason)
    background_tasks.add_task(service.notifier.flush)
    return result


@admin_router.post("/{business_id}/suspend")
async def suspend_business(
    business_id: int,
    data: StatusReason,
    background_tasks: BackgroundTasks,
    admin: Profile = Depends(require_admin),
    service: BusinessAdminService = Depends(get_business_admin_service),
):
    result = service.change_status(business_id, "suspend", data.reason)
    background_tasks.add_task(service.notifier.flush)
    return result


@admin_router.post("/{business_id}/reactivate")
async def reactivate_business(
    business_id: int,
    background_tasks: BackgroundTasks,
    admin: Profile = Depends(require_admin),
    service: BusinessAdminService = Depends(get_business_admin_service),
):
    result = service.change_status(business_id, "reactivate")
    background_tasks.add_task(service.notifier.flush)
    return result
