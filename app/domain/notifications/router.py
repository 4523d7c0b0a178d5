"""Notification router - Business portal inbox"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_business_user, require_business_owner
from ...database import get_db
from ...models import BusinessUser
from .schemas import PreferencesUpdate
from .service import NotificationService

router = APIRouter(prefix="/api/business/notifications", tags=["Business Notifications"])


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


@router.get("")
async def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    business_user: BusinessUser = Depends(get_business_user),
    service: NotificationService = Depends(get_notification_service),
):
    return service.list_notifications(business_user, unread_only, page, limit)


@router.get("/unread-count")
async def unread_count(
    business_user: BusinessUser = Depends(get_business_user),
    service: NotificationService = Depends(get_notification_service),
):
    return {"unread_count": service.unread_count(business_user)}


@router.post("/read-all")
async def mark_all_read(
    business_user: BusinessUser = Depends(get_business_user),
    service: NotificationService = Depends(get_notification_service),
):
    return service.mark_all_read(business_user)


@router.get("/preferences")
async def get_preferences(
    business_user: BusinessUser = Depends(get_business_user),
    service: NotificationService = Depends(get_notification_service),
):
    return service.get_preferences(business_user)


@router.put("/preferences")
async def update_preferences(
    data: PreferencesUpdate,
    owner: BusinessUser = Depends(require_business_owner),
    service: NotificationService = Depends(get_notification_service),
):
    return service.update_preferences(owner, data)


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    business_user: BusinessUser = Depends(get_business_user),
    service: NotificationService = Depends(get_notification_service),
):
    return service.mark_read(business_user, notification_id)
