"""Booking router - Business portal bookings, quotes and addons"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_business_user
from ...database import get_db
from ...models import BusinessUser
from ...rate_limiter import create_rate_limiter
from ...shared.validators import to_naive_utc
from ..pricing.service import PricingService
from .schemas import BusinessBookingCreate, CancelBookingRequest, ModifyDatetimeRequest
from .service import BusinessBookingService, serialize_business_booking

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/business", tags=["Business Bookings"])

create_booking_rate_limiter = create_rate_limiter(limit=30, window_seconds=60, key_prefix="business_booking")


def get_booking_service(db: Session = Depends(get_db)) -> BusinessBookingService:
    """Dependency injection for BusinessBookingService"""
    return BusinessBookingService(db)


# ============================================================================
# PRICING
# ============================================================================


@router.get("/quote")
async def get_quote(
    from_location_id: int = Query(...),
    to_location_id: int = Query(...),
    passengers: int = Query(1, ge=1, le=20),
    business_user: BusinessUser = Depends(get_business_user),
    db: Session = Depends(get_db),
):
    """Vehicle prices for a route in the business wallet currency"""
    return PricingService(db).quote_route(
        from_location_id,
        to_location_id,
        passengers,
        business=True,
        currency=business_user.business_account.preferred_currency,
    )


@router.get("/addons")
async def get_addons(
    business_user: BusinessUser = Depends(get_business_user),
    db: Session = Depends(get_db),
):
    return PricingService(db).active_addons()


# ============================================================================
# BOOKINGS
# ============================================================================


@router.get("/bookings")
async def list_bookings(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    business_user: BusinessUser = Depends(get_business_user),
    service: BusinessBookingService = Depends(get_booking_service),
):
    return service.list_bookings(
        business_user, status, search, to_naive_utc(date_from), to_naive_utc(date_to), page, limit
    )


@router.post("/bookings", status_code=201, dependencies=[Depends(create_booking_rate_limiter)])
async def create_booking(
    data: BusinessBookingCreate,
    background_tasks: BackgroundTasks,
    business_user: BusinessUser = Depends(get_business_user),
    service: BusinessBookingService = Depends(get_booking_service),
):
    """Create a confirmed booking paid from the business wallet"""
    try:
        result = service.create_booking(business_user, data)
    except HTTPException:
        # Spending-limit refusals still email the owner
        await service.notifier.flush()
        raise
    background_tasks.add_task(service.notifier.flush)
    return result


@router.get("/bookings/counts")
async def booking_counts(
    business_user: BusinessUser = Depends(get_business_user),
    service: BusinessBookingService = Depends(get_booking_service),
):
    return service.booking_counts(business_user)


@router.get("/bookings/{booking_id}")
async def get_booking(
    booking_id: int,
    business_user: BusinessUser = Depends(get_business_user),
    service: BusinessBookingService = Depends(get_booking_service),
):
    return serialize_business_booking(service.get_booking(business_user, booking_id))


@router.post("/bookings/{booking_id}/cancel")
async def cancel_booking(
    booking_id: int,
    data: CancelBookingRequest,
    background_tasks: BackgroundTasks,
    business_user: BusinessUser = Depends(get_business_user),
    service: BusinessBookingService = Depends(get_booking_service),
):
    """Cancel and refund the full booking price to the wallet"""
    result = service.cancel_booking(business_user, booking_id, data.reason)
    background_tasks.add_task(service.notifier.flush)
    return result


@router.get("/bookings/{booking_id}/modification-eligibility")
async def modification_eligibility(
    booking_id: int,
    business_user: BusinessUser = Depends(get_business_user),
    service: BusinessBookingService = Depends(get_booking_service),
):
    return service.get_eligibility(business_user, booking_id)


@router.patch("/bookings/{booking_id}/datetime")
async def modify_pickup_datetime(
    booking_id: int,
    data: ModifyDatetimeRequest,
    background_tasks: BackgroundTasks,
    business_user: BusinessUser = Depends(get_business_user),
    service: BusinessBookingService = Depends(get_booking_service),
):
    result = service.modify_pickup_datetime(business_user, booking_id, data)
    background_tasks.add_task(service.notifier.flush)
    return result
