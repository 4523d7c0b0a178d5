"""Customer booking router - Direct bookings made by customers and vendors"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_customer_or_vendor
from ...database import get_db
from ...models import Profile
from ..pricing.service import PricingService
from .schemas import CustomerBookingCreate
from .service import CustomerBookingService

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


def get_customer_booking_service(db: Session = Depends(get_db)) -> CustomerBookingService:
    return CustomerBookingService(db)


@router.get("/quote")
async def get_quote(
    from_location_id: int = Query(...),
    to_location_id: int = Query(...),
    passengers: int = Query(1, ge=1, le=20),
    profile: Profile = Depends(require_customer_or_vendor),
    db: Session = Depends(get_db),
):
    return PricingService(db).quote_route(from_location_id, to_location_id, passengers, business=False)


@router.get("")
async def list_my_bookings(
    profile: Profile = Depends(require_customer_or_vendor),
    service: CustomerBookingService = Depends(get_customer_booking_service),
):
    return service.list_bookings(profile)


@router.post("", status_code=201)
async def create_booking(
    data: CustomerBookingCreate,
    profile: Profile = Depends(require_customer_or_vendor),
    service: CustomerBookingService = Depends(get_customer_booking_service),
):
    """Create a pending booking; payment is collected separately"""
    return service.create_booking(profile, data)


@router.get("/{booking_id}")
async def get_booking(
    booking_id: int,
    profile: Profile = Depends(require_customer_or_vendor),
    service: CustomerBookingService = Depends(get_customer_booking_service),
):
    return service.get_booking(profile, booking_id)
