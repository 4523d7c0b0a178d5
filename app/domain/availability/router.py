"""Availability router - Vendor schedules and blocked periods"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_vendor
from ...database import get_db
from ...models import Profile
from ...shared.validators import to_naive_utc
from .schemas import UnavailabilityCreate
from .service import AvailabilityService

router = APIRouter(prefix="/api/vendor", tags=["Vendor Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


@router.get("/schedules")
async def get_schedules(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    vendor: Profile = Depends(require_vendor),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.get_vendor_schedules(vendor.id, to_naive_utc(date_from), to_naive_utc(date_to))


@router.get("/resources/available")
async def get_available_resources(
    vendor: Profile = Depends(require_vendor),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.get_available_resources(vendor.id)


@router.get("/unavailability")
async def get_unavailability(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    vendor: Profile = Depends(require_vendor),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.get_vendor_unavailability(vendor.id, to_naive_utc(date_from), to_naive_utc(date_to))


@router.post("/unavailability", status_code=201)
async def mark_unavailable(
    data: UnavailabilityCreate,
    vendor: Profile = Depends(require_vendor),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Block a vehicle or driver for maintenance, leave, etc."""
    return service.mark_unavailable(vendor, data)
