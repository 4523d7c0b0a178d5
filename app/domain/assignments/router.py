"""Assignment routers - Admin unified bookings and vendor assignment workflow"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin, require_vendor
from ...database import get_db
from ...models import Profile
from ...shared.validators import to_naive_utc
from .schemas import AcceptAssignmentRequest, AssignVendorRequest, BookingType, RejectAssignmentRequest
from .service import AssignmentService

admin_router = APIRouter(prefix="/api/admin/bookings", tags=["Admin Bookings"])
vendor_router = APIRouter(prefix="/api/vendor/assignments", tags=["Vendor Assignments"])


def get_assignment_service(db: Session = Depends(get_db)) -> AssignmentService:
    return AssignmentService(db)


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("")
async def list_all_bookings(
    status: Optional[str] = Query(None),
    booking_type: str = Query("all"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: Profile = Depends(require_admin),
    service: AssignmentService = Depends(get_assignment_service),
):
    """Customer and business bookings in one list with their latest assignment"""
    return service.unified_list(
        status, booking_type, to_naive_utc(date_from), to_naive_utc(date_to), search, limit, offset
    )


@admin_router.get("/{booking_type}/{booking_id}")
async def get_booking_details(
    booking_type: BookingType,
    booking_id: int,
    admin: Profile = Depends(require_admin),
    service: AssignmentService = Depends(get_assignment_service),
):
    return service.unified_details(booking_type, booking_id)


@admin_router.post("/{booking_type}/{booking_id}/assign", status_code=201)
async def assign_booking(
    booking_type: BookingType,
    booking_id: int,
    data: AssignVendorRequest,
    admin: Profile = Depends(require_admin),
    service: AssignmentService = Depends(get_assignment_service),
):
    return service.assign_to_vendor(admin, booking_type, booking_id, data.vendor_id, data.notes)


# ============================================================================
# VENDOR
# ============================================================================


@vendor_router.get("")
async def list_assignments(
    status: Optional[str] = Query(None),
    vendor: Profile = Depends(require_vendor),
    service: AssignmentService = Depends(get_assignment_service),
):
    return service.list_assignments(vendor, status)


@vendor_router.get("/{assignment_id}/resources")
async def assignment_resources(
    assignment_id: int,
    vendor: Profile = Depends(require_vendor),
    service: AssignmentService = Depends(get_assignment_service),
):
    """Drivers and vehicles with availability for the trip window"""
    return service.resource_availability(vendor, assignment_id)


@vendor_router.post("/{assignment_id}/accept")
async def accept_assignment(
    assignment_id: int,
    data: AcceptAssignmentRequest,
    vendor: Profile = Depends(require_vendor),
    service: AssignmentService = Depends(get_assignment_service),
):
    return service.accept_and_assign(vendor, assignment_id, data.driver_id, data.vehicle_id)


@vendor_router.post("/{assignment_id}/reject")
async def reject_assignment(
    assignment_id: int,
    data: RejectAssignmentRequest = RejectAssignmentRequest(),
    vendor: Profile = Depends(require_vendor),
    service: AssignmentService = Depends(get_assignment_service),
):
    return service.reject(vendor, assignment_id, data.reason)


@vendor_router.post("/{assignment_id}/complete")
async def complete_assignment(
    assignment_id: int,
    vendor: Profile = Depends(require_vendor),
    service: AssignmentService = Depends(get_assignment_service),
):
    return service.complete(vendor, assignment_id)
