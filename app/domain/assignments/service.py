"""Assignment service - Admin dispatch and vendor acceptance workflow"""

import logging
from typing import Optional, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import (
    Booking,
    BookingAssignment,
    BookingDatetimeModification,
    BusinessAccount,
    BusinessBooking,
    Profile,
    VehicleType,
)
from ...services.notification_service import Notifier
from ...shared.utils import utcnow
from ..availability.repository import AvailabilityRepository
from ..availability.service import TRIP_DURATION, AvailabilityService
from ..bookings.service import serialize_business_booking, serialize_customer_booking
from .repository import AssignmentRepository

logger = logging.getLogger(__name__)

BOOKING_TYPES = ("customer", "business")
CLOSED_BOOKING_STATUSES = ("cancelled", "completed", "refunded")

AnyBooking = Union[Booking, BusinessBooking]


def _iso(value):
    return value.isoformat() if value else None


def serialize_assignment(a: Optional[BookingAssignment]) -> Optional[dict]:
    if a is None:
        return None
    return {
        "id": a.id,
        "booking_id": a.booking_id,
        "business_booking_id": a.business_booking_id,
        "vendor_id": a.vendor_id,
        "driver_id": a.driver_id,
        "vehicle_id": a.vehicle_id,
        "status": a.status,
        "notes": a.notes,
        "assigned_by": a.assigned_by,
        "assigned_at": _iso(a.assigned_at),
        "accepted_at": _iso(a.accepted_at),
        "rejected_at": _iso(a.rejected_at),
        "rejection_reason": a.rejection_reason,
        "completed_at": _iso(a.completed_at),
        "cancelled_at": _iso(a.cancelled_at),
    }


def serialize_booking(booking_type: str, booking: AnyBooking) -> dict:
    data = serialize_customer_booking(booking) if booking_type == "customer" else serialize_business_booking(booking)
    data["booking_type"] = booking_type
    return data


class AssignmentService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = AssignmentRepository()
        self.availability = AvailabilityService(db)
        self.notifier = Notifier(db)

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    @staticmethod
    def _check_type(booking_type: str):
        if booking_type not in BOOKING_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid booking type: {booking_type}")

    def _get_booking(self, booking_type: str, booking_id: int, lock: bool = False) -> AnyBooking:
        self._check_type(booking_type)
        model = Booking if booking_type == "customer" else BusinessBooking
        query = self.db.query(model).filter(model.id == booking_id)
        if lock:
            query = query.with_for_update()
        booking = query.first()
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def booking_from_assignment(self, assignment: BookingAssignment) -> tuple[str, AnyBooking]:
        if assignment.business_booking_id:
            return "business", assignment.business_booking
        return "customer", assignment.booking

    # ========================================================================
    # ADMIN
    # ========================================================================

    def unified_list(
        self,
        status: Optional[str] = None,
        booking_type: str = "all",
        date_from=None,
        date_to=None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict:
        """Customer and business bookings merged by pickup time, newest first"""
        if booking_type not in ("all",) + BOOKING_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid booking type: {booking_type}")

        window = offset + limit
        merged: list[tuple[str, AnyBooking]] = []
        total = 0
        sources = (
            ("customer", self.repo.customer_bookings_query, Booking),
            ("business", self.repo.business_bookings_query, BusinessBooking),
        )
        for kind, build_query, model in sources:
            if booking_type not in ("all", kind):
                continue
            query = build_query(self.db, status, date_from, date_to, search)
            total += query.count()
            rows = query.order_by(model.pickup_datetime.desc(), model.id.desc()).limit(window).all()
            merged.extend((kind, row) for row in rows)

        merged.sort(key=lambda item: item[1].pickup_datetime, reverse=True)
        page = merged[offset:window]

        latest: dict[tuple[str, int], BookingAssignment] = {}
        for kind in BOOKING_TYPES:
            ids = [b.id for k, b in page if k == kind]
            for assignment in self.repo.assignments_for(self.db, kind, ids):
                key = (kind, assignment.booking_id if kind == "customer" else assignment.business_booking_id)
                latest.setdefault(key, assignment)

        bookings = []
        for kind, booking in page:
            item = serialize_booking(kind, booking)
            item["assignment"] = serialize_assignment(latest.get((kind, booking.id)))
            bookings.append(item)

        return {"bookings": bookings, "total": total, "limit": limit, "offset": offset}

    def unified_details(self, booking_type: str, booking_id: int) -> dict:
        booking = self._get_booking(booking_type, booking_id)
        result = serialize_booking(booking_type, booking)
        result["assignments"] = [
            serialize_assignment(a) for a in self.repo.assignments_for(self.db, booking_type, [booking.id])
        ]
        if booking_type == "business":
            account = self.db.query(BusinessAccount).filter(BusinessAccount.id == booking.business_account_id).first()
            result["business"] = (
                {"id": account.id, "business_name": account.business_name, "business_email": account.business_email}
                if account
                else None
            )
            modifications = (
                self.db.query(BookingDatetimeModification)
                .filter(BookingDatetimeModification.business_booking_id == booking.id)
                .order_by(BookingDatetimeModification.created_at.desc())
                .all()
            )
            result["datetime_modifications"] = [
                {
                    "old_pickup_datetime": _iso(m.old_pickup_datetime),
                    "new_pickup_datetime": _iso(m.new_pickup_datetime),
                    "reason": m.reason,
                    "created_at": _iso(m.created_at),
                }
                for m in modifications
            ]
        return result

    def assign_to_vendor(
        self, admin: Profile, booking_type: str, booking_id: int, vendor_id: int, notes: Optional[str] = None
    ) -> dict:
        booking = self._get_booking(booking_type, booking_id, lock=True)
        vendor = self.repo.get_profile(self.db, vendor_id)
        if not vendor or vendor.role != "vendor":
            raise HTTPException(status_code=400, detail="Selected user is not a vendor")
        if booking.booking_status in CLOSED_BOOKING_STATUSES:
            raise HTTPException(
                status_code=409, detail=f"Cannot assign a booking with status '{booking.booking_status}'"
            )
        if self.repo.open_assignment(self.db, booking_type, booking.id):
            raise HTTPException(status_code=409, detail="Booking already has an active assignment")

        assignment = BookingAssignment(
            booking_id=booking.id if booking_type == "customer" else None,
            business_booking_id=booking.id if booking_type == "business" else None,
            vendor_id=vendor.id,
            status="pending",
            assigned_by=admin.id,
            notes=notes,
            assigned_at=utcnow(),
        )
        self.db.add(assignment)
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(f"📋 Admin {admin.id} assigned {booking_type} booking {booking.id} to vendor {vendor.id}")
        return serialize_assignment(assignment)

    # ========================================================================
    # VENDOR
    # ========================================================================

    def _vendor_assignment(self, vendor: Profile, assignment_id: int, lock: bool = False) -> BookingAssignment:
        assignment = self.repo.get_assignment(self.db, assignment_id, lock)
        if not assignment or assignment.vendor_id != vendor.id:
            raise HTTPException(status_code=404, detail="Assignment not found")
        return assignment

    def list_assignments(self, vendor: Profile, status: Optional[str] = None) -> list[dict]:
        result = []
        for assignment in self.repo.vendor_assignments(self.db, vendor.id, status):
            booking_type, booking = self.booking_from_assignment(assignment)
            item = serialize_assignment(assignment)
            item["booking"] = serialize_booking(booking_type, booking) if booking else None
            result.append(item)
        return result

    def resource_availability(self, vendor: Profile, assignment_id: int) -> dict:
        """Drivers and vehicles with their conflicts over the trip window"""
        assignment = self._vendor_assignment(vendor, assignment_id)
        _, booking = self.booking_from_assignment(assignment)
        start = booking.pickup_datetime
        end = start + TRIP_DURATION

        category_id = None
        if booking.vehicle_type_id:
            vehicle_type = self.db.query(VehicleType).filter(VehicleType.id == booking.vehicle_type_id).first()
            category_id = vehicle_type.category_id if vehicle_type else None

        repo = AvailabilityRepository()
        vehicles = []
        for v in repo.available_vehicles(self.db, vendor.id, category_id):
            check = self.availability.check_availability(v.id, "vehicle", start, end, assignment.id)
            vehicles.append(
                {
                    "id": v.id,
                    "registration_number": v.registration_number,
                    "make": v.make,
                    "model": v.model,
                    "seats": v.seats,
                    **check,
                }
            )
        drivers = []
        for d in repo.available_drivers(self.db, vendor.id):
            check = self.availability.check_availability(d.id, "driver", start, end, assignment.id)
            drivers.append({"id": d.id, "full_name": d.full_name, "phone": d.phone, **check})

        return {
            "assignment_id": assignment.id,
            "window": {"start": start.isoformat(), "end": end.isoformat()},
            "vehicles": vehicles,
            "drivers": drivers,
        }

    def accept_and_assign(self, vendor: Profile, assignment_id: int, driver_id: int, vehicle_id: int) -> dict:
        assignment = self._vendor_assignment(vendor, assignment_id, lock=True)
        if assignment.status != "pending":
            raise HTTPException(status_code=409, detail=f"Assignment is already {assignment.status}")

        repo = AvailabilityRepository()
        driver = repo.get_driver(self.db, vendor.id, driver_id)
        if not driver:
            raise HTTPException(status_code=404, detail="Driver not found")
        if not driver.is_active or not driver.is_available:
            raise HTTPException(status_code=409, detail="Driver is not available")
        vehicle = repo.get_vehicle(self.db, vendor.id, vehicle_id)
        if not vehicle:
            raise HTTPException(status_code=404, detail="Vehicle not found")
        if not vehicle.is_available:
            raise HTTPException(status_code=409, detail="Vehicle is not available")

        booking_type, booking = self.booking_from_assignment(assignment)
        start = booking.pickup_datetime
        end = start + TRIP_DURATION

        conflicts = self.availability.get_conflicts("driver", driver_id, start, end, assignment.id)
        conflicts += self.availability.get_conflicts("vehicle", vehicle_id, start, end, assignment.id)
        if conflicts:
            raise HTTPException(
                status_code=409,
                detail={"message": "Driver or vehicle is not available for this trip", "conflicts": conflicts},
            )

        assignment.status = "accepted"
        assignment.accepted_at = utcnow()
        assignment.driver_id = driver_id
        assignment.vehicle_id = vehicle_id
        self.availability.create_schedule(assignment.id, vendor.id, vehicle_id, driver_id, start, end)
        booking.booking_status = "assigned"

        if booking_type == "business":
            self._notify_business(
                booking, "booking_assigned", "Driver assigned", f"A driver has been assigned to booking {booking.booking_number}."
            )
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(f"✅ Vendor {vendor.id} accepted assignment {assignment.id}")
        return serialize_assignment(assignment)

    def reject(self, vendor: Profile, assignment_id: int, reason: Optional[str] = None) -> dict:
        assignment = self._vendor_assignment(vendor, assignment_id, lock=True)
        if assignment.status != "pending":
            raise HTTPException(status_code=409, detail=f"Assignment is already {assignment.status}")

        reason = reason or "Rejected by vendor"
        assignment.status = "rejected"
        assignment.rejected_at = utcnow()
        assignment.rejection_reason = reason
        note = f"Rejected: {reason}"
        assignment.notes = f"{assignment.notes}\n{note}" if assignment.notes else note
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(f"↩️ Vendor {vendor.id} rejected assignment {assignment.id}: {reason}")
        return serialize_assignment(assignment)

    def complete(self, vendor: Profile, assignment_id: int) -> dict:
        assignment = self._vendor_assignment(vendor, assignment_id, lock=True)
        if assignment.status != "accepted":
            raise HTTPException(status_code=409, detail="Only accepted assignments can be completed")

        booking_type, booking = self.booking_from_assignment(assignment)
        assignment.status = "completed"
        assignment.completed_at = utcnow()
        booking.booking_status = "completed"
        self.availability.remove_schedule(assignment.id)

        if booking_type == "business":
            self._notify_business(
                booking, "booking_completed", "Trip completed", f"Booking {booking.booking_number} has been completed."
            )
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(f"🏁 Vendor {vendor.id} completed assignment {assignment.id}")
        return serialize_assignment(assignment)

    def _notify_business(self, booking: BusinessBooking, type: str, title: str, message: str):
        account = self.db.query(BusinessAccount).filter(BusinessAccount.id == booking.business_account_id).first()
        if account:
            self.notifier.in_app(
                account,
                "booking",
                type,
                title,
                message,
                data={"booking_id": booking.id, "booking_number": booking.booking_number},
                link=f"/business/bookings/{booking.id}",
            )
