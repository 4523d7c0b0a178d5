"""Assignment repository - Vendor assignments across customer and business bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from ...models import Booking, BookingAssignment, BusinessBooking, Profile


def _filters(query: Query, model, status, date_from, date_to) -> Query:
    if status:
        query = query.filter(model.booking_status == status)
    if date_from:
        query = query.filter(model.pickup_datetime >= date_from)
    if date_to:
        query = query.filter(model.pickup_datetime <= date_to)
    return query


class AssignmentRepository:
    @staticmethod
    def customer_bookings_query(
        db: Session,
        status: Optional[str],
        date_from: Optional[datetime],
        date_to: Optional[datetime],
        search: Optional[str],
    ) -> Query:
        query = _filters(db.query(Booking), Booking, status, date_from, date_to)
        if search:
            query = query.filter(Booking.booking_number.ilike(f"%{search.strip()}%"))
        return query

    @staticmethod
    def business_bookings_query(
        db: Session,
        status: Optional[str],
        date_from: Optional[datetime],
        date_to: Optional[datetime],
        search: Optional[str],
    ) -> Query:
        query = _filters(db.query(BusinessBooking), BusinessBooking, status, date_from, date_to)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(BusinessBooking.booking_number.ilike(pattern), BusinessBooking.customer_name.ilike(pattern))
            )
        return query

    @staticmethod
    def assignments_for(db: Session, booking_type: str, booking_ids: list[int]) -> list[BookingAssignment]:
        if not booking_ids:
            return []
        column = BookingAssignment.booking_id if booking_type == "customer" else BookingAssignment.business_booking_id
        return (
            db.query(BookingAssignment)
            .filter(column.in_(booking_ids))
            .order_by(BookingAssignment.assigned_at.desc(), BookingAssignment.id.desc())
            .all()
        )

    @staticmethod
    def open_assignment(db: Session, booking_type: str, booking_id: int) -> Optional[BookingAssignment]:
        column = BookingAssignment.booking_id if booking_type == "customer" else BookingAssignment.business_booking_id
        return (
            db.query(BookingAssignment)
            .filter(column == booking_id, BookingAssignment.status.in_(("pending", "accepted")))
            .first()
        )

    @staticmethod
    def get_assignment(db: Session, assignment_id: int, lock: bool = False) -> Optional[BookingAssignment]:
        query = db.query(BookingAssignment).filter(BookingAssignment.id == assignment_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def vendor_assignments(db: Session, vendor_id: int, status: Optional[str]) -> list[BookingAssignment]:
        query = db.query(BookingAssignment).filter(BookingAssignment.vendor_id == vendor_id)
        if status:
            query = query.filter(BookingAssignment.status == status)
        return query.order_by(BookingAssignment.assigned_at.desc(), BookingAssignment.id.desc()).all()

    @staticmethod
    def get_profile(db: Session, profile_id: int) -> Optional[Profile]:
        return db.query(Profile).filter(Profile.id == profile_id).first()
