"""Booking repository - Database operations for customer and business bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from ...models import Booking, BookingAssignment, BusinessBooking

ACTIVE_ASSIGNMENT_STATUSES = ("pending", "accepted")


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def booking_number_exists(db: Session, booking_number: str) -> bool:
        return (
            db.query(BusinessBooking.id).filter(BusinessBooking.booking_number == booking_number).first() is not None
            or db.query(Booking.id).filter(Booking.booking_number == booking_number).first() is not None
        )

    @staticmethod
    def get_business_booking(
        db: Session, account_id: int, booking_id: int, lock: bool = False
    ) -> Optional[BusinessBooking]:
        query = db.query(BusinessBooking).filter(
            BusinessBooking.id == booking_id,
            BusinessBooking.business_account_id == account_id,
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def business_bookings_query(
        db: Session,
        account_id: int,
        status: Optional[str] = None,
        search: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Query:
        query = db.query(BusinessBooking).filter(BusinessBooking.business_account_id == account_id)
        if status:
            query = query.filter(BusinessBooking.booking_status == status)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    BusinessBooking.booking_number.ilike(pattern),
                    BusinessBooking.customer_name.ilike(pattern),
                    BusinessBooking.reference_number.ilike(pattern),
                )
            )
        if date_from:
            query = query.filter(BusinessBooking.pickup_datetime >= date_from)
        if date_to:
            query = query.filter(BusinessBooking.pickup_datetime <= date_to)
        return query

    @staticmethod
    def status_counts(db: Session, account_id: int) -> dict[str, int]:
        rows = (
            db.query(BusinessBooking.booking_status, func.count(BusinessBooking.id))
            .filter(BusinessBooking.business_account_id == account_id)
            .group_by(BusinessBooking.booking_status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def active_assignments(db: Session, business_booking_id: int) -> list[BookingAssignment]:
        return (
            db.query(BookingAssignment)
            .filter(
                BookingAssignment.business_booking_id == business_booking_id,
                BookingAssignment.status.in_(ACTIVE_ASSIGNMENT_STATUSES),
            )
            .all()
        )

    @staticmethod
    def customer_bookings(db: Session, profile_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.customer_profile_id == profile_id)
            .order_by(Booking.pickup_datetime.desc())
            .all()
        )

    @staticmethod
    def get_customer_booking(db: Session, profile_id: int, booking_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.id == booking_id, Booking.customer_profile_id == profile_id)
            .first()
        )
