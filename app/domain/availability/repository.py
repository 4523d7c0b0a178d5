"""Availability repository - Resource schedules and blocked periods"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Query, Session

from ...models import ResourceSchedule, ResourceUnavailability, Vehicle, VendorDriver


def _overlapping(query: Query, model, start: datetime, end: datetime) -> Query:
    # Half-open intervals: touching endpoints do not overlap
    return query.filter(model.start_datetime < end, model.end_datetime > start)


def _in_range(query: Query, model, date_from: Optional[datetime], date_to: Optional[datetime]) -> Query:
    if date_from:
        query = query.filter(model.end_datetime > date_from)
    if date_to:
        query = query.filter(model.start_datetime < date_to)
    return query


class AvailabilityRepository:
    @staticmethod
    def overlapping_schedules(
        db: Session,
        resource_type: str,
        resource_id: int,
        start: datetime,
        end: datetime,
        exclude_assignment_id: Optional[int] = None,
    ) -> list[ResourceSchedule]:
        query = db.query(ResourceSchedule).filter(
            ResourceSchedule.resource_type == resource_type,
            ResourceSchedule.resource_id == resource_id,
            ResourceSchedule.status == "booked",
        )
        if exclude_assignment_id is not None:
            query = query.filter(ResourceSchedule.assignment_id != exclude_assignment_id)
        return _overlapping(query, ResourceSchedule, start, end).all()

    @staticmethod
    def overlapping_unavailability(
        db: Session, resource_type: str, resource_id: int, start: datetime, end: datetime
    ) -> list[ResourceUnavailability]:
        query = db.query(ResourceUnavailability).filter(
            ResourceUnavailability.resource_type == resource_type,
            ResourceUnavailability.resource_id == resource_id,
        )
        return _overlapping(query, ResourceUnavailability, start, end).all()

    @staticmethod
    def vendor_schedules(
        db: Session, vendor_id: int, date_from: Optional[datetime], date_to: Optional[datetime]
    ) -> list[ResourceSchedule]:
        query = db.query(ResourceSchedule).filter(ResourceSchedule.vendor_id == vendor_id)
        return _in_range(query, ResourceSchedule, date_from, date_to).order_by(ResourceSchedule.start_datetime).all()

    @staticmethod
    def vendor_unavailability(
        db: Session, vendor_id: int, date_from: Optional[datetime], date_to: Optional[datetime]
    ) -> list[ResourceUnavailability]:
        query = db.query(ResourceUnavailability).filter(ResourceUnavailability.vendor_id == vendor_id)
        return (
            _in_range(query, ResourceUnavailability, date_from, date_to)
            .order_by(ResourceUnavailability.start_datetime)
            .all()
        )

    @staticmethod
    def assignment_schedules(db: Session, assignment_id: int) -> list[ResourceSchedule]:
        return db.query(ResourceSchedule).filter(ResourceSchedule.assignment_id == assignment_id).all()

    @staticmethod
    def get_vehicle(db: Session, vendor_id: int, vehicle_id: int) -> Optional[Vehicle]:
        return db.query(Vehicle).filter(Vehicle.id == vehicle_id, Vehicle.vendor_id == vendor_id).first()

    @staticmethod
    def get_driver(db: Session, vendor_id: int, driver_id: int) -> Optional[VendorDriver]:
        return (
            db.query(VendorDriver)
            .filter(VendorDriver.id == driver_id, VendorDriver.vendor_id == vendor_id)
            .first()
        )

    @staticmethod
    def available_vehicles(db: Session, vendor_id: int, category_id: Optional[int] = None) -> list[Vehicle]:
        query = db.query(Vehicle).filter(Vehicle.vendor_id == vendor_id, Vehicle.is_available.is_(True))
        if category_id is not None:
            query = query.filter(Vehicle.category_id == category_id)
        return query.order_by(Vehicle.registration_number).all()

    @staticmethod
    def available_drivers(db: Session, vendor_id: int) -> list[VendorDriver]:
        return (
            db.query(VendorDriver)
            .filter(
                VendorDriver.vendor_id == vendor_id,
                VendorDriver.is_available.is_(True),
                VendorDriver.is_active.is_(True),
            )
            .order_by(VendorDriver.full_name)
            .all()
        )
