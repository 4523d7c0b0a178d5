"""Availability service - Vehicle and driver scheduling for vendors"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Profile, ResourceSchedule, ResourceUnavailability
from .repository import AvailabilityRepository
from .schemas import UnavailabilityCreate

logger = logging.getLogger(__name__)

RESOURCE_TYPES = ("vehicle", "driver")
# Schedules block this long from pickup
TRIP_DURATION = timedelta(hours=2)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_schedule(s: ResourceSchedule) -> dict:
    return {
        "id": s.id,
        "resource_type": s.resource_type,
        "resource_id": s.resource_id,
        "assignment_id": s.assignment_id,
        "start_datetime": _iso(s.start_datetime),
        "end_datetime": _iso(s.end_datetime),
        "status": s.status,
    }


def serialize_unavailability(u: ResourceUnavailability) -> dict:
    return {
        "id": u.id,
        "resource_type": u.resource_type,
        "resource_id": u.resource_id,
        "start_datetime": _iso(u.start_datetime),
        "end_datetime": _iso(u.end_datetime),
        "reason": u.reason,
    }


class AvailabilityService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()

    def get_conflicts(
        self,
        resource_type: str,
        resource_id: int,
        start: datetime,
        end: datetime,
        exclude_assignment_id: Optional[int] = None,
    ) -> list[dict]:
        """Booked schedules and blocked periods overlapping [start, end)"""
        if resource_type not in RESOURCE_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid resource type: {resource_type}")

        conflicts = [
            {"type": "schedule", **serialize_schedule(s)}
            for s in self.repo.overlapping_schedules(
                self.db, resource_type, resource_id, start, end, exclude_assignment_id
            )
        ]
        conflicts += [
            {"type": "unavailable", **serialize_unavailability(u)}
            for u in self.repo.overlapping_unavailability(self.db, resource_type, resource_id, start, end)
        ]
        return conflicts

    def check_availability(
        self,
        resource_id: int,
        resource_type: str,
        start: datetime,
        end: datetime,
        exclude_assignment_id: Optional[int] = None,
    ) -> dict:
        conflicts = self.get_conflicts(resource_type, resource_id, start, end, exclude_assignment_id)
        return {"available": not conflicts, "conflicts": conflicts}

    def get_vendor_schedules(
        self, vendor_id: int, date_from: Optional[datetime] = None, date_to: Optional[datetime] = None
    ) -> list[dict]:
        return [serialize_schedule(s) for s in self.repo.vendor_schedules(self.db, vendor_id, date_from, date_to)]

    def get_vendor_unavailability(
        self, vendor_id: int, date_from: Optional[datetime] = None, date_to: Optional[datetime] = None
    ) -> list[dict]:
        return [
            serialize_unavailability(u)
            for u in self.repo.vendor_unavailability(self.db, vendor_id, date_from, date_to)
        ]

    def _check_ownership(self, vendor_id: int, resource_type: str, resource_id: int):
        if resource_type == "vehicle":
            resource = self.repo.get_vehicle(self.db, vendor_id, resource_id)
        else:
            resource = self.repo.get_driver(self.db, vendor_id, resource_id)
        if not resource:
            raise HTTPException(status_code=404, detail=f"{resource_type.capitalize()} not found")
        return resource

    def mark_unavailable(self, vendor: Profile, data: UnavailabilityCreate) -> dict:
        self._check_ownership(vendor.id, data.resource_type, data.resource_id)
        entry = ResourceUnavailability(
            resource_type=data.resource_type,
            resource_id=data.resource_id,
            vendor_id=vendor.id,
            start_datetime=data.start_datetime,
            end_datetime=data.end_datetime,
            reason=data.reason,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.info(f"🚧 Vendor {vendor.id} blocked {data.resource_type} {data.resource_id}")
        return serialize_unavailability(entry)

    # ------------------------------------------------------------------------
    # Schedules follow the assignment lifecycle; callers commit
    # ------------------------------------------------------------------------

    def create_schedule(
        self,
        assignment_id: int,
        vendor_id: int,
        vehicle_id: Optional[int],
        driver_id: Optional[int],
        start: datetime,
        end: datetime,
    ) -> list[ResourceSchedule]:
        rows = []
        for resource_type, resource_id in (("vehicle", vehicle_id), ("driver", driver_id)):
            if resource_id is None:
                continue
            row = ResourceSchedule(
                resource_type=resource_type,
                resource_id=resource_id,
                vendor_id=vendor_id,
                assignment_id=assignment_id,
                start_datetime=start,
                end_datetime=end,
                status="booked",
            )
            self.db.add(row)
            rows.append(row)
        self.db.flush()
        return rows

    def move_schedule(self, assignment_id: int, start: datetime, end: datetime) -> int:
        rows = self.repo.assignment_schedules(self.db, assignment_id)
        for row in rows:
            row.start_datetime = start
            row.end_datetime = end
        return len(rows)

    def remove_schedule(self, assignment_id: int) -> int:
        rows = self.repo.assignment_schedules(self.db, assignment_id)
        for row in rows:
            self.db.delete(row)
        return len(rows)

    def get_available_resources(self, vendor_id: int) -> dict:
        vehicles = self.repo.available_vehicles(self.db, vendor_id)
        drivers = self.repo.available_drivers(self.db, vendor_id)
        return {
            "vehicles": [
                {
                    "id": v.id,
                    "registration_number": v.registration_number,
                    "make": v.make,
                    "model": v.model,
                    "seats": v.seats,
                    "vehicle_type_id": v.vehicle_type_id,
                    "category_id": v.category_id,
                }
                for v in vehicles
            ],
            "drivers": [
                {"id": d.id, "full_name": d.full_name, "phone": d.phone, "license_number": d.license_number}
                for d in drivers
            ],
        }
