"""Pricing repository - Zones, locations, vehicle types and addons"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Addon, Location, VehicleType, Zone, ZonePricing


class PricingRepository:
    @staticmethod
    def get_location(db: Session, location_id: int) -> Optional[Location]:
        return db.query(Location).filter(Location.id == location_id, Location.is_active.is_(True)).first()

    @staticmethod
    def get_zone(db: Session, zone_id: int) -> Optional[Zone]:
        return db.query(Zone).filter(Zone.id == zone_id, Zone.is_active.is_(True)).first()

    @staticmethod
    def get_zone_pricing(db: Session, from_zone_id: int, to_zone_id: int) -> Optional[ZonePricing]:
        return (
            db.query(ZonePricing)
            .filter(
                ZonePricing.from_zone_id == from_zone_id,
                ZonePricing.to_zone_id == to_zone_id,
                ZonePricing.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def vehicle_types_for(db: Session, passengers: int) -> list[VehicleType]:
        return (
            db.query(VehicleType)
            .options(joinedload(VehicleType.category))
            .filter(VehicleType.is_active.is_(True), VehicleType.passenger_capacity >= passengers)
            .order_by(VehicleType.passenger_capacity, VehicleType.id)
            .all()
        )

    @staticmethod
    def active_addons(db: Session) -> list[Addon]:
        return (
            db.query(Addon)
            .filter(Addon.is_active.is_(True))
            .order_by(Addon.display_order, Addon.name)
            .all()
        )

    @staticmethod
    def get_addons(db: Session, addon_ids: list[int]) -> list[Addon]:
        if not addon_ids:
            return []
        return db.query(Addon).filter(Addon.id.in_(addon_ids), Addon.is_active.is_(True)).all()
