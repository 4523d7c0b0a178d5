"""Pricing service - Route quotes and addon pricing"""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import VehicleType
from ...services.currency import convert, load_rates
from ...shared.utils import to_money
from .repository import PricingRepository
from .schemas import AddonSelection

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Standard"
ADDON_CATEGORY_ORDER = ("Child Safety", "Luggage", "Comfort")


def vehicle_multiplier(vehicle_type: VehicleType, business: bool) -> Decimal:
    """Business portal falls back to the public multiplier, then 1.0"""
    if business:
        value = vehicle_type.business_price_multiplier or vehicle_type.price_multiplier or 1.0
    else:
        value = vehicle_type.price_multiplier or 1.0
    return Decimal(str(value))


class PricingService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = PricingRepository()

    def quote_route(
        self,
        from_location_id: int,
        to_location_id: int,
        passengers: int = 1,
        business: bool = False,
        currency: Optional[str] = None,
    ) -> dict:
        """
        Vehicle prices for a route, grouped by category.

        Categories are sorted by their cheapest vehicle; vehicles inside a
        category keep capacity order.
        """
        origin = self.repo.get_location(self.db, from_location_id)
        destination = self.repo.get_location(self.db, to_location_id)
        if not origin or not destination:
            raise HTTPException(status_code=400, detail="Invalid locations selected")
        if not origin.zone_id or not destination.zone_id:
            raise HTTPException(status_code=400, detail="Selected locations are not configured with service zones")

        from_zone = self.repo.get_zone(self.db, origin.zone_id)
        to_zone = self.repo.get_zone(self.db, destination.zone_id)
        if not from_zone or not to_zone:
            raise HTTPException(status_code=400, detail="Service zones not found")

        pricing = self.repo.get_zone_pricing(self.db, from_zone.id, to_zone.id)
        if not pricing:
            logger.info(f"🔍 No zone pricing for {from_zone.name} -> {to_zone.name}")
            raise HTTPException(
                status_code=404,
                detail=f"No service available for route from {from_zone.name} to {to_zone.name}",
            )

        target_currency = (currency or pricing.currency).upper()
        rates = load_rates(self.db) if target_currency != pricing.currency else None

        def price_in_target(amount: Decimal) -> Decimal:
            if rates is None:
                return to_money(amount)
            return to_money(convert(amount, pricing.currency, target_currency, rates)["amount"])

        base_price = to_money(pricing.base_price)
        categories: dict[str, dict] = {}
        for vehicle_type in self.repo.vehicle_types_for(self.db, passengers):
            price = price_in_target(base_price * vehicle_multiplier(vehicle_type, business))
            category = vehicle_type.category
            name = category.name if category else DEFAULT_CATEGORY
            group = categories.setdefault(
                name,
                {
                    "name": name,
                    "slug": category.slug if category else DEFAULT_CATEGORY.lower(),
                    "vehicle_types": [],
                    "min_price": price,
                },
            )
            group["min_price"] = min(group["min_price"], price)
            group["vehicle_types"].append(
                {
                    "id": vehicle_type.id,
                    "name": vehicle_type.name,
                    "slug": vehicle_type.slug,
                    "passenger_capacity": vehicle_type.passenger_capacity,
                    "luggage_capacity": vehicle_type.luggage_capacity,
                    "description": vehicle_type.description,
                    "image_url": vehicle_type.image_url,
                    "price": float(price),
                }
            )

        ordered = sorted(categories.values(), key=lambda c: c["min_price"])
        for group in ordered:
            group["min_price"] = float(group["min_price"])

        return {
            "from_location": {"id": origin.id, "name": origin.name, "zone": from_zone.name},
            "to_location": {"id": destination.id, "name": destination.name, "zone": to_zone.name},
            "passengers": passengers,
            "base_price": float(price_in_target(base_price)),
            "currency": target_currency,
            "pricing_currency": pricing.currency,
            "categories": ordered,
        }

    def price_vehicle(
        self,
        from_location_id: int,
        to_location_id: int,
        vehicle_type_id: int,
        passengers: int,
        business: bool,
        currency: Optional[str] = None,
    ) -> dict:
        """Single vehicle price from the route quote. 422 when the vehicle is not offered"""
        quote = self.quote_route(from_location_id, to_location_id, passengers, business, currency)
        for category in quote["categories"]:
            for vehicle_type in category["vehicle_types"]:
                if vehicle_type["id"] == vehicle_type_id:
                    return {
                        "base_price": to_money(vehicle_type["price"]),
                        "currency": quote["currency"],
                        "pricing_currency": quote["pricing_currency"],
                        "vehicle_type": vehicle_type,
                        "from_location": quote["from_location"],
                        "to_location": quote["to_location"],
                    }
        raise HTTPException(
            status_code=422, detail="Selected vehicle is not available for this route and passenger count"
        )

    def active_addons(self) -> list[dict]:
        """Active addons grouped by category in display order"""
        groups: dict[str, list] = {}
        for addon in self.repo.active_addons(self.db):
            groups.setdefault(addon.category, []).append(
                {
                    "id": addon.id,
                    "name": addon.name,
                    "description": addon.description,
                    "icon": addon.icon,
                    "price": float(addon.price),
                    "pricing_type": addon.pricing_type,
                    "max_quantity": addon.max_quantity,
                }
            )

        first = [c for c in ADDON_CATEGORY_ORDER if c in groups]
        rest = [c for c in groups if c not in ADDON_CATEGORY_ORDER]
        return [{"category": c, "addons": groups[c]} for c in first + rest]

    def price_addons(
        self,
        selections: list[AddonSelection],
        source_currency: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> tuple[Decimal, list[dict]]:
        """
        Returns (total, line items) for the selected addons.
        Addon prices share the route pricing currency and are converted when
        `currency` differs from `source_currency`.
        """
        if not selections:
            return Decimal("0.00"), []

        rates = load_rates(self.db) if source_currency and currency and source_currency != currency else None

        def in_target(amount: Decimal) -> Decimal:
            if rates is None:
                return to_money(amount)
            return to_money(convert(amount, source_currency, currency, rates)["amount"])

        addons = {a.id: a for a in self.repo.get_addons(self.db, [s.addon_id for s in selections])}
        total = Decimal("0.00")
        items = []
        for selection in selections:
            addon = addons.get(selection.addon_id)
            if not addon:
                raise HTTPException(status_code=422, detail=f"Addon {selection.addon_id} is not available")
            if selection.quantity > addon.max_quantity:
                raise HTTPException(
                    status_code=422,
                    detail=f"{addon.name}: quantity must be between 1 and {addon.max_quantity}",
                )

            unit_price = in_target(to_money(addon.price))
            line_total = unit_price * selection.quantity if addon.pricing_type == "per_unit" else unit_price
            total += line_total
            items.append(
                {
                    "addon_id": addon.id,
                    "name": addon.name,
                    "quantity": selection.quantity,
                    "unit_price": float(unit_price),
                    "pricing_type": addon.pricing_type,
                    "total": float(line_total),
                }
            )
        return to_money(total), items
