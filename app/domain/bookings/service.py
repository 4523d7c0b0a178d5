"""Booking service - Business logic for customer and business bookings"""

import logging
import secrets
import string
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_booking_datetime_modified_email
from ...models import (
    Booking,
    BookingDatetimeModification,
    BusinessBooking,
    BusinessUser,
    Profile,
)
from ...services.notification_service import Notifier
from ...shared.utils import pagination_meta, pagination_params, to_money, utcnow
from ..availability.service import TRIP_DURATION, AvailabilityService
from ..pricing.service import PricingService
from ..wallet.exceptions import WalletError
from ..wallet.service import WalletService
from .repository import BookingRepository
from .schemas import (
    BookingCreateBase,
    BusinessBookingCreate,
    CustomerBookingCreate,
    ModifyDatetimeRequest,
)

logger = logging.getLogger(__name__)

BOOKING_STATUSES = ("pending", "confirmed", "assigned", "in_progress", "completed", "cancelled", "refunded")
CANCELLABLE_STATUSES = ("pending", "confirmed", "assigned")
MODIFIABLE_STATUSES = ("pending", "confirmed", "assigned")
MIN_HOURS_BEFORE_PICKUP = 3

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def _iso(value):
    return value.isoformat() if value else None


def serialize_business_booking(b: BusinessBooking) -> dict:
    return {
        "id": b.id,
        "booking_number": b.booking_number,
        "business_account_id": b.business_account_id,
        "created_by_user_id": b.created_by_user_id,
        "customer_name": b.customer_name,
        "customer_email": b.customer_email,
        "customer_phone": b.customer_phone,
        "from_location_id": b.from_location_id,
        "to_location_id": b.to_location_id,
        "pickup_address": b.pickup_address,
        "dropoff_address": b.dropoff_address,
        "pickup_datetime": _iso(b.pickup_datetime),
        "passenger_count": b.passenger_count,
        "luggage_count": b.luggage_count,
        "vehicle_type_id": b.vehicle_type_id,
        "base_price": float(b.base_price),
        "amenities_price": float(b.amenities_price or 0),
        "total_price": float(b.total_price),
        "currency": b.currency,
        "addons": b.addons or [],
        "booking_status": b.booking_status,
        "customer_notes": b.customer_notes,
        "reference_number": b.reference_number,
        "wallet_transaction_id": b.wallet_transaction_id,
        "refund_transaction_id": b.refund_transaction_id,
        "cancelled_at": _iso(b.cancelled_at),
        "cancellation_reason": b.cancellation_reason,
        "created_at": _iso(b.created_at),
        "updated_at": _iso(b.updated_at),
    }


def serialize_customer_booking(b: Booking) -> dict:
    return {
        "id": b.id,
        "booking_number": b.booking_number,
        "customer_name": b.customer_name,
        "customer_email": b.customer_email,
        "customer_phone": b.customer_phone,
        "from_location_id": b.from_location_id,
        "to_location_id": b.to_location_id,
        "pickup_address": b.pickup_address,
        "dropoff_address": b.dropoff_address,
        "pickup_datetime": _iso(b.pickup_datetime),
        "passenger_count": b.passenger_count,
        "luggage_count": b.luggage_count,
        "vehicle_type_id": b.vehicle_type_id,
        "base_price": float(b.base_price),
        "amenities_price": float(b.amenities_price or 0),
        "total_price": float(b.total_price),
        "currency": b.currency,
        "addons": b.addons or [],
        "booking_status": b.booking_status,
        "payment_status": b.payment_status,
        "customer_notes": b.customer_notes,
        "created_at": _iso(b.created_at),
    }


def generate_booking_number(db: Session, prefix: str) -> str:
    """<prefix>-YYYYMMDD-XXXXXX, retried until unused"""
    while True:
        suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(6))
        number = f"{prefix}-{utcnow():%Y%m%d}-{suffix}"
        if not BookingRepository.booking_number_exists(db, number):
            return number


def _priced_fields(pricing: PricingService, data: BookingCreateBase, business: bool, currency: Optional[str]) -> dict:
    vehicle = pricing.price_vehicle(
        data.from_location_id,
        data.to_location_id,
        data.vehicle_type_id,
        data.passenger_count,
        business=business,
        currency=currency,
    )
    addons_total, addon_items = pricing.price_addons(
        data.addons, source_currency=vehicle["pricing_currency"], currency=vehicle["currency"]
    )
    base_price = to_money(vehicle["base_price"])
    return {
        "base_price": base_price,
        "amenities_price": addons_total,
        "total_price": to_money(base_price + addons_total),
        "currency": vehicle["currency"],
        "addons": addon_items,
        "pickup_address": data.pickup_address or vehicle["from_location"]["name"],
        "dropoff_address": data.dropoff_address or vehicle["to_location"]["name"],
    }


class BusinessBookingService:
    """Bookings made through the business portal and paid from the wallet"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.notifier = Notifier(db)
        self.wallet = WalletService(db, self.notifier)
        self.availability = AvailabilityService(db)

    def get_booking(self, business_user: BusinessUser, booking_id: int, lock: bool = False) -> BusinessBooking:
        booking = self.repo.get_business_booking(self.db, business_user.business_account_id, booking_id, lock)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def create_booking(self, business_user: BusinessUser, data: BusinessBookingCreate) -> dict:
        """Price server-side, then store the booking and debit the wallet in one commit"""
        account = business_user.business_account
        logger.info(f"📥 Creating business booking for account {account.id} by user {business_user.id}")

        priced = _priced_fields(PricingService(self.db), data, business=True, currency=account.preferred_currency)
        booking = BusinessBooking(
            booking_number=generate_booking_number(self.db, "BB"),
            business_account_id=account.id,
            created_by_user_id=business_user.id,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            from_location_id=data.from_location_id,
            to_location_id=data.to_location_id,
            pickup_datetime=data.pickup_datetime,
            passenger_count=data.passenger_count,
            luggage_count=data.luggage_count,
            vehicle_type_id=data.vehicle_type_id,
            customer_notes=data.customer_notes,
            reference_number=data.reference_number,
            booking_status="confirmed",
            **priced,
        )
        self.db.add(booking)

        try:
            self.db.flush()
            transaction = self.wallet.apply_debit(
                account.id,
                booking.total_price,
                f"Booking {booking.booking_number}",
                created_by=f"business_user:{business_user.id}",
                reference_id=booking.id,
            )
        except WalletError as e:
            self.wallet.handle_debit_failure(account.id, e)
            raise e.to_http() from e

        booking.wallet_transaction_id = transaction.id
        self.notifier.in_app(
            account,
            "booking",
            "booking_confirmed",
            "Booking confirmed",
            f"Booking {booking.booking_number} for {booking.customer_name} is confirmed.",
            data={"booking_id": booking.id, "booking_number": booking.booking_number},
            link=f"/business/bookings/{booking.id}",
        )
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"✅ Business booking {booking.booking_number} created, charged {booking.total_price}")
        return serialize_business_booking(booking)

    def list_bookings(
        self,
        business_user: BusinessUser,
        status: Optional[str] = None,
        search: Optional[str] = None,
        date_from=None,
        date_to=None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        if status and status not in BOOKING_STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

        page, limit, offset = pagination_params(page, limit)
        query = self.repo.business_bookings_query(
            self.db, business_user.business_account_id, status, search, date_from, date_to
        )
        total = query.count()
        rows = (
            query.order_by(BusinessBooking.pickup_datetime.desc(), BusinessBooking.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {"bookings": [serialize_business_booking(b) for b in rows], **pagination_meta(page, limit, total)}

    def booking_counts(self, business_user: BusinessUser) -> dict:
        counts = self.repo.status_counts(self.db, business_user.business_account_id)
        result = {status: counts.get(status, 0) for status in BOOKING_STATUSES}
        result["total"] = sum(counts.values())
        return result

    def cancel_booking(self, business_user: BusinessUser, booking_id: int, reason: str) -> dict:
        """Cancel, refund the full price and release any vendor resources"""
        booking = self.get_booking(business_user, booking_id, lock=True)
        if booking.booking_status not in CANCELLABLE_STATUSES:
            raise HTTPException(
                status_code=409, detail=f"Bookings with status '{booking.booking_status}' cannot be cancelled"
            )

        now = utcnow()
        refund = None
        try:
            if booking.wallet_transaction_id:
                refund, _ = self.wallet.apply_credit(
                    booking.business_account_id,
                    booking.total_price,
                    "refund",
                    f"Refund for cancelled booking {booking.booking_number}",
                    created_by=f"business_user:{business_user.id}",
                    reference_id=booking.id,
                )
        except WalletError as e:
            self.db.rollback()
            raise e.to_http() from e

        for assignment in self.repo.active_assignments(self.db, booking.id):
            assignment.status = "cancelled"
            assignment.cancelled_at = now
            self.availability.remove_schedule(assignment.id)

        booking.booking_status = "cancelled"
        booking.cancelled_at = now
        booking.cancellation_reason = reason
        booking.refund_transaction_id = refund.id if refund else None

        self.notifier.in_app(
            business_user.business_account,
            "booking",
            "booking_cancelled",
            "Booking cancelled",
            f"Booking {booking.booking_number} was cancelled and refunded to your wallet.",
            data={"booking_id": booking.id, "refund_amount": float(booking.total_price)},
            link=f"/business/bookings/{booking.id}",
        )
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"🚫 Business booking {booking.booking_number} cancelled, refunded {booking.total_price}")
        return {
            "message": "Booking cancelled and refunded",
            "refund_amount": float(booking.total_price) if refund else 0.0,
            "booking": serialize_business_booking(booking),
        }

    @staticmethod
    def modification_eligibility(booking: BusinessBooking) -> dict:
        hours_until_pickup = (booking.pickup_datetime - utcnow()).total_seconds() / 3600
        result = {"can_modify": False, "reason": None, "hours_until_pickup": round(hours_until_pickup, 2)}

        if booking.booking_status not in MODIFIABLE_STATUSES:
            result["reason"] = f"Bookings with status '{booking.booking_status}' cannot be modified"
        elif hours_until_pickup <= MIN_HOURS_BEFORE_PICKUP:
            result["reason"] = f"Pickup time can only be changed more than {MIN_HOURS_BEFORE_PICKUP} hours in advance"
        else:
            result["can_modify"] = True
        return result

    def get_eligibility(self, business_user: BusinessUser, booking_id: int) -> dict:
        return self.modification_eligibility(self.get_booking(business_user, booking_id))

    def modify_pickup_datetime(
        self, business_user: BusinessUser, booking_id: int, data: ModifyDatetimeRequest
    ) -> dict:
        booking = self.get_booking(business_user, booking_id, lock=True)
        eligibility = self.modification_eligibility(booking)
        if not eligibility["can_modify"]:
            raise HTTPException(status_code=400, detail=eligibility["reason"])

        new_pickup = data.new_pickup_datetime
        if new_pickup == booking.pickup_datetime:
            raise HTTPException(status_code=400, detail="New pickup time is the same as the current one")
        if new_pickup < utcnow() + timedelta(hours=MIN_HOURS_BEFORE_PICKUP):
            raise HTTPException(
                status_code=400,
                detail=f"New pickup time must be at least {MIN_HOURS_BEFORE_PICKUP} hours from now",
            )

        new_end = new_pickup + TRIP_DURATION
        assignments = self.repo.active_assignments(self.db, booking.id)
        conflicts = []
        for assignment in assignments:
            if assignment.status != "accepted":
                continue
            if assignment.driver_id:
                conflicts += self.availability.get_conflicts(
                    "driver", assignment.driver_id, new_pickup, new_end, assignment.id
                )
            if assignment.vehicle_id:
                conflicts += self.availability.get_conflicts(
                    "vehicle", assignment.vehicle_id, new_pickup, new_end, assignment.id
                )
        if conflicts:
            raise HTTPException(
                status_code=409,
                detail={"message": "Assigned driver or vehicle is not available at the new time", "conflicts": conflicts},
            )

        old_pickup = booking.pickup_datetime
        booking.pickup_datetime = new_pickup
        self.db.add(
            BookingDatetimeModification(
                business_booking_id=booking.id,
                old_pickup_datetime=old_pickup,
                new_pickup_datetime=new_pickup,
                modified_by_user_id=business_user.id,
                reason=data.reason,
            )
        )

        for assignment in assignments:
            if assignment.status == "accepted":
                self.availability.move_schedule(assignment.id, new_pickup, new_end)
            if booking.booking_status == "assigned":
                vendor = self.db.query(Profile).filter(Profile.id == assignment.vendor_id).first()
                if vendor and vendor.email:
                    self.notifier.email(
                        send_booking_datetime_modified_email,
                        vendor.email,
                        vendor.company_name or vendor.full_name or "Partner",
                        booking.booking_number,
                        f"{old_pickup:%d %b %Y %H:%M} UTC",
                        f"{new_pickup:%d %b %Y %H:%M} UTC",
                        data.reason,
                    )

        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"🕒 Business booking {booking.booking_number} moved from {old_pickup} to {new_pickup}")
        return {
            "message": "Pickup time updated",
            "old_pickup_datetime": old_pickup.isoformat(),
            "booking": serialize_business_booking(booking),
        }


class CustomerBookingService:
    """Direct (B2C) bookings; payment is settled outside the wallet"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    def create_booking(self, profile: Profile, data: CustomerBookingCreate) -> dict:
        priced = _priced_fields(PricingService(self.db), data, business=False, currency=None)
        booking = Booking(
            booking_number=generate_booking_number(self.db, "CB"),
            customer_profile_id=profile.id,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            from_location_id=data.from_location_id,
            to_location_id=data.to_location_id,
            pickup_datetime=data.pickup_datetime,
            passenger_count=data.passenger_count,
            luggage_count=data.luggage_count,
            vehicle_type_id=data.vehicle_type_id,
            customer_notes=data.customer_notes,
            booking_status="pending",
            payment_status="pending",
            **priced,
        )
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"✅ Customer booking {booking.booking_number} created for profile {profile.id}")
        return serialize_customer_booking(booking)

    def list_bookings(self, profile: Profile) -> list[dict]:
        return [serialize_customer_booking(b) for b in self.repo.customer_bookings(self.db, profile.id)]

    def get_booking(self, profile: Profile, booking_id: int) -> dict:
        booking = self.repo.get_customer_booking(self.db, profile.id, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return serialize_customer_booking(booking)
