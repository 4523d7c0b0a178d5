from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .shared.utils import utcnow


class Profile(Base):
    """Platform user (admin, customer, vendor or driver) keyed by Supabase auth id"""

    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    auth_user_id = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(255), index=True, nullable=True)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    role = Column(String(20), default="customer", nullable=False)  # admin, customer, vendor, driver
    company_name = Column(String(255), nullable=True)  # Vendors only
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class BusinessAccount(Base):
    """B2B tenant with its own domain, branding and prepaid wallet"""

    __tablename__ = "business_accounts"

    id = Column(Integer, primary_key=True, index=True)
    business_name = Column(String(255), nullable=False)
    business_email = Column(String(255), nullable=False)
    business_phone = Column(String(32), nullable=True)
    address = Column(Text, nullable=True)
    # pending, active, suspended, inactive, rejected
    status = Column(String(20), default="pending", nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)
    status_reason = Column(Text, nullable=True)  # Last suspension/reactivation note
    approved_at = Column(DateTime, nullable=True)

    # Tenancy
    subdomain = Column(String(63), unique=True, index=True, nullable=True)
    custom_domain = Column(String(253), unique=True, index=True, nullable=True)
    custom_domain_verified = Column(Boolean, default=False, nullable=False)
    domain_verification_token = Column(String(100), nullable=True)
    domain_verified_at = Column(DateTime, nullable=True)

    # White-label branding
    brand_name = Column(String(100), nullable=True)
    logo_url = Column(String(500), nullable=True)
    theme_config = Column(JSON, nullable=True)  # {"accent": "#RRGGBB", "dark": ..., "light": ...}
    preferred_currency = Column(String(3), default="USD", nullable=False)

    # Wallet
    wallet_balance = Column(Numeric(12, 2), default=0, nullable=False)
    wallet_frozen = Column(Boolean, default=False, nullable=False)
    wallet_frozen_at = Column(DateTime, nullable=True)
    wallet_frozen_reason = Column(Text, nullable=True)
    wallet_frozen_by = Column(Integer, ForeignKey("profiles.id"), nullable=True)

    # Admin configured spending limits (null = unlimited)
    spending_limits_enabled = Column(Boolean, default=False, nullable=False)
    max_transaction_amount = Column(Numeric(12, 2), nullable=True)
    max_daily_spend = Column(Numeric(12, 2), nullable=True)
    max_monthly_spend = Column(Numeric(12, 2), nullable=True)

    # Dodo customer used for off-session auto-recharge
    dodo_customer_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    users = relationship("BusinessUser", back_populates="business_account")


class BusinessUser(Base):
    """Member of a business account (owner or staff)"""

    __tablename__ = "business_users"

    id = Column(Integer, primary_key=True, index=True)
    business_account_id = Column(
        Integer, ForeignKey("business_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    auth_user_id = Column(String(64), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=False)
    role = Column(String(20), default="staff", nullable=False)  # owner, staff
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    business_account = relationship("BusinessAccount", back_populates="users")


# ============================================================================
# PRICING CATALOG
# ============================================================================


class Zone(Base):
    __tablename__ = "zones"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    zone_id = Column(Integer, ForeignKey("zones.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class ZonePricing(Base):
    """Base transfer price between two zones"""

    __tablename__ = "zone_pricing"
    __table_args__ = (UniqueConstraint("from_zone_id", "to_zone_id", name="uq_zone_pricing_route"),)

    id = Column(Integer, primary_key=True, index=True)
    from_zone_id = Column(Integer, ForeignKey("zones.id"), nullable=False)
    to_zone_id = Column(Integer, ForeignKey("zones.id"), nullable=False)
    base_price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class VehicleCategory(Base):
    __tablename__ = "vehicle_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)


class VehicleType(Base):
    __tablename__ = "vehicle_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    category_id = Column(Integer, ForeignKey("vehicle_categories.id"), nullable=True)
    passenger_capacity = Column(Integer, nullable=False)
    luggage_capacity = Column(Integer, default=0, nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    price_multiplier = Column(Float, nullable=True)
    business_price_multiplier = Column(Float, nullable=True)  # B2B portal pricing
    is_active = Column(Boolean, default=True, nullable=False)

    category = relationship("VehicleCategory")


class Addon(Base):
    """Optional extra (child seat, extra luggage, ...) priced per booking or per unit"""

    __tablename__ = "addons"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(50), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    pricing_type = Column(String(20), default="fixed", nullable=False)  # fixed, per_unit
    max_quantity = Column(Integer, default=1, nullable=False)
    category = Column(String(50), nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class ExchangeRate(Base):
    """AED based exchange rate refreshed by the worker"""

    __tablename__ = "exchange_rates"

    id = Column(Integer, primary_key=True, index=True)
    currency = Column(String(3), unique=True, nullable=False)
    rate = Column(Numeric(18, 6), nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# ============================================================================
# BOOKINGS
# ============================================================================


class Booking(Base):
    """Customer (B2C) booking"""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(String(32), unique=True, index=True, nullable=False)
    customer_profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=True, index=True)
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(32), nullable=False)
    from_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    to_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    pickup_address = Column(String(500), nullable=True)
    dropoff_address = Column(String(500), nullable=True)
    pickup_datetime = Column(DateTime, nullable=False, index=True)
    passenger_count = Column(Integer, default=1, nullable=False)
    luggage_count = Column(Integer, default=0, nullable=False)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id"), nullable=True)
    base_price = Column(Numeric(12, 2), nullable=False)
    amenities_price = Column(Numeric(12, 2), default=0, nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    addons = Column(JSON, nullable=True)
    booking_status = Column(String(20), default="pending", nullable=False, index=True)
    payment_status = Column(String(20), default="pending", nullable=False)
    customer_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class BusinessBooking(Base):
    """Booking created from a business portal and paid from the business wallet"""

    __tablename__ = "business_bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(String(32), unique=True, index=True, nullable=False)
    business_account_id = Column(
        Integer, ForeignKey("business_accounts.id"), nullable=False, index=True
    )
    created_by_user_id = Column(Integer, ForeignKey("business_users.id"), nullable=True)
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(32), nullable=False)
    from_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    to_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    pickup_address = Column(String(500), nullable=True)
    dropoff_address = Column(String(500), nullable=True)
    pickup_datetime = Column(DateTime, nullable=False, index=True)
    passenger_count = Column(Integer, default=1, nullable=False)
    luggage_count = Column(Integer, default=0, nullable=False)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id"), nullable=True)
    base_price = Column(Numeric(12, 2), nullable=False)
    amenities_price = Column(Numeric(12, 2), default=0, nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    addons = Column(JSON, nullable=True)
    booking_status = Column(String(20), default="confirmed", nullable=False, index=True)
    customer_notes = Column(Text, nullable=True)
    reference_number = Column(String(50), nullable=True)
    wallet_transaction_id = Column(Integer, nullable=True)
    refund_transaction_id = Column(Integer, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class BookingDatetimeModification(Base):
    """Audit row for every pickup time change on a business booking"""

    __tablename__ = "booking_datetime_modifications"

    id = Column(Integer, primary_key=True, index=True)
    business_booking_id = Column(
        Integer, ForeignKey("business_bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_pickup_datetime = Column(DateTime, nullable=False)
    new_pickup_datetime = Column(DateTime, nullable=False)
    modified_by_user_id = Column(Integer, ForeignKey("business_users.id"), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)


class BookingAssignment(Base):
    """Link between a booking (customer or business) and the vendor fulfilling it"""

    __tablename__ = "booking_assignments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    business_booking_id = Column(
        Integer, ForeignKey("business_bookings.id"), nullable=True, index=True
    )
    vendor_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("vendor_drivers.id"), nullable=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)
    # pending, accepted, rejected, completed, cancelled
    status = Column(String(20), default="pending", nullable=False, index=True)
    assigned_by = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    notes = Column(Text, nullable=True)
    assigned_at = Column(DateTime, default=utcnow)
    accepted_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    booking = relationship("Booking")
    business_booking = relationship("BusinessBooking")


# ============================================================================
# VENDOR FLEET & AVAILABILITY
# ============================================================================


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("vehicle_categories.id"), nullable=True)
    registration_number = Column(String(50), nullable=False)
    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    seats = Column(Integer, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class VendorDriver(Base):
    __tablename__ = "vendor_drivers"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    license_number = Column(String(100), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class ResourceSchedule(Base):
    """Time window during which a vehicle or driver is booked for an assignment"""

    __tablename__ = "resource_schedules"

    id = Column(Integer, primary_key=True, index=True)
    resource_type = Column(String(10), nullable=False)  # vehicle, driver
    resource_id = Column(Integer, nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    assignment_id = Column(
        Integer, ForeignKey("booking_assignments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=False)
    status = Column(String(20), default="booked", nullable=False)
    created_at = Column(DateTime, default=utcnow)


class ResourceUnavailability(Base):
    """Vendor declared downtime (maintenance, leave, ...)"""

    __tablename__ = "resource_unavailability"

    id = Column(Integer, primary_key=True, index=True)
    resource_type = Column(String(10), nullable=False)  # vehicle, driver
    resource_id = Column(Integer, nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
