import base64
import itertools
import os
import time
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

TEST_JWT_SECRET = "test-secret"
WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"test-webhook-secret").decode()

# Configuration is read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SUPABASE_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["DODO_PAYMENTS_WEBHOOK_SECRET"] = WEBHOOK_SECRET
os.environ["DODO_PAYMENTS_API_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from app.cache import Cache  # noqa: E402
from app.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Addon,
    BusinessAccount,
    BusinessUser,
    Location,
    Profile,
    Vehicle,
    VehicleCategory,
    VehicleType,
    VendorDriver,
    Zone,
    ZonePricing,
)
from app.shared.utils import utcnow  # noqa: E402


def make_token(sub: str, email: str = None, expires_in: int = 3600, secret: str = TEST_JWT_SECRET) -> str:
    claims = {"sub": sub, "aud": "authenticated", "exp": int(time.time()) + expires_in}
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


def bearer(sub: str, **kwargs) -> dict:
    return {"Authorization": f"Bearer {make_token(sub, **kwargs)}"}


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    """Every cache lookup is a miss"""
    monkeypatch.setattr(Cache, "_get_client", lambda self: None)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return bearer


# ============================================================================
# PEOPLE
# ============================================================================


def _profile(db, auth_user_id: str, role: str, **fields) -> Profile:
    profile = Profile(auth_user_id=auth_user_id, role=role, **fields)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


@pytest.fixture
def admin(db):
    return _profile(db, "admin-1", "admin", email="ops@infiniatransfers.com", full_name="Platform Ops")


@pytest.fixture
def admin_headers(admin):
    return bearer(admin.auth_user_id)


@pytest.fixture
def vendor(db):
    return _profile(db, "vendor-1", "vendor", email="dispatch@desertcars.ae", company_name="Desert Cars")


@pytest.fixture
def vendor_headers(vendor):
    return bearer(vendor.auth_user_id)


@pytest.fixture
def make_business(db):
    """Business account with an owner; returns the owner"""
    counter = itertools.count(1)

    def _make(status="active", balance="1000.00", currency="USD", name=None, **fields) -> BusinessUser:
        n = next(counter)
        account = BusinessAccount(
            business_name=name or f"Palm Hotel {n}",
            business_email=f"frontdesk{n}@palmhotel.com",
            business_phone="+971500000000",
            subdomain=f"palm-hotel-{n}",
            status=status,
            wallet_balance=Decimal(balance),
            preferred_currency=currency,
            **fields,
        )
        db.add(account)
        db.flush()
        owner = BusinessUser(
            business_account_id=account.id,
            auth_user_id=f"owner-{n}",
            email=f"owner{n}@palmhotel.com",
            full_name=f"Owner {n}",
            role="owner",
        )
        db.add(owner)
        db.commit()
        db.refresh(owner)
        return owner

    return _make


@pytest.fixture
def owner(make_business):
    return make_business()


@pytest.fixture
def owner_headers(owner):
    return bearer(owner.auth_user_id)


# ============================================================================
# CATALOG
# ============================================================================


@pytest.fixture
def catalog(db):
    """Airport -> city route at 100 USD with two vehicle types and two addons"""
    airport = Zone(name="Airport", slug="airport")
    city = Zone(name="City Centre", slug="city-centre")
    standard = VehicleCategory(name="Standard", slug="standard", sort_order=1)
    premium = VehicleCategory(name="Premium", slug="premium", sort_order=2)
    db.add_all([airport, city, standard, premium])
    db.flush()

    terminal = Location(name="DXB Terminal 3", zone_id=airport.id)
    marina = Location(name="Dubai Marina", zone_id=city.id)
    sedan = VehicleType(
        name="Sedan",
        slug="sedan",
        category_id=standard.id,
        passenger_capacity=3,
        luggage_capacity=2,
        price_multiplier=1.0,
        business_price_multiplier=0.9,
    )
    van = VehicleType(
        name="Van",
        slug="van",
        category_id=premium.id,
        passenger_capacity=7,
        luggage_capacity=6,
        price_multiplier=1.5,
    )
    child_seat = Addon(
        name="Child seat", price=Decimal("10.00"), pricing_type="per_unit", max_quantity=3, category="Child Safety"
    )
    meet_greet = Addon(
        name="Meet & greet", price=Decimal("25.00"), pricing_type="fixed", max_quantity=1, category="Comfort"
    )
    db.add_all([terminal, marina, sedan, van, child_seat, meet_greet])
    db.add(ZonePricing(from_zone_id=airport.id, to_zone_id=city.id, base_price=Decimal("100.00"), currency="USD"))
    db.commit()

    return SimpleNamespace(
        terminal_id=terminal.id,
        marina_id=marina.id,
        sedan_id=sedan.id,
        van_id=van.id,
        child_seat_id=child_seat.id,
        meet_greet_id=meet_greet.id,
    )


@pytest.fixture
def booking_payload(catalog):
    def _payload(**overrides) -> dict:
        payload = {
            "customer_name": "Sara Haddad",
            "customer_email": "sara@example.com",
            "customer_phone": "+971501234567",
            "from_location_id": catalog.terminal_id,
            "to_location_id": catalog.marina_id,
            "pickup_datetime": (utcnow() + timedelta(days=2)).replace(microsecond=0).isoformat(),
            "passenger_count": 2,
            "vehicle_type_id": catalog.sedan_id,
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def fleet(db, vendor):
    """One vehicle and one driver owned by the vendor"""
    vehicle = Vehicle(vendor_id=vendor.id, registration_number="DXB-A-12345", make="Toyota", model="Camry", seats=4)
    driver = VendorDriver(vendor_id=vendor.id, full_name="Omar Saleh", phone="+971509876543")
    db.add_all([vehicle, driver])
    db.commit()
    return SimpleNamespace(vehicle_id=vehicle.id, driver_id=driver.id)


# ============================================================================
# PAYMENTS
# ============================================================================


@pytest.fixture
def gateway():
    """Payment gateway double whose off-session charges succeed"""
    fake = MagicMock()
    fake.charge_saved_method = AsyncMock(
        side_effect=lambda **kwargs: {
            "payment_id": f"pay_{kwargs['idempotency_key']}",
            "status": "succeeded",
            "amount": kwargs["amount"],
        }
    )
    return fake
