from datetime import datetime, timedelta

import pytest

from app.domain.availability.service import TRIP_DURATION, AvailabilityService
from app.models import BookingAssignment, ResourceSchedule, ResourceUnavailability, Vehicle, VendorDriver


@pytest.fixture
def business_booking(client, owner_headers, booking_payload):
    response = client.post("/api/business/bookings", json=booking_payload(), headers=owner_headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def assignment(client, business_booking, vendor, admin_headers):
    response = client.post(
        f"/api/admin/bookings/business/{business_booking['id']}/assign",
        json={"vendor_id": vendor.id, "notes": "VIP guest"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def pickup_of(booking: dict) -> datetime:
    return datetime.fromisoformat(booking["pickup_datetime"])


# ============================================================================
# AVAILABILITY
# ============================================================================


def test_conflicts_use_half_open_intervals(db, vendor, fleet):
    start = datetime(2030, 5, 1, 10, 0)
    db.add(
        ResourceUnavailability(
            resource_type="driver",
            resource_id=fleet.driver_id,
            vendor_id=vendor.id,
            start_datetime=start,
            end_datetime=start + timedelta(hours=2),
            reason="Medical appointment",
        )
    )
    db.commit()
    service = AvailabilityService(db)

    touching = service.check_availability(fleet.driver_id, "driver", start + timedelta(hours=2), start + timedelta(hours=4))
    assert touching["available"] is True

    overlapping = service.check_availability(fleet.driver_id, "driver", start + timedelta(hours=1), start + timedelta(hours=3))
    assert overlapping["available"] is False
    assert overlapping["conflicts"][0]["type"] == "unavailable"


def test_mark_unavailable(client, fleet, vendor_headers):
    response = client.post(
        "/api/vendor/unavailability",
        json={
            "resource_type": "vehicle",
            "resource_id": fleet.vehicle_id,
            "start_datetime": "2030-05-01T08:00:00",
            "end_datetime": "2030-05-01T18:00:00",
            "reason": "Scheduled service",
        },
        headers=vendor_headers,
    )
    assert response.status_code == 201

    listed = client.get("/api/vendor/unavailability", headers=vendor_headers).json()
    assert [u["reason"] for u in listed] == ["Scheduled service"]


def test_mark_unavailable_validation(client, fleet, vendor_headers):
    backwards = client.post(
        "/api/vendor/unavailability",
        json={
            "resource_type": "driver",
            "resource_id": fleet.driver_id,
            "start_datetime": "2030-05-01T18:00:00",
            "end_datetime": "2030-05-01T08:00:00",
        },
        headers=vendor_headers,
    )
    assert backwards.status_code == 422

    unknown = client.post(
        "/api/vendor/unavailability",
        json={
            "resource_type": "vehicle",
            "resource_id": 9999,
            "start_datetime": "2030-05-01T08:00:00",
            "end_datetime": "2030-05-01T18:00:00",
        },
        headers=vendor_headers,
    )
    assert unknown.status_code == 404


def test_available_resources(client, fleet, vendor_headers):
    resources = client.get("/api/vendor/resources/available", headers=vendor_headers).json()
    assert [v["id"] for v in resources["vehicles"]] == [fleet.vehicle_id]
    assert [d["full_name"] for d in resources["drivers"]] == ["Omar Saleh"]


# ============================================================================
# DISPATCH
# ============================================================================


def test_assign_creates_pending_assignment(client, assignment, vendor, vendor_headers):
    assert assignment["status"] == "pending"
    assert assignment["vendor_id"] == vendor.id

    listed = client.get("/api/vendor/assignments", headers=vendor_headers).json()
    assert len(listed) == 1
    assert listed[0]["booking"]["booking_type"] == "business"


def test_assign_rules(client, business_booking, assignment, vendor, admin, admin_headers):
    url = f"/api/admin/bookings/business/{business_booking['id']}/assign"

    duplicate = client.post(url, json={"vendor_id": vendor.id}, headers=admin_headers)
    assert duplicate.status_code == 409

    not_a_vendor = client.post(url, json={"vendor_id": admin.id}, headers=admin_headers)
    assert not_a_vendor.status_code == 400

    missing = client.post("/api/admin/bookings/business/9999/assign", json={"vendor_id": vendor.id}, headers=admin_headers)
    assert missing.status_code == 404


def test_accept_books_driver_and_vehicle(client, db, business_booking, assignment, fleet, vendor_headers):
    response = client.post(
        f"/api/vendor/assignments/{assignment['id']}/accept",
        json={"driver_id": fleet.driver_id, "vehicle_id": fleet.vehicle_id},
        headers=vendor_headers,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "accepted"

    schedules = db.query(ResourceSchedule).order_by(ResourceSchedule.resource_type).all()
    assert [s.resource_type for s in schedules] == ["driver", "vehicle"]
    pickup = pickup_of(business_booking)
    assert all(s.start_datetime == pickup and s.end_datetime == pickup + TRIP_DURATION for s in schedules)

    details = client.get(f"/api/business/bookings/{business_booking['id']}", headers=vendor_headers)
    assert details.status_code == 403


def test_accept_sets_booking_assigned(client, owner_headers, business_booking, assignment, fleet, vendor_headers):
    client.post(
        f"/api/vendor/assignments/{assignment['id']}/accept",
        json={"driver_id": fleet.driver_id, "vehicle_id": fleet.vehicle_id},
        headers=vendor_headers,
    )

    booking = client.get(f"/api/business/bookings/{business_booking['id']}", headers=owner_headers).json()
    assert booking["booking_status"] == "assigned"

    notifications = client.get("/api/business/notifications", headers=owner_headers).json()
    assert "booking_assigned" in [n["type"] for n in notifications["notifications"]]


def test_accept_refuses_conflicting_driver(client, db, vendor, business_booking, assignment, fleet, vendor_headers):
    pickup = pickup_of(business_booking)
    db.add(
        ResourceUnavailability(
            resource_type="driver",
            resource_id=fleet.driver_id,
            vendor_id=vendor.id,
            start_datetime=pickup - timedelta(hours=1),
            end_datetime=pickup + timedelta(minutes=30),
            reason="Annual leave",
        )
    )
    db.commit()

    response = client.post(
        f"/api/vendor/assignments/{assignment['id']}/accept",
        json={"driver_id": fleet.driver_id, "vehicle_id": fleet.vehicle_id},
        headers=vendor_headers,
    )

    assert response.status_code == 409
    conflicts = response.json()["detail"]["conflicts"]
    assert conflicts[0]["type"] == "unavailable"
    assert db.query(ResourceSchedule).count() == 0


@pytest.mark.parametrize(
    "model, fields",
    [
        (VendorDriver, {"is_active": False}),
        (VendorDriver, {"is_available": False}),
        (Vehicle, {"is_available": False}),
    ],
)
def test_accept_refuses_unavailable_resource(client, db, assignment, fleet, vendor_headers, model, fields):
    resource_id = fleet.driver_id if model is VendorDriver else fleet.vehicle_id
    db.query(model).filter(model.id == resource_id).update(fields)
    db.commit()

    response = client.post(
        f"/api/vendor/assignments/{assignment['id']}/accept",
        json={"driver_id": fleet.driver_id, "vehicle_id": fleet.vehicle_id},
        headers=vendor_headers,
    )

    assert response.status_code == 409
    db.expire_all()
    assert db.query(BookingAssignment).one().status == "pending"
    assert db.query(ResourceSchedule).count() == 0


def test_reject_keeps_note_and_allows_reassignment(
    client, db, business_booking, assignment, vendor, admin_headers, vendor_headers
):
    response = client.post(
        f"/api/vendor/assignments/{assignment['id']}/reject",
        json={"reason": "No drivers that day"},
        headers=vendor_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "rejected"
    assert body["notes"] == "VIP guest\nRejected: No drivers that day"

    again = client.post(
        f"/api/admin/bookings/business/{business_booking['id']}/assign",
        json={"vendor_id": vendor.id},
        headers=admin_headers,
    )
    assert again.status_code == 201


def test_reject_without_reason(client, assignment, vendor_headers):
    body = client.post(f"/api/vendor/assignments/{assignment['id']}/reject", headers=vendor_headers).json()
    assert body["rejection_reason"] == "Rejected by vendor"


def test_complete_releases_schedule(client, db, owner_headers, business_booking, assignment, fleet, vendor_headers):
    url = f"/api/vendor/assignments/{assignment['id']}"

    early = client.post(f"{url}/complete", headers=vendor_headers)
    assert early.status_code == 409

    client.post(f"{url}/accept", json={"driver_id": fleet.driver_id, "vehicle_id": fleet.vehicle_id}, headers=vendor_headers)
    response = client.post(f"{url}/complete", headers=vendor_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert db.query(ResourceSchedule).count() == 0
    booking = client.get(f"/api/business/bookings/{business_booking['id']}", headers=owner_headers).json()
    assert booking["booking_status"] == "completed"


def test_cancelling_booking_cancels_assignment(client, db, owner_headers, business_booking, assignment, fleet, vendor_headers):
    client.post(
        f"/api/vendor/assignments/{assignment['id']}/accept",
        json={"driver_id": fleet.driver_id, "vehicle_id": fleet.vehicle_id},
        headers=vendor_headers,
    )

    response = client.post(
        f"/api/business/bookings/{business_booking['id']}/cancel",
        json={"reason": "Guest cancelled the trip"},
        headers=owner_headers,
    )

    assert response.status_code == 200
    db.expire_all()
    assert db.query(BookingAssignment).one().status == "cancelled"
    assert db.query(ResourceSchedule).count() == 0


def test_pickup_change_moves_schedule(client, db, owner_headers, business_booking, assignment, fleet, vendor_headers):
    client.post(
        f"/api/vendor/assignments/{assignment['id']}/accept",
        json={"driver_id": fleet.driver_id, "vehicle_id": fleet.vehicle_id},
        headers=vendor_headers,
    )
    new_pickup = pickup_of(business_booking) + timedelta(days=1)

    response = client.patch(
        f"/api/business/bookings/{business_booking['id']}/datetime",
        json={"new_pickup_datetime": new_pickup.isoformat()},
        headers=owner_headers,
    )

    assert response.status_code == 200
    db.expire_all()
    assert {s.start_datetime for s in db.query(ResourceSchedule)} == {new_pickup}


def test_pickup_change_refuses_double_booked_driver(
    client, db, owner_headers, business_booking, assignment, fleet, vendor, vendor_headers, admin_headers, booking_payload
):
    accept = {"driver_id": fleet.driver_id, "vehicle_id": fleet.vehicle_id}
    client.post(f"/api/vendor/assignments/{assignment['id']}/accept", json=accept, headers=vendor_headers)

    later_pickup = pickup_of(business_booking) + timedelta(days=1)
    later = client.post(
        "/api/business/bookings",
        json=booking_payload(pickup_datetime=later_pickup.isoformat()),
        headers=owner_headers,
    ).json()
    second = client.post(
        f"/api/admin/bookings/business/{later['id']}/assign", json={"vendor_id": vendor.id}, headers=admin_headers
    ).json()
    assert client.post(f"/api/vendor/assignments/{second['id']}/accept", json=accept, headers=vendor_headers).status_code == 200

    response = client.patch(
        f"/api/business/bookings/{business_booking['id']}/datetime",
        json={"new_pickup_datetime": (later_pickup + timedelta(minutes=30)).isoformat()},
        headers=owner_headers,
    )

    assert response.status_code == 409
    assert response.json()["detail"]["conflicts"][0]["type"] == "schedule"
    db.expire_all()
    original = pickup_of(business_booking)
    starts = sorted(s.start_datetime for s in db.query(ResourceSchedule).filter(ResourceSchedule.resource_type == "driver"))
    assert starts == [original, later_pickup]


def test_other_vendor_cannot_touch_assignment(client, assignment, auth_headers, db):
    from app.models import Profile

    db.add(Profile(auth_user_id="vendor-2", role="vendor", company_name="Gulf Limo"))
    db.commit()

    response = client.post(f"/api/vendor/assignments/{assignment['id']}/reject", headers=auth_headers("vendor-2"))
    assert response.status_code == 404


def test_resources_for_assignment(client, assignment, fleet, vendor_headers):
    resources = client.get(f"/api/vendor/assignments/{assignment['id']}/resources", headers=vendor_headers).json()

    assert resources["drivers"][0]["id"] == fleet.driver_id
    assert resources["drivers"][0]["available"] is True


# ============================================================================
# ADMIN UNIFIED VIEW
# ============================================================================


def test_unified_list_merges_booking_types(client, business_booking, assignment, booking_payload, auth_headers, admin_headers):
    customer = client.post("/api/bookings", json=booking_payload(), headers=auth_headers("customer-1")).json()

    listed = client.get("/api/admin/bookings", headers=admin_headers).json()
    assert listed["total"] == 2
    by_type = {b["booking_type"]: b for b in listed["bookings"]}
    assert by_type["business"]["assignment"]["id"] == assignment["id"]
    assert by_type["customer"]["id"] == customer["id"]
    assert by_type["customer"]["assignment"] is None

    only_business = client.get("/api/admin/bookings", params={"booking_type": "business"}, headers=admin_headers).json()
    assert only_business["total"] == 1

    details = client.get(f"/api/admin/bookings/business/{business_booking['id']}", headers=admin_headers).json()
    assert details["business"]["id"] == business_booking["business_account_id"]
    assert len(details["assignments"]) == 1
