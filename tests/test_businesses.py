from app.models import BusinessAccount, BusinessUser

SIGNUP = {
    "business_name": "Desert Rose Hotel",
    "business_email": "Reservations@DesertRose.ae",
    "business_phone": "+971 4 123 4567",
    "full_name": "Mona Khalil",
    "preferred_currency": "aed",
}


def signup(client, auth_headers, sub, **overrides):
    return client.post("/api/business/signup", json={**SIGNUP, **overrides}, headers=auth_headers(sub))


# ============================================================================
# SIGNUP AND PORTAL PROFILE
# ============================================================================


def test_signup_creates_pending_account(client, db, auth_headers):
    response = signup(client, auth_headers, "founder-1")

    assert response.status_code == 201
    business = response.json()["business"]
    assert business["status"] == "pending"
    assert business["subdomain"] == "desert-rose-hotel"
    assert business["business_email"] == "reservations@desertrose.ae"
    assert business["preferred_currency"] == "AED"
    assert response.json()["user"]["role"] == "owner"


def test_signup_suffixes_taken_subdomain(client, auth_headers):
    signup(client, auth_headers, "founder-1")

    second = signup(client, auth_headers, "founder-2")

    assert second.json()["business"]["subdomain"] == "desert-rose-hotel-2"


def test_signup_once_per_user(client, auth_headers):
    signup(client, auth_headers, "founder-1")

    again = signup(client, auth_headers, "founder-1", business_name="Second Venture")

    assert again.status_code == 409


def test_signup_validation(client, auth_headers):
    assert signup(client, auth_headers, "founder-1", business_phone="call me").status_code == 422
    assert signup(client, auth_headers, "founder-1", preferred_currency="XYZ").status_code == 422
    assert signup(client, auth_headers, "founder-1", business_name="A").status_code == 422


def test_pending_owner_is_blocked_from_portal(client, auth_headers):
    signup(client, auth_headers, "founder-1")

    response = client.get("/api/business/me", headers=auth_headers("founder-1"))

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "business_pending"


def test_get_me(client, owner, owner_headers):
    me = client.get("/api/business/me", headers=owner_headers).json()

    assert me["user"]["id"] == owner.id
    assert me["business"]["subdomain"] == owner.business_account.subdomain


def test_update_branding(client, owner_headers):
    response = client.patch(
        "/api/business/branding",
        json={"brand_name": "Palm Stays", "theme_config": {"accent": "#0F766E"}},
        headers=owner_headers,
    )

    assert response.status_code == 200
    assert response.json()["brand_name"] == "Palm Stays"
    assert response.json()["theme_config"] == {"accent": "#0F766E"}

    bad = client.patch("/api/business/branding", json={"theme_config": {"accent": "teal"}}, headers=owner_headers)
    assert bad.status_code == 422

    unknown = client.patch("/api/business/branding", json={"theme_config": {"glow": "#FFFFFF"}}, headers=owner_headers)
    assert unknown.status_code == 422


def test_currency_change_requires_empty_wallet(client, owner_headers):
    response = client.patch("/api/business/currency", json={"currency": "EUR"}, headers=owner_headers)

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "wallet_not_empty"


def test_currency_change_with_empty_wallet(client, make_business, auth_headers):
    owner = make_business(balance="0.00")

    response = client.patch("/api/business/currency", json={"currency": "eur"}, headers=auth_headers(owner.auth_user_id))

    assert response.status_code == 200
    assert response.json()["preferred_currency"] == "EUR"


# ============================================================================
# ADMIN LIFECYCLE
# ============================================================================


def test_approve_activates_business(client, db, make_business, auth_headers, admin_headers):
    pending = make_business(status="pending")
    account_id = pending.business_account_id

    response = client.post(f"/api/admin/businesses/{account_id}/approve", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert response.json()["approved_at"] is not None
    assert client.get("/api/business/me", headers=auth_headers(pending.auth_user_id)).status_code == 200


def test_status_transitions(client, owner, make_business, admin_headers):
    url = f"/api/admin/businesses/{owner.business_account_id}"

    approve_active = client.post(f"{url}/approve", headers=admin_headers)
    assert approve_active.status_code == 409

    suspended = client.post(f"{url}/suspend", json={"reason": "Unpaid chargebacks"}, headers=admin_headers)
    assert suspended.json()["status"] == "suspended"
    assert suspended.json()["status_reason"] == "Unpaid chargebacks"

    reactivated = client.post(f"{url}/reactivate", headers=admin_headers)
    assert reactivated.json()["status"] == "active"

    pending = make_business(status="pending")
    rejected = client.post(
        f"/api/admin/businesses/{pending.business_account_id}/reject",
        json={"reason": "Incomplete trade licence"},
        headers=admin_headers,
    )
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["rejection_reason"] == "Incomplete trade licence"


def test_suspend_requires_reason(client, owner, admin_headers):
    response = client.post(
        f"/api/admin/businesses/{owner.business_account_id}/suspend", json={"reason": ""}, headers=admin_headers
    )
    assert response.status_code == 422


def test_unknown_business(client, admin_headers):
    response = client.post("/api/admin/businesses/9999/approve", headers=admin_headers)
    assert response.status_code == 404


def test_bulk_action_reports_each_business(client, db, owner, make_business, admin_headers):
    pending = make_business(status="pending")
    ids = [pending.business_account_id, owner.business_account_id]

    response = client.post("/api/admin/businesses/bulk", json={"business_ids": ids, "action": "approve"}, headers=admin_headers)

    body = response.json()
    assert body["succeeded"] == 1
    assert body["failed"] == 1
    assert [r["success"] for r in body["results"]] == [True, False]
    db.expire_all()
    assert db.query(BusinessAccount).filter(BusinessAccount.status == "active").count() == 2


def test_bulk_reject_requires_reason(client, owner, admin_headers):
    response = client.post(
        "/api/admin/businesses/bulk",
        json={"business_ids": [owner.business_account_id], "action": "reject"},
        headers=admin_headers,
    )
    assert response.status_code == 422


def test_list_and_search(client, make_business, admin_headers):
    make_business()
    make_business(status="pending", name="Creek Side Inn")

    everything = client.get("/api/admin/businesses", headers=admin_headers).json()
    assert everything["total"] == 2

    pending = client.get("/api/admin/businesses", params={"status": "pending"}, headers=admin_headers).json()
    assert [b["business_name"] for b in pending["businesses"]] == ["Creek Side Inn"]

    found = client.get("/api/admin/businesses", params={"search": "creek"}, headers=admin_headers).json()
    assert found["total"] == 1


def test_business_detail(client, db, owner, admin_headers):
    db.add(
        BusinessUser(
            business_account_id=owner.business_account_id,
            auth_user_id="staff-1",
            email="concierge@palmhotel.com",
            role="staff",
        )
    )
    db.commit()

    detail = client.get(f"/api/admin/businesses/{owner.business_account_id}", headers=admin_headers).json()

    assert [u["role"] for u in detail["users"]] == ["owner", "staff"]
    assert detail["wallet"]["balance"] == 1000.0
    assert detail["booking_counts"]["total"] == 0


def test_admin_routes_reject_other_roles(client, owner, vendor_headers):
    response = client.get("/api/admin/businesses", headers=vendor_headers)
    assert response.status_code == 403
