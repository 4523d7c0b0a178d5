from conftest import make_token

from app.models import Profile

ME = "/api/business/me"


def test_missing_token(client):
    response = client.get(ME)
    assert response.status_code == 401


def test_malformed_token(client):
    response = client.get(ME, headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_token_signed_with_other_secret(client, owner):
    token = make_token(owner.auth_user_id, secret="someone-elses-secret")

    response = client.get(ME, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_expired_token(client, owner):
    token = make_token(owner.auth_user_id, expires_in=-60)

    response = client.get(ME, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


def test_first_request_creates_customer_profile(client, db, auth_headers):
    response = client.get("/api/bookings", headers=auth_headers("new-user", email="lina@example.com"))

    assert response.status_code == 200
    profile = db.query(Profile).filter(Profile.auth_user_id == "new-user").one()
    assert profile.role == "customer"
    assert profile.email == "lina@example.com"


def test_customer_is_not_a_business_user(client, auth_headers):
    response = client.get(ME, headers=auth_headers("customer-1"))
    assert response.status_code == 403


def test_role_restricted_routes(client, auth_headers, admin_headers):
    assert client.get("/api/admin/bookings", headers=auth_headers("customer-1")).status_code == 403
    assert client.get("/api/vendor/assignments", headers=admin_headers).status_code == 403
