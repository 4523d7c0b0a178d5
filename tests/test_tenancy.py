import pytest

from app.domain.tenancy import domain_utils
from app.domain.tenancy import middleware as tenant_middleware
from app.domain.tenancy.middleware import LOGIN_PATH, branding_headers, isolation_redirect
from app.domain.tenancy.service import classify_host
from app.models import BusinessUser


# ============================================================================
# HOST AND DOMAIN HELPERS
# ============================================================================


def test_generate_subdomain():
    assert domain_utils.generate_subdomain("Acme Hotel & Resort") == "acme-hotel-resort"
    assert domain_utils.generate_subdomain("  Dubai  Marina Suites!! ") == "dubai-marina-suites"


@pytest.mark.parametrize(
    "label,valid",
    [("palm-hotel", True), ("www", False), ("admin", False), ("-palm", False), ("palm_hotel", False), ("", False)],
)
def test_subdomain_validation(label, valid):
    assert domain_utils.is_valid_subdomain(label) is valid


def test_domain_validation():
    assert domain_utils.is_valid_domain("bookings.palmhotel.com")
    assert not domain_utils.is_valid_domain("localhost")
    assert not domain_utils.is_valid_domain("bad_domain.com")
    assert not domain_utils.is_valid_domain("a" * 250 + ".com")


def test_extract_subdomain():
    assert domain_utils.extract_subdomain("acme.infiniatransfers.com:443") == "acme"
    assert domain_utils.extract_subdomain("acme.localhost:3000") == "acme"
    assert domain_utils.extract_subdomain("www.infiniatransfers.com") is None
    assert domain_utils.extract_subdomain("a.b.infiniatransfers.com") is None
    assert domain_utils.extract_subdomain("bookings.palmhotel.com") is None


def test_classify_host():
    assert classify_host("infiniatransfers.com") == ("platform", None)
    assert classify_host("www.infiniatransfers.com") == ("platform", None)
    assert classify_host("testserver") == ("platform", None)
    assert classify_host("127.0.0.1:8000") == ("platform", None)
    assert classify_host("acme.infiniatransfers.com") == ("subdomain", "acme")
    assert classify_host("Bookings.PalmHotel.com") == ("custom", "bookings.palmhotel.com")


def test_dns_instructions():
    records = domain_utils.dns_instructions("bookings.palmhotel.com", "verify-1-abc")
    assert [r["type"] for r in records] == ["CNAME", "TXT"]
    assert records[1]["name"] == "_infinia-verification.bookings.palmhotel.com"
    assert records[1]["value"] == "verify-1-abc"
    assert domain_utils.generate_verification_token().startswith("verify-")


def test_check_domain_dns(monkeypatch):
    monkeypatch.setattr(domain_utils, "lookup_txt_records", lambda name: ["other", "verify-1-abc"])
    monkeypatch.setattr(domain_utils, "lookup_cname", lambda name: "cname.vercel-dns.com")

    result = domain_utils.check_domain_dns("bookings.palmhotel.com", "verify-1-abc")

    assert result == {"txt_verified": True, "cname_verified": True, "cname_target": "cname.vercel-dns.com"}


@pytest.mark.parametrize(
    "path,target",
    [
        ("/", LOGIN_PATH),
        ("/business/signup", LOGIN_PATH),
        ("/business/bookings", None),
        ("/api/business/wallet", None),
        ("/api/tenant", None),
        ("/api/admin/businesses", LOGIN_PATH),
        ("/api/businessfoo", LOGIN_PATH),
    ],
)
def test_isolation_redirect(path, target):
    assert isolation_redirect(path) == target


def test_branding_headers_are_latin1_safe():
    headers = branding_headers(
        {"id": 5, "business_name": "Café Ørsted", "brand_name": "Ørsted", "colors": {"primary": "#112233"}}
    )

    assert headers["x-business-id"] == "5"
    assert headers["x-primary-color"] == "#112233"
    assert "x-logo-url" not in headers
    for value in headers.values():
        value.encode("latin-1")


# ============================================================================
# TENANT RESOLUTION
# ============================================================================


def tenant_host(owner: BusinessUser) -> dict:
    return {"x-forwarded-host": f"{owner.business_account.subdomain}.infiniatransfers.com"}


def test_platform_host_is_not_a_tenant(client):
    assert client.get("/api/tenant").json() == {"is_tenant": False, "business": None}


def test_subdomain_resolves_branding(client, db, owner):
    account = owner.business_account
    account.brand_name = "Palm Stays"
    account.theme_config = {"accent": "#0F766E"}
    db.commit()

    response = client.get("/api/tenant", headers=tenant_host(owner))

    assert response.status_code == 200
    business = response.json()["business"]
    assert business["brand_name"] == "Palm Stays"
    assert business["colors"]["primary"] == "#0F766E"
    assert response.headers["x-business-id"] == str(owner.business_account_id)
    assert response.headers["x-brand-name"] == "Palm Stays"


def test_inactive_business_is_not_served(client, make_business):
    pending = make_business(status="pending")

    response = client.get("/api/tenant", headers=tenant_host(pending))

    assert response.status_code == 404
    assert "x-business-id" not in response.headers


def test_tenant_host_is_kept_in_the_portal(client, owner):
    home = client.get("/", headers=tenant_host(owner), follow_redirects=False)
    assert home.status_code == 307
    assert home.headers["location"] == LOGIN_PATH
    assert home.headers["x-business-id"] == str(owner.business_account_id)

    admin = client.get("/api/admin/businesses", headers=tenant_host(owner), follow_redirects=False)
    assert admin.status_code == 307

    health = client.get("/health", headers=tenant_host(owner))
    assert health.status_code == 200


def test_unknown_tenant_redirects_outside_development(client, monkeypatch):
    monkeypatch.setattr(tenant_middleware, "IS_DEVELOPMENT", False)

    response = client.get(
        "/api/tenant", headers={"x-forwarded-host": "ghost.infiniatransfers.com"}, follow_redirects=False
    )

    assert response.status_code == 307
    assert response.headers["location"] == "https://infiniatransfers.com/business-not-found"


# ============================================================================
# CUSTOM DOMAINS
# ============================================================================


def test_custom_domain_lifecycle(client, db, owner, owner_headers, monkeypatch):
    configured = client.post(
        "/api/business/domain", json={"domain": "https://Bookings.PalmHotel.com/home"}, headers=owner_headers
    )
    assert configured.status_code == 200
    body = configured.json()
    assert body["custom_domain"] == "bookings.palmhotel.com"
    assert body["custom_domain_verified"] is False
    assert len(body["dns_records"]) == 2

    # Unverified domains do not resolve
    unverified = client.get("/api/tenant", headers={"x-forwarded-host": "bookings.palmhotel.com"})
    assert unverified.status_code == 404

    monkeypatch.setattr(
        domain_utils,
        "check_domain_dns",
        lambda domain, token: {"txt_verified": True, "cname_verified": True, "cname_target": "cname.vercel-dns.com"},
    )
    verified = client.post("/api/business/domain/verify", headers=owner_headers)
    assert verified.json()["custom_domain_verified"] is True

    tenant = client.get("/api/tenant", headers={"x-forwarded-host": "bookings.palmhotel.com"}).json()
    assert tenant["business"]["custom_domain"] == "bookings.palmhotel.com"

    removed = client.delete("/api/business/domain", headers=owner_headers)
    assert removed.json()["custom_domain"] is None


def test_custom_domain_rules(client, make_business, auth_headers):
    first = make_business()
    second = make_business()
    client.post("/api/business/domain", json={"domain": "book.sharedhost.com"}, headers=auth_headers(first.auth_user_id))

    taken = client.post(
        "/api/business/domain", json={"domain": "book.sharedhost.com"}, headers=auth_headers(second.auth_user_id)
    )
    assert taken.status_code == 409

    invalid = client.post("/api/business/domain", json={"domain": "not a domain"}, headers=auth_headers(second.auth_user_id))
    assert invalid.status_code == 400

    platform = client.post(
        "/api/business/domain", json={"domain": "mine.infiniatransfers.com"}, headers=auth_headers(second.auth_user_id)
    )
    assert platform.status_code == 400


def test_domain_management_is_owner_only(client, db, owner, auth_headers):
    db.add(
        BusinessUser(
            business_account_id=owner.business_account_id,
            auth_user_id="staff-1",
            email="concierge@palmhotel.com",
            role="staff",
        )
    )
    db.commit()

    response = client.get("/api/business/domain", headers=auth_headers("staff-1"))
    assert response.status_code == 403
