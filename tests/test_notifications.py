import asyncio
from unittest.mock import AsyncMock

import pytest

from app.models import BusinessUser
from app.services.notification_service import Notifier

URL = "/api/business/notifications"


@pytest.fixture
def inbox(db, owner):
    """Three notifications for the owner, oldest first"""
    notifier = Notifier(db)
    account = owner.business_account
    created = [
        notifier.in_app(account, "booking", "booking_created", "Booking created", "BB-1 confirmed"),
        notifier.in_app(account, "payment", "transaction_completed", "Wallet credited", "$100.00 added"),
        notifier.in_app(account, "account", "business_approved", "Welcome", "Your account is active"),
    ]
    db.commit()
    return [n.id for n in created]


def test_list_notifications(client, inbox, owner_headers):
    body = client.get(URL, headers=owner_headers).json()

    assert body["total"] == 3
    assert body["unread_count"] == 3
    assert [n["id"] for n in body["notifications"]] == list(reversed(inbox))


def test_mark_read(client, inbox, owner_headers):
    read = client.post(f"{URL}/{inbox[0]}/read", headers=owner_headers)

    assert read.json()["is_read"] is True
    assert client.get(f"{URL}/unread-count", headers=owner_headers).json() == {"unread_count": 2}

    unread = client.get(URL, params={"unread_only": True}, headers=owner_headers).json()
    assert inbox[0] not in [n["id"] for n in unread["notifications"]]


def test_mark_read_of_other_business(client, inbox, make_business, auth_headers):
    other = make_business()

    response = client.post(f"{URL}/{inbox[0]}/read", headers=auth_headers(other.auth_user_id))

    assert response.status_code == 404


def test_read_all(client, inbox, owner_headers):
    assert client.post(f"{URL}/read-all", headers=owner_headers).json() == {"updated": 3}
    assert client.get(f"{URL}/unread-count", headers=owner_headers).json() == {"unread_count": 0}


def test_preferences(client, owner_headers):
    defaults = client.get(f"{URL}/preferences", headers=owner_headers).json()
    assert defaults["email_low_balance"] is True
    assert defaults["low_balance_threshold"] == 100.0

    updated = client.put(
        f"{URL}/preferences",
        json={"email_transactions": False, "low_balance_threshold": 250},
        headers=owner_headers,
    ).json()["preferences"]
    assert updated["email_transactions"] is False
    assert updated["email_low_balance"] is True
    assert updated["low_balance_threshold"] == 250.0


def test_staff_cannot_change_preferences(client, db, owner, auth_headers):
    db.add(
        BusinessUser(
            business_account_id=owner.business_account_id,
            auth_user_id="staff-1",
            email="concierge@palmhotel.com",
            role="staff",
        )
    )
    db.commit()

    assert client.get(f"{URL}/preferences", headers=auth_headers("staff-1")).status_code == 200
    assert client.put(f"{URL}/preferences", json={"email_transactions": False}, headers=auth_headers("staff-1")).status_code == 403


def test_notifier_flush_survives_failed_email(db, owner):
    notifier = Notifier(db)
    ok = AsyncMock(return_value={"status": "sent"})
    broken = AsyncMock(side_effect=RuntimeError("provider down"))
    notifier.email_owner(owner.business_account, ok, "Palm Hotel")
    notifier.email(broken, "ops@palmhotel.com")

    result = asyncio.run(notifier.flush())

    assert result == {"sent": 1, "failed": 1}
    ok.assert_awaited_once_with(owner.email, "Palm Hotel")
    assert notifier.outbox == []
