from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException

from app.domain.billing.dodo_service import dodo_service
from app.domain.wallet.exceptions import (
    InsufficientBalanceError,
    SpendingLimitExceededError,
    WalletFrozenError,
)
from app.domain.wallet.service import WalletService
from app.models_wallet import AdminWalletAuditLog, BusinessNotification, WalletTransaction


def notifications_of(db, account_id, type):
    return (
        db.query(BusinessNotification)
        .filter(BusinessNotification.business_account_id == account_id, BusinessNotification.type == type)
        .all()
    )


# ============================================================================
# LEDGER
# ============================================================================


def test_credit_updates_balance_and_ledger(db, owner):
    account_id = owner.business_account_id

    transaction = WalletService(db).credit(account_id, "250.50", "credit_added", "Manual top-up")

    assert transaction.amount == Decimal("250.50")
    assert transaction.balance_after == Decimal("1250.50")
    assert owner.business_account.wallet_balance == Decimal("1250.50")


def test_recharge_payment_is_credited_once(db, owner):
    account_id = owner.business_account_id
    metadata = {"type": "wallet_recharge", "business_account_id": str(account_id), "amount": "100.00"}
    wallet = WalletService(db)

    first = wallet.record_recharge_payment("pay_abc123", metadata)
    second = wallet.record_recharge_payment("pay_abc123", metadata)

    assert first.id == second.id
    assert db.query(WalletTransaction).filter(WalletTransaction.payment_id == "pay_abc123").count() == 1
    db.expire_all()
    assert owner.business_account.wallet_balance == Decimal("1100.00")
    assert len(notifications_of(db, account_id, "transaction_completed")) == 1


def test_recharge_payment_with_bad_metadata_is_rejected(db, owner):
    with pytest.raises(HTTPException) as exc:
        WalletService(db).record_recharge_payment("pay_bad", {"amount": "10"})
    assert exc.value.status_code == 400


def test_frozen_wallet_accepts_credits(db, make_business):
    owner = make_business(wallet_frozen=True, wallet_frozen_reason="Chargeback investigation")

    transaction = WalletService(db).credit(owner.business_account_id, 40, "refund", "Refund")

    assert transaction.balance_after == Decimal("1040.00")


def test_debit_refuses_insufficient_balance(db, make_business):
    owner = make_business(balance="50.00")

    with pytest.raises(InsufficientBalanceError) as exc:
        WalletService(db).apply_debit(owner.business_account_id, 80, "Booking")
    db.rollback()

    error = exc.value.to_http()
    assert error.status_code == 402
    assert error.detail["code"] == "insufficient_balance"
    assert error.detail["shortfall"] == 30.0
    assert owner.business_account.wallet_balance == Decimal("50.00")


def test_frozen_check_comes_before_balance_check(db, make_business):
    owner = make_business(balance="0.00", wallet_frozen=True)

    with pytest.raises(WalletFrozenError):
        WalletService(db).apply_debit(owner.business_account_id, 10, "Booking")
    db.rollback()


def test_debit_requires_active_account(db, make_business):
    owner = make_business(status="suspended")

    with pytest.raises(HTTPException) as exc:
        WalletService(db).debit(owner.business_account_id, 10, "Booking")

    assert exc.value.status_code == 403
    assert exc.value.detail["code"] == "business_suspended"


def test_transaction_limit(db, make_business):
    owner = make_business(spending_limits_enabled=True, max_transaction_amount=Decimal("100.00"))

    with pytest.raises(SpendingLimitExceededError) as exc:
        WalletService(db).apply_debit(owner.business_account_id, 150, "Booking")
    db.rollback()

    assert exc.value.limit_type == "transaction"
    assert exc.value.to_http().status_code == 403


def test_daily_limit_counts_spend_so_far(db, make_business):
    owner = make_business(spending_limits_enabled=True, max_daily_spend=Decimal("200.00"))
    account_id = owner.business_account_id
    wallet = WalletService(db)

    wallet.debit(account_id, 150, "Booking 1")
    with pytest.raises(HTTPException) as exc:
        wallet.debit(account_id, 60, "Booking 2")

    assert exc.value.status_code == 403
    assert exc.value.detail["code"] == "spending_limit_exceeded"
    assert exc.value.detail["limit_type"] == "daily"
    assert exc.value.detail["remaining"] == 50.0
    assert len(notifications_of(db, account_id, "spending_limit_reached")) == 1
    db.expire_all()
    assert owner.business_account.wallet_balance == Decimal("850.00")


def test_monthly_limit(db, make_business):
    owner = make_business(
        spending_limits_enabled=True, max_daily_spend=Decimal("500.00"), max_monthly_spend=Decimal("300.00")
    )

    with pytest.raises(SpendingLimitExceededError) as exc:
        WalletService(db).apply_debit(owner.business_account_id, 350, "Booking")
    db.rollback()

    assert exc.value.limit_type == "monthly"
    assert exc.value.details["remaining"] == Decimal("300.00")


@pytest.mark.parametrize(
    "limits, expected",
    [
        ({"max_transaction_amount": "100.00", "max_daily_spend": "50.00", "max_monthly_spend": "50.00"}, "transaction"),
        ({"max_daily_spend": "100.00", "max_monthly_spend": "100.00"}, "daily"),
    ],
)
def test_limit_check_order(db, make_business, limits, expected):
    owner = make_business(spending_limits_enabled=True, **{k: Decimal(v) for k, v in limits.items()})

    with pytest.raises(SpendingLimitExceededError) as exc:
        WalletService(db).apply_debit(owner.business_account_id, 150, "Booking")
    db.rollback()

    assert exc.value.limit_type == expected


def test_refunds_do_not_reduce_spend(db, make_business):
    owner = make_business(spending_limits_enabled=True, max_daily_spend=Decimal("200.00"))
    account_id = owner.business_account_id
    wallet = WalletService(db)

    wallet.debit(account_id, 150, "Booking 1")
    wallet.credit(account_id, 150, "refund", "Booking 1 cancelled")

    account = owner.business_account
    db.refresh(account)
    spending = wallet.current_spending(account)
    assert spending["daily_spent"] == 150.0
    assert spending["daily_remaining"] == 50.0

    with pytest.raises(HTTPException) as exc:
        wallet.debit(account_id, 60, "Booking 2")
    assert exc.value.detail["limit_type"] == "daily"


def test_limits_are_ignored_when_disabled(db, make_business):
    owner = make_business(spending_limits_enabled=False, max_transaction_amount=Decimal("10.00"))

    transaction = WalletService(db).debit(owner.business_account_id, 100, "Booking")

    assert transaction.amount == Decimal("-100.00")


def test_low_balance_alert_fires_once_on_crossing(db, make_business):
    owner = make_business(balance="150.00")
    account_id = owner.business_account_id
    wallet = WalletService(db)

    wallet.debit(account_id, 60, "Booking 1")
    assert len(notifications_of(db, account_id, "low_balance")) == 1
    assert len(wallet.notifier.outbox) == 1

    wallet.debit(account_id, 10, "Booking 2")
    assert len(notifications_of(db, account_id, "low_balance")) == 1


def test_monthly_statement_balances(db, owner):
    wallet = WalletService(db)
    wallet.credit(owner.business_account_id, 100, "credit_added", "Top-up")
    wallet.debit(owner.business_account_id, 30, "Booking")

    now = db.query(WalletTransaction).first().created_at
    statement = wallet.monthly_statement(owner.business_account, now.year, now.month)

    assert statement["opening_balance"] == Decimal("0.00")
    assert statement["closing_balance"] == Decimal("1070.00")
    assert len(statement["transactions"]) == 2


def test_statement_period_validation(db):
    with pytest.raises(HTTPException) as exc:
        WalletService(db).statement_period(2024, 13)
    assert exc.value.status_code == 400


# ============================================================================
# BUSINESS ENDPOINTS
# ============================================================================


def test_wallet_summary(client, owner_headers):
    response = client.get("/api/business/wallet", headers=owner_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["balance"] == 1000.0
    assert body["currency"] == "USD"
    assert body["formatted_balance"] == "$1,000.00"
    assert body["is_frozen"] is False


def test_transactions_list_and_export(client, db, owner, owner_headers):
    WalletService(db).credit(owner.business_account_id, 75, "credit_added", "Top-up")

    listed = client.get("/api/business/wallet/transactions", headers=owner_headers).json()
    assert listed["total"] == 1
    assert listed["transactions"][0]["label"]

    exported = client.get("/api/business/wallet/transactions/export", headers=owner_headers)
    assert exported.status_code == 200
    assert exported.headers["content-type"].startswith("text/csv")
    assert exported.text.splitlines()[0].startswith("ID,Date,Type")


def test_recharge_checkout_converts_to_wallet_currency(client, owner_headers, monkeypatch):
    checkout = AsyncMock(return_value={"session_id": "cs_1", "checkout_url": "https://checkout.dodopayments.com/cs_1"})
    monkeypatch.setattr(dodo_service, "is_available", lambda: True)
    monkeypatch.setattr(dodo_service, "create_checkout_session", checkout)

    response = client.post(
        "/api/business/wallet/recharge", json={"amount": 100, "currency": "EUR"}, headers=owner_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["currency"] == "EUR"
    assert body["wallet_currency"] == "USD"
    assert body["credit_amount"] == 108.0
    metadata = checkout.await_args.kwargs["metadata"]
    assert metadata["type"] == "wallet_recharge"
    assert metadata["amount"] == Decimal("108.00")


def test_recharge_unavailable_without_payments(client, owner_headers):
    response = client.post("/api/business/wallet/recharge", json={"amount": 100}, headers=owner_headers)
    assert response.status_code == 503


def test_recharge_amount_bounds(client, owner_headers):
    response = client.post("/api/business/wallet/recharge", json={"amount": 5}, headers=owner_headers)
    assert response.status_code == 422


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================


def test_freeze_and_unfreeze(client, db, owner, owner_headers, admin, admin_headers):
    url = f"/api/admin/businesses/{owner.business_account_id}/wallet/freeze"

    frozen = client.post(url, json={"reason": "Suspicious activity reported"}, headers=admin_headers)
    assert frozen.status_code == 200
    assert frozen.json()["is_frozen"] is True

    again = client.post(url, json={"reason": "Suspicious activity reported"}, headers=admin_headers)
    assert again.status_code == 409

    view = client.get(f"/api/admin/businesses/{owner.business_account_id}/wallet", headers=admin_headers).json()
    assert view["is_frozen"] is True
    assert view["frozen_by"]["id"] == admin.id

    unfrozen = client.delete(url, headers=admin_headers)
    assert unfrozen.status_code == 200
    assert unfrozen.json()["is_frozen"] is False

    actions = [a.action for a in db.query(AdminWalletAuditLog).order_by(AdminWalletAuditLog.id)]
    assert actions == ["freeze_wallet", "unfreeze_wallet"]


def test_freeze_reason_is_required(client, owner, admin_headers):
    response = client.post(
        f"/api/admin/businesses/{owner.business_account_id}/wallet/freeze",
        json={"reason": "short"},
        headers=admin_headers,
    )
    assert response.status_code == 422


def test_adjust_balance(client, db, owner, admin_headers):
    url = f"/api/admin/businesses/{owner.business_account_id}/wallet/adjust"

    credited = client.post(url, json={"amount": 50, "reason": "Goodwill credit for delay"}, headers=admin_headers)
    assert credited.status_code == 200
    assert credited.json()["transaction"]["balance_after"] == 1050.0

    negative = client.post(
        url, json={"amount": -2000, "reason": "Correction of duplicate top-up"}, headers=admin_headers
    )
    assert negative.status_code == 409
    assert negative.json()["detail"]["code"] == "negative_balance"

    db.expire_all()
    assert owner.business_account.wallet_balance == Decimal("1050.00")


def test_spending_limits_admin(client, owner, admin_headers):
    url = f"/api/admin/businesses/{owner.business_account_id}/wallet/limits"

    updated = client.put(
        url,
        json={"enabled": True, "max_transaction_amount": 500, "max_daily_spend": 1000, "reason": "Risk review"},
        headers=admin_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["spending_limits"]["max_transaction_amount"] == 500.0

    removed = client.delete(url, headers=admin_headers)
    assert removed.json()["spending_limits"]["enabled"] is False


def test_admin_wallet_routes_require_admin(client, owner, owner_headers):
    response = client.get(f"/api/admin/businesses/{owner.business_account_id}/wallet", headers=owner_headers)
    assert response.status_code == 403


def test_transaction_invoice_pdf(client, db, owner, owner_headers, make_business, auth_headers):
    transaction = WalletService(db).credit(owner.business_account_id, 75, "credit_added", "Top-up")

    response = client.get(f"/api/business/wallet/transactions/{transaction.id}/invoice", headers=owner_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert f"invoice_{transaction.id}.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")

    other = make_business()
    foreign = client.get(
        f"/api/business/wallet/transactions/{transaction.id}/invoice", headers=auth_headers(other.auth_user_id)
    )
    assert foreign.status_code == 404


def test_monthly_statement_pdf(client, owner_headers):
    response = client.get("/api/business/wallet/statements/2025/2", headers=owner_headers)

    assert response.status_code == 200
    assert "wallet_statement_2025_02.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")

    assert client.get("/api/business/wallet/statements/2025/13", headers=owner_headers).status_code == 400


def test_admin_can_run_auto_recharge(client, admin_headers):
    response = client.post("/api/admin/auto-recharge/process", headers=admin_headers)
    assert response.json() == {"processed": 0, "succeeded": 0, "failed": 0}
