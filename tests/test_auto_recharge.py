import asyncio
from decimal import Decimal

import pytest

from app.domain.billing.dodo_service import PaymentGatewayError
from app.domain.wallet.auto_recharge import AutoRechargeService
from app.domain.wallet.service import WalletService
from app.models_wallet import AutoRechargeAttempt, AutoRechargeSettings, BusinessNotification


def enable_auto_recharge(db, owner, **fields):
    values = {
        "enabled": True,
        "threshold_amount": Decimal("100.00"),
        "recharge_amount": Decimal("500.00"),
        "payment_method_id": "pm_1",
        "max_retries": 3,
    }
    values.update(fields)
    db.add(AutoRechargeSettings(business_account_id=owner.business_account_id, **values))
    db.commit()


@pytest.fixture
def low_balance_owner(db, make_business):
    owner = make_business(balance="40.00", dodo_customer_id="cus_1")
    enable_auto_recharge(db, owner)
    return owner


def run(service: AutoRechargeService) -> dict:
    return asyncio.run(service.process_pending())


# ============================================================================
# TRIGGERING
# ============================================================================


def test_trigger_queues_one_attempt(db, low_balance_owner):
    service = AutoRechargeService(db)
    account = low_balance_owner.business_account

    attempt = service.maybe_trigger(account)
    db.commit()

    assert attempt.status == "pending"
    assert attempt.trigger_balance == Decimal("40.00")
    assert attempt.requested_amount == Decimal("500.00")
    assert attempt.idempotency_key.startswith(f"ar-{account.id}-")
    assert service.maybe_trigger(account) is None


def test_no_trigger_above_threshold(db, make_business):
    owner = make_business(balance="150.00")
    enable_auto_recharge(db, owner)

    assert AutoRechargeService(db).maybe_trigger(owner.business_account) is None


def test_no_trigger_when_disabled(db, make_business):
    owner = make_business(balance="10.00")
    enable_auto_recharge(db, owner, enabled=False)

    assert AutoRechargeService(db).maybe_trigger(owner.business_account) is None


def test_debit_below_threshold_queues_attempt(db, make_business):
    owner = make_business(balance="150.00")
    enable_auto_recharge(db, owner)

    WalletService(db).debit(owner.business_account_id, 60, "Booking")

    attempt = db.query(AutoRechargeAttempt).one()
    assert attempt.trigger_balance == Decimal("90.00")


def test_rolled_back_debit_leaves_no_attempt(db, make_business):
    owner = make_business(balance="150.00")
    enable_auto_recharge(db, owner)

    WalletService(db).apply_debit(owner.business_account_id, 60, "Booking")
    assert db.query(AutoRechargeAttempt).count() == 1
    db.rollback()

    assert db.query(AutoRechargeAttempt).count() == 0


# ============================================================================
# PROCESSING
# ============================================================================


def test_process_pending_credits_wallet(db, low_balance_owner, gateway):
    service = AutoRechargeService(db)
    attempt = service.maybe_trigger(low_balance_owner.business_account)
    db.commit()

    result = run(AutoRechargeService(db, gateway=gateway))

    assert result == {"processed": 1, "succeeded": 1, "failed": 0}
    kwargs = gateway.charge_saved_method.await_args.kwargs
    assert kwargs["customer_id"] == "cus_1"
    assert kwargs["payment_method_id"] == "pm_1"
    assert kwargs["idempotency_key"] == f"{attempt.idempotency_key}-0"
    db.expire_all()
    assert attempt.status == "succeeded"
    assert low_balance_owner.business_account.wallet_balance == Decimal("540.00")
    types = [n.type for n in db.query(BusinessNotification)]
    assert "auto_recharge_success" in types


def test_gateway_error_schedules_retry(db, low_balance_owner, gateway):
    gateway.charge_saved_method.side_effect = PaymentGatewayError("Card declined")
    attempt = AutoRechargeService(db).maybe_trigger(low_balance_owner.business_account)
    db.commit()

    result = run(AutoRechargeService(db, gateway=gateway))

    assert result == {"processed": 1, "succeeded": 0, "failed": 1}
    db.expire_all()
    assert attempt.status == "failed"
    assert attempt.retry_count == 1
    assert attempt.error_message == "Card declined"

    # Still due for another attempt
    run(AutoRechargeService(db, gateway=gateway))
    db.expire_all()
    assert attempt.retry_count == 2


def test_exhausted_retries_notify_owner(db, make_business, gateway):
    owner = make_business(balance="40.00", dodo_customer_id="cus_1")
    enable_auto_recharge(db, owner, max_retries=1)
    gateway.charge_saved_method.side_effect = PaymentGatewayError("Card declined")
    AutoRechargeService(db).maybe_trigger(owner.business_account)
    db.commit()

    run(AutoRechargeService(db, gateway=gateway))
    second = run(AutoRechargeService(db, gateway=gateway))

    assert second["processed"] == 0
    failed = db.query(BusinessNotification).filter(BusinessNotification.type == "auto_recharge_failed").all()
    assert len(failed) == 1


def test_missing_customer_fails_without_charging(db, make_business, gateway):
    owner = make_business(balance="40.00")
    enable_auto_recharge(db, owner)
    attempt = AutoRechargeService(db).maybe_trigger(owner.business_account)
    db.commit()

    run(AutoRechargeService(db, gateway=gateway))

    gateway.charge_saved_method.assert_not_awaited()
    db.expire_all()
    assert attempt.status == "failed"


def test_attempt_cancelled_when_settings_disabled(db, low_balance_owner, gateway):
    attempt = AutoRechargeService(db).maybe_trigger(low_balance_owner.business_account)
    db.query(AutoRechargeSettings).update({"enabled": False})
    db.commit()

    run(AutoRechargeService(db, gateway=gateway))

    db.expire_all()
    assert attempt.status == "cancelled"
    gateway.charge_saved_method.assert_not_awaited()


def test_processing_charge_waits_for_webhook(db, low_balance_owner, gateway):
    gateway.charge_saved_method.side_effect = lambda **kwargs: {
        "payment_id": "pay_slow",
        "status": "processing",
        "amount": kwargs["amount"],
    }
    attempt = AutoRechargeService(db).maybe_trigger(low_balance_owner.business_account)
    db.commit()

    result = run(AutoRechargeService(db, gateway=gateway))

    assert result == {"processed": 1, "succeeded": 0, "failed": 0}
    db.expire_all()
    assert attempt.status == "processing"
    assert attempt.payment_id == "pay_slow"


# ============================================================================
# SETTINGS ENDPOINTS
# ============================================================================


def test_settings_defaults(client, owner_headers):
    settings = client.get("/api/business/wallet/auto-recharge", headers=owner_headers).json()
    assert settings["enabled"] is False
    assert settings["threshold_amount"] == 100.0


def test_enabling_requires_payment_method(client, owner_headers):
    response = client.put(
        "/api/business/wallet/auto-recharge",
        json={"enabled": True, "threshold_amount": 100, "recharge_amount": 500},
        headers=owner_headers,
    )
    assert response.status_code == 422


def test_raising_threshold_above_balance_queues_attempt(client, db, owner_headers):
    response = client.put(
        "/api/business/wallet/auto-recharge",
        json={"enabled": True, "threshold_amount": 2000, "recharge_amount": 500, "payment_method_id": "pm_1"},
        headers=owner_headers,
    )

    assert response.status_code == 200
    assert response.json()["payment_method_id"] == "pm_1"
    attempt = db.query(AutoRechargeAttempt).one()
    assert attempt.trigger_balance == Decimal("1000.00")
