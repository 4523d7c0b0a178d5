"""Wallet router - Business portal wallet endpoints"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...auth import get_business_user, require_business_owner
from ...database import get_db
from ...models import BusinessUser
from ...rate_limiter import create_rate_limiter
from ...shared.validators import to_naive_utc
from .auto_recharge import AutoRechargeService
from .schemas import AutoRechargeSettingsUpdate, RechargeRequest, RechargeResponse
from .service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/business/wallet", tags=["Business Wallet"])

recharge_rate_limiter = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="wallet_recharge")


def get_wallet_service(db: Session = Depends(get_db)) -> WalletService:
    """Dependency injection for WalletService"""
    return WalletService(db)


def _pdf(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# BALANCE & TRANSACTIONS
# ============================================================================


@router.get("")
async def get_wallet(
    business_user: BusinessUser = Depends(get_business_user),
    service: WalletService = Depends(get_wallet_service),
):
    """Balance, limits, current spending, recent transactions and 30-day stats"""
    return service.get_wallet_summary(business_user.business_account)


@router.get("/transactions")
async def list_transactions(
    transaction_type: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    business_user: BusinessUser = Depends(get_business_user),
    service: WalletService = Depends(get_wallet_service),
):
    return service.list_transactions(
        business_user.business_account_id,
        transaction_type,
        to_naive_utc(date_from),
        to_naive_utc(date_to),
        page,
        limit,
    )


@router.get("/transactions/export")
async def export_transactions(
    transaction_type: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    business_user: BusinessUser = Depends(get_business_user),
    service: WalletService = Depends(get_wallet_service),
):
    """Export transactions as CSV with the same filters as the list"""
    return service.export_transactions_csv(
        business_user.business_account, transaction_type, to_naive_utc(date_from), to_naive_utc(date_to)
    )


@router.get("/transactions/{transaction_id}/invoice")
async def transaction_invoice(
    transaction_id: int,
    business_user: BusinessUser = Depends(get_business_user),
    service: WalletService = Depends(get_wallet_service),
):
    pdf, filename = service.transaction_invoice_pdf(business_user.business_account, transaction_id)
    return _pdf(pdf, filename)


@router.get("/statements/{year}/{month}")
async def monthly_statement(
    year: int,
    month: int,
    business_user: BusinessUser = Depends(get_business_user),
    service: WalletService = Depends(get_wallet_service),
):
    pdf, filename = service.monthly_statement_pdf(business_user.business_account, year, month)
    return _pdf(pdf, filename)


# ============================================================================
# RECHARGE
# ============================================================================


@router.post("/recharge", response_model=RechargeResponse, dependencies=[Depends(recharge_rate_limiter)])
async def create_recharge(
    data: RechargeRequest,
    owner: BusinessUser = Depends(require_business_owner),
    service: WalletService = Depends(get_wallet_service),
):
    """Start a hosted checkout; the wallet is credited by the payment webhook"""
    return await service.create_recharge_checkout(owner, data.amount, data.currency)


@router.get("/auto-recharge")
async def get_auto_recharge(
    owner: BusinessUser = Depends(require_business_owner),
    db: Session = Depends(get_db),
):
    return AutoRechargeService(db).get_settings(owner.business_account_id)


@router.put("/auto-recharge")
async def update_auto_recharge(
    data: AutoRechargeSettingsUpdate,
    background_tasks: BackgroundTasks,
    owner: BusinessUser = Depends(require_business_owner),
    db: Session = Depends(get_db),
):
    service = AutoRechargeService(db)
    settings = service.update_settings(owner.business_account_id, data)

    # Balance may already be under the new threshold
    account = owner.business_account
    db.refresh(account)
    if service.maybe_trigger(account):
        db.commit()
    background_tasks.add_task(service.notifier.flush)
    return settings
