"""Admin wallet router - Freeze, spending limits and balance adjustments"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import Profile
from .auto_recharge import AutoRechargeService
from .schemas import BalanceAdjustment, FreezeRequest, SpendingLimitsUpdate, UnfreezeRequest
from .service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin Wallet"])


def get_wallet_service(db: Session = Depends(get_db)) -> WalletService:
    return WalletService(db)


@router.get("/businesses/{business_id}/wallet")
async def get_business_wallet(
    business_id: int,
    admin: Profile = Depends(require_admin),
    service: WalletService = Depends(get_wallet_service),
):
    return service.get_admin_wallet_view(business_id)


@router.put("/businesses/{business_id}/wallet/limits")
async def set_spending_limits(
    business_id: int,
    data: SpendingLimitsUpdate,
    admin: Profile = Depends(require_admin),
    service: WalletService = Depends(get_wallet_service),
):
    return service.set_spending_limits(business_id, admin, data)


@router.delete("/businesses/{business_id}/wallet/limits")
async def remove_spending_limits(
    business_id: int,
    admin: Profile = Depends(require_admin),
    service: WalletService = Depends(get_wallet_service),
):
    return service.remove_spending_limits(business_id, admin)


@router.post("/businesses/{business_id}/wallet/freeze")
async def freeze_wallet(
    business_id: int,
    data: FreezeRequest,
    background_tasks: BackgroundTasks,
    admin: Profile = Depends(require_admin),
    service: WalletService = Depends(get_wallet_service),
):
    result = service.freeze(business_id, admin, data.reason)
    background_tasks.add_task(service.notifier.flush)
    return result


@router.delete("/businesses/{business_id}/wallet/freeze")
async def unfreeze_wallet(
    business_id: int,
    background_tasks: BackgroundTasks,
    data: UnfreezeRequest = UnfreezeRequest(),
    admin: Profile = Depends(require_admin),
    service: WalletService = Depends(get_wallet_service),
):
    result = service.unfreeze(business_id, admin, data.reason)
    background_tasks.add_task(service.notifier.flush)
    return result


@router.post("/businesses/{business_id}/wallet/adjust")
async def adjust_balance(
    business_id: int,
    data: BalanceAdjustment,
    admin: Profile = Depends(require_admin),
    service: WalletService = Depends(get_wallet_service),
):
    return service.adjust_balance(business_id, admin, data)


@router.post("/auto-recharge/process")
async def process_auto_recharge(
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Run pending auto-recharge attempts now instead of waiting for the worker"""
    logger.info(f"🔋 Admin {admin.id} triggered auto-recharge processing")
    return await AutoRechargeService(db).process_pending()
