"""Business service - Signup, portal profile and admin lifecycle management"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...email_service import send_business_status_email
from ...models import BusinessAccount, BusinessUser, Profile
from ...services.notification_service import Notifier
from ...shared.utils import pagination_meta, pagination_params, to_money, utcnow
from ..bookings.repository import BookingRepository
from ..bookings.service import BOOKING_STATUSES
from ..tenancy import domain_utils
from ..tenancy.service import invalidate_account_hosts
from ..wallet.service import WalletService
from .repository import BusinessRepository
from .schemas import BrandingUpdate, BusinessSignup

logger = logging.getLogger(__name__)

FALLBACK_SUBDOMAIN = "business"

# action -> (allowed source statuses, target status)
TRANSITIONS = {
    "approve": (("pending",), "active"),
    "reject": (("pending",), "rejected"),
    "suspend": (("active",), "suspended"),
    "reactivate": (("suspended", "inactive"), "active"),
}


def serialize_account(account: BusinessAccount) -> dict:
    return {
        "id": account.id,
        "business_name": account.business_name,
        "business_email": account.business_email,
        "business_phone": account.business_phone,
        "address": account.address,
        "status": account.status,
        "status_reason": account.status_reason,
        "rejection_reason": account.rejection_reason,
        "subdomain": account.subdomain,
        "subdomain_url": domain_utils.build_subdomain_url(account.subdomain) if account.subdomain else None,
        "custom_domain": account.custom_domain,
        "custom_domain_verified": account.custom_domain_verified,
        "brand_name": account.brand_name,
        "logo_url": account.logo_url,
        "theme_config": account.theme_config or {},
        "preferred_currency": account.preferred_currency,
        "wallet_balance": float(to_money(account.wallet_balance)),
        "wallet_frozen": account.wallet_frozen,
        "approved_at": account.approved_at.isoformat() if account.approved_at else None,
        "created_at": account.created_at.isoformat() if account.created_at else None,
    }


def serialize_user(user: BusinessUser) -> dict:
    return {
        "id": user.id,
        "business_account_id": user.business_account_id,
        "full_name": user.full_name,
        "email": user.email,
        "role": user.role,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


class BusinessService:
    """Business portal self-service"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BusinessRepository()

    def unique_subdomain(self, business_name: str) -> str:
        base = domain_utils.generate_subdomain(business_name)
        if not domain_utils.is_valid_subdomain(base):
            base = FALLBACK_SUBDOMAIN

        candidate, suffix = base, 1
        while self.repo.subdomain_taken(self.db, candidate):
            suffix += 1
            tail = f"-{suffix}"
            candidate = f"{base[:domain_utils.MAX_LABEL_LENGTH - len(tail)].rstrip('-')}{tail}"
        return candidate

    def signup(self, profile: Profile, data: BusinessSignup) -> dict:
        if self.repo.get_user_by_auth_id(self.db, profile.auth_user_id):
            raise HTTPException(status_code=409, detail="You already belong to a business account")

        account = BusinessAccount(
            business_name=data.business_name,
            business_email=data.business_email,
            business_phone=data.business_phone,
            address=data.address,
            preferred_currency=data.preferred_currency,
            subdomain=self.unique_subdomain(data.business_name),
            status="pending",
        )
        self.db.add(account)
        self.db.flush()

        owner = BusinessUser(
            business_account_id=account.id,
            auth_user_id=profile.auth_user_id,
            full_name=data.full_name or profile.full_name,
            email=profile.email or data.business_email,
            role="owner",
        )
        self.db.add(owner)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Business signup conflict for {profile.auth_user_id}: {e}")
            raise HTTPException(status_code=409, detail="Business account could not be created, please retry") from e

        self.db.refresh(account)
        self.db.refresh(owner)
        logger.info(f"✅ Business {account.id} ({account.subdomain}) signed up, pending approval")
        return {"business": serialize_account(account), "user": serialize_user(owner)}

    def get_me(self, business_user: BusinessUser) -> dict:
        return {
            "user": serialize_user(business_user),
            "business": serialize_account(business_user.business_account),
        }

    def update_branding(self, owner: BusinessUser, data: BrandingUpdate) -> dict:
        account = owner.business_account
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(account, field, value)
        self.db.commit()
        self.db.refresh(account)
        invalidate_account_hosts(account)
        logger.info(f"🎨 Business {account.id} updated branding")
        return serialize_account(account)

    def update_preferred_currency(self, owner: BusinessUser, currency: str) -> dict:
        account = owner.business_account
        if currency == account.preferred_currency:
            return serialize_account(account)
        if to_money(account.wallet_balance) != 0:
            raise HTTPException(
                status_code=409,
                detail={
                    "code": "wallet_not_empty",
                    "message": "The wallet currency can only change while the balance is zero",
                    "balance": float(to_money(account.wallet_balance)),
                },
            )

        account.preferred_currency = currency
        self.db.commit()
        self.db.refresh(account)
        invalidate_account_hosts(account)
        logger.info(f"💱 Business {account.id} switched currency to {currency}")
        return serialize_account(account)


class BusinessAdminService:
    """Admin approval, suspension and overview of business accounts"""

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.repo = BusinessRepository()
        self.notifier = notifier or Notifier(db)

    def _account(self, business_id: int) -> BusinessAccount:
        account = self.repo.get_account(self.db, business_id)
        if not account:
            raise HTTPException(status_code=404, detail="Business not found")
        return account

    def list_businesses(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        page, limit, offset = pagination_params(page, limit)
        query = self.repo.accounts_query(self.db, status, search)
        total = query.count()
        rows = (
            query.order_by(BusinessAccount.created_at.desc(), BusinessAccount.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {
            "businesses": [serialize_account(a) for a in rows],
            **pagination_meta(page, limit, total),
        }

    def get_business(self, business_id: int) -> dict:
        account = self._account(business_id)
        counts = BookingRepository.status_counts(self.db, account.id)
        booking_counts = {status: counts.get(status, 0) for status in BOOKING_STATUSES}
        booking_counts["total"] = sum(counts.values())
        return {
            **serialize_account(account),
            "users": [serialize_user(u) for u in self.repo.account_users(self.db, account.id)],
            "wallet": WalletService(self.db).get_wallet_summary(account),
            "booking_counts": booking_counts,
        }

    def change_status(self, business_id: int, action: str, reason: Optional[str] = None) -> dict:
        account = self._account(business_id)
        sources, target = TRANSITIONS[action]
        if account.status not in sources:
            raise HTTPException(
                status_code=409,
                detail=f"Cannot {action} a business that is {account.status}",
            )

        previous = account.status
        account.status = target
        if action == "approve":
            account.approved_at = utcnow()
            account.rejection_reason = None
            if not account.subdomain:
                account.subdomain = BusinessService(self.db).unique_subdomain(account.business_name)
        elif action == "reject":
            account.rejection_reason = reason
        else:
            account.status_reason = reason

        self.db.commit()
        self.db.refresh(account)
        invalidate_account_hosts(account)
        self.notifier.email_owner(
            account, send_business_status_email, account.business_name, target, reason
        )
        logger.info(f"✅ Business {account.id} {previous} -> {target} ({action})")
        return serialize_account(account)

    def bulk_action(self, business_ids: list[int], action: str, reason: Optional[str] = None) -> dict:
        results = []
        for business_id in dict.fromkeys(business_ids):
            try:
                business = self.change_status(business_id, action, reason)
                results.append({"id": business_id, "success": True, "status": business["status"]})
            except HTTPException as e:
                self.db.rollback()
                results.append({"id": business_id, "success": False, "error": e.detail})

        succeeded = sum(1 for r in results if r["success"])
        logger.info(f"📦 Bulk {action}: {succeeded}/{len(results)} businesses updated")
        return {
            "action": action,
            "succeeded": succeeded,
            "failed": len(results) - succeeded,
            "results": results,
        }
