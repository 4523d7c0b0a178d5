"""Tenancy service - Host resolution and custom domain management"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ...cache import get_tenant_cached, invalidate_tenant_cache, set_tenant_cached
from ...config import PLATFORM_DOMAIN, TENANT_CACHE_TTL
from ...models import BusinessAccount, BusinessUser
from ...shared.utils import utcnow
from . import domain_utils

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_COLOR = "#C6AA88"
DEFAULT_SECONDARY_COLOR = "#14B8A6"
DEFAULT_ACCENT_COLOR = "#06B6D4"

# Cached marker for hosts that resolve to no business
NOT_FOUND = {"found": False}


def tenant_hosts(account: BusinessAccount) -> list[str]:
    hosts = []
    if account.subdomain:
        hosts.append(f"{account.subdomain}.{PLATFORM_DOMAIN}")
    if account.custom_domain:
        hosts.append(account.custom_domain)
    return hosts


def invalidate_account_hosts(account: BusinessAccount, *extra: Optional[str]):
    invalidate_tenant_cache(*tenant_hosts(account), *extra)


def serialize_tenant(account: BusinessAccount) -> dict:
    theme = account.theme_config or {}
    return {
        "found": True,
        "id": account.id,
        "business_name": account.business_name,
        "brand_name": account.brand_name or account.business_name,
        "logo_url": account.logo_url,
        "subdomain": account.subdomain,
        "custom_domain": account.custom_domain if account.custom_domain_verified else None,
        "preferred_currency": account.preferred_currency,
        "colors": {
            "primary": theme.get("accent") or DEFAULT_PRIMARY_COLOR,
            "secondary": DEFAULT_SECONDARY_COLOR,
            "accent": DEFAULT_ACCENT_COLOR,
            "dark": theme.get("dark"),
            "light": theme.get("light"),
        },
    }


def classify_host(host: str) -> tuple[str, Optional[str]]:
    """
    ("platform", None), ("subdomain", label) or ("custom", domain).
    Single-label hosts (localhost, container names) and IPs count as platform.
    """
    host = domain_utils.strip_port(host)
    if not host or "." not in host or host.replace(".", "").isdigit():
        return "platform", None
    if host in (PLATFORM_DOMAIN, f"www.{PLATFORM_DOMAIN}"):
        return "platform", None

    label = domain_utils.extract_subdomain(host, PLATFORM_DOMAIN)
    if label:
        return "subdomain", label
    if domain_utils.is_platform_host(host) or host.endswith(".localhost"):
        return "platform", None
    return "custom", host


def resolve_tenant(db: Session, host: str) -> tuple[str, Optional[dict]]:
    """Business branding for a request host; cached per host"""
    kind, value = classify_host(host)
    if kind == "platform":
        return kind, None

    host = domain_utils.strip_port(host)
    cached = get_tenant_cached(host)
    if cached is not None:
        return kind, cached if cached.get("found") else None

    query = db.query(BusinessAccount).filter(BusinessAccount.status == "active")
    if kind == "subdomain":
        account = query.filter(BusinessAccount.subdomain == value).first()
    else:
        account = query.filter(
            func.lower(BusinessAccount.custom_domain) == value,
            BusinessAccount.custom_domain_verified.is_(True),
        ).first()

    tenant = serialize_tenant(account) if account else None
    set_tenant_cached(host, tenant or NOT_FOUND, TENANT_CACHE_TTL)
    if not tenant:
        logger.info(f"🔍 No active business for host {host}")
    return kind, tenant


class DomainService:
    """Custom domain setup for a business owner"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _status(account: BusinessAccount) -> dict:
        return {
            "subdomain": account.subdomain,
            "subdomain_url": domain_utils.build_subdomain_url(account.subdomain) if account.subdomain else None,
            "custom_domain": account.custom_domain,
            "custom_domain_verified": account.custom_domain_verified,
            "domain_verified_at": account.domain_verified_at.isoformat() if account.domain_verified_at else None,
            "dns_records": (
                domain_utils.dns_instructions(account.custom_domain, account.domain_verification_token)
                if account.custom_domain
                else []
            ),
        }

    def get_domain(self, owner: BusinessUser) -> dict:
        return self._status(owner.business_account)

    def configure_custom_domain(self, owner: BusinessUser, domain: str) -> dict:
        account = owner.business_account
        domain = domain_utils.strip_port(domain)
        if not domain_utils.is_valid_domain(domain):
            raise HTTPException(status_code=400, detail="Invalid domain name")
        if domain_utils.is_platform_host(domain):
            raise HTTPException(status_code=400, detail=f"Use your subdomain for {PLATFORM_DOMAIN} addresses")

        taken = (
            self.db.query(BusinessAccount.id)
            .filter(func.lower(BusinessAccount.custom_domain) == domain, BusinessAccount.id != account.id)
            .first()
        )
        if taken:
            raise HTTPException(status_code=409, detail="This domain is already connected to another business")

        previous = account.custom_domain
        account.custom_domain = domain
        account.custom_domain_verified = False
        account.domain_verified_at = None
        account.domain_verification_token = domain_utils.generate_verification_token()
        self.db.commit()
        self.db.refresh(account)
        invalidate_account_hosts(account, previous)
        logger.info(f"🌐 Business {account.id} configured custom domain {domain}")
        return self._status(account)

    def verify_custom_domain(self, owner: BusinessUser) -> dict:
        account = owner.business_account
        if not account.custom_domain or not account.domain_verification_token:
            raise HTTPException(status_code=400, detail="No custom domain configured")

        checks = domain_utils.check_domain_dns(account.custom_domain, account.domain_verification_token)
        if checks["txt_verified"] and not account.custom_domain_verified:
            account.custom_domain_verified = True
            account.domain_verified_at = utcnow()
            self.db.commit()
            self.db.refresh(account)
            invalidate_account_hosts(account)
            logger.info(f"✅ Custom domain {account.custom_domain} verified for business {account.id}")

        return {**self._status(account), **checks}

    def remove_custom_domain(self, owner: BusinessUser) -> dict:
        account = owner.business_account
        previous = account.custom_domain
        if not previous:
            raise HTTPException(status_code=400, detail="No custom domain configured")

        account.custom_domain = None
        account.custom_domain_verified = False
        account.domain_verified_at = None
        account.domain_verification_token = None
        self.db.commit()
        self.db.refresh(account)
        invalidate_account_hosts(account, previous)
        logger.info(f"🗑️ Business {account.id} removed custom domain {previous}")
        return self._status(account)
