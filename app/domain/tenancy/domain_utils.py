"""Tenancy helpers - subdomain generation, domain validation and DNS checks"""

import logging
import re
import secrets
import string
import time
from typing import Optional

import dns.exception
import dns.resolver

from ...config import (
    DOMAIN_VERIFICATION_PREFIX,
    IS_DEVELOPMENT,
    PLATFORM_DOMAIN,
    VERCEL_CNAME,
)

logger = logging.getLogger(__name__)

MAX_LABEL_LENGTH = 63

RESERVED_SUBDOMAINS = {
    "www",
    "api",
    "app",
    "admin",
    "customer",
    "vendor",
    "mail",
    "ftp",
    "localhost",
    "staging",
    "dev",
    "test",
    "demo",
}

SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$", re.IGNORECASE)
DOMAIN_PATTERN = re.compile(
    r"^(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z0-9][a-z0-9-]{0,61}[a-z0-9]$",
    re.IGNORECASE,
)


def generate_subdomain(business_name: str) -> str:
    """
    URL-safe DNS label from a business name.
    "Acme Hotel & Resort" -> "acme-hotel-resort"
    """
    label = re.sub(r"[^a-z0-9]+", "-", business_name.lower().strip()).strip("-")
    return label[:MAX_LABEL_LENGTH].rstrip("-")


def is_reserved_subdomain(subdomain: str) -> bool:
    return subdomain.lower() in RESERVED_SUBDOMAINS


def is_valid_subdomain(subdomain: Optional[str]) -> bool:
    return bool(subdomain) and bool(SUBDOMAIN_PATTERN.match(subdomain)) and not is_reserved_subdomain(subdomain)


def is_valid_domain(domain: Optional[str]) -> bool:
    if not domain or not 4 <= len(domain) <= 253:
        return False
    return bool(DOMAIN_PATTERN.match(domain))


def is_platform_host(domain: str) -> bool:
    domain = domain.lower()
    return domain == PLATFORM_DOMAIN or domain.endswith(f".{PLATFORM_DOMAIN}")


def strip_port(host: str) -> str:
    return (host or "").split(":", 1)[0].strip().lower().rstrip(".")


def extract_subdomain(host: str, platform_domain: str = PLATFORM_DOMAIN) -> Optional[str]:
    """
    Tenant label of a platform host: "acme.infiniatransfers.com" -> "acme".
    Local development hosts like "acme.localhost" are accepted too.
    Returns None for the apex, "www" and foreign hosts.
    """
    host = strip_port(host)
    for base in (platform_domain, "localhost"):
        suffix = f".{base}"
        if host.endswith(suffix):
            label = host[: -len(suffix)]
            if label and "." not in label and label != "www":
                return label
    return None


def generate_verification_token() -> str:
    random_part = "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(13))
    return f"verify-{int(time.time() * 1000)}-{random_part}"


def verification_record_name(domain: str) -> str:
    return f"{DOMAIN_VERIFICATION_PREFIX}.{domain}"


def build_subdomain_url(subdomain: str, path: str = "") -> str:
    protocol = "http" if IS_DEVELOPMENT else "https"
    return f"{protocol}://{subdomain}.{PLATFORM_DOMAIN}{path}"


def dns_instructions(domain: str, token: Optional[str]) -> list[dict]:
    """DNS records a business must create to connect a custom domain"""
    return [
        {
            "type": "CNAME",
            "name": domain,
            "value": VERCEL_CNAME,
            "description": "Points your domain at the booking portal",
        },
        {
            "type": "TXT",
            "name": verification_record_name(domain),
            "value": token or "",
            "description": "Verification token proving domain ownership",
        },
    ]


def lookup_txt_records(name: str) -> list[str]:
    try:
        answers = dns.resolver.resolve(name, "TXT")
    except dns.exception.DNSException as e:
        logger.debug(f"TXT lookup failed for {name}: {e}")
        return []

    values = []
    for answer in answers:
        values.append(
            "".join(part.decode() if isinstance(part, bytes) else str(part) for part in answer.strings)
        )
    return values


def lookup_cname(name: str) -> Optional[str]:
    try:
        answers = dns.resolver.resolve(name, "CNAME")
    except dns.exception.DNSException as e:
        logger.debug(f"CNAME lookup failed for {name}: {e}")
        return None

    for answer in answers:
        return str(answer.target).rstrip(".").lower()
    return None


def check_domain_dns(domain: str, token: str) -> dict:
    """Return which of the required records are in place"""
    txt_values = lookup_txt_records(verification_record_name(domain))
    cname_target = lookup_cname(domain)
    return {
        "txt_verified": token in txt_values,
        "cname_verified": cname_target == VERCEL_CNAME.lower(),
        "cname_target": cname_target,
    }
