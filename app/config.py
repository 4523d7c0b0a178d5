import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_DEVELOPMENT = ENVIRONMENT in {"development", "dev", "local", "test"}

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./infinia.db")

# Supabase Auth - tokens are HS256 JWTs signed with the project JWT secret
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
SUPABASE_JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")
if not SUPABASE_JWT_SECRET:
    import warnings

    warnings.warn(
        "SUPABASE_JWT_SECRET not set! Authenticated endpoints will reject every token",
        RuntimeWarning,
        stacklevel=2,
    )

# Multi-tenant domains
PLATFORM_DOMAIN = os.getenv("PLATFORM_DOMAIN", "infiniatransfers.com").lower()
# CNAME target business owners point their custom domain at
VERCEL_CNAME = os.getenv("VERCEL_CNAME", "cname.vercel-dns.com")
DOMAIN_VERIFICATION_PREFIX = os.getenv("DOMAIN_VERIFICATION_PREFIX", "_infinia-verification")
TENANT_CACHE_TTL = int(os.getenv("TENANT_CACHE_TTL", "300"))

# Frontend base URL for redirects and email links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv(
    "EMAIL_FROM_ADDRESS", "Infinia Transfers <noreply@infiniatransfers.com>"
)

# Dodo Payments Configuration
DODO_PAYMENTS_API_KEY = os.getenv("DODO_PAYMENTS_API_KEY")
DODO_PAYMENTS_WEBHOOK_SECRET = os.getenv("DODO_PAYMENTS_WEBHOOK_SECRET")
# "test_mode" or "live_mode" - default to test for safety
DODO_PAYMENTS_ENVIRONMENT = os.getenv("DODO_PAYMENTS_ENVIRONMENT", "test_mode")
# Adhoc "pay what you want" product used for every wallet top-up
DODO_ADHOC_PRODUCT_ID = os.getenv("DODO_ADHOC_PRODUCT_ID")

# Exchange rates feed (AED based)
EXCHANGE_RATES_URL = os.getenv("EXCHANGE_RATES_URL", "https://open.er-api.com/v6/latest/AED")

# Redis / rate limiting
REDIS_URL = os.getenv("REDIS_URL")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

# CORS origins (comma separated)
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS",
        f"https://{PLATFORM_DOMAIN},https://www.{PLATFORM_DOMAIN},http://localhost:3000,http://localhost:5173",
    ).split(",")
    if origin.strip()
]
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
