import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import all models to ensure they're registered with SQLAlchemy Base
from . import (
    models,  # noqa: F401
    models_wallet,  # noqa: F401
)
from .config import ALLOWED_ORIGINS, ENVIRONMENT, SECURITY_HEADERS_ENABLED
from .database import Base, engine
from .domain.assignments.router import admin_router as admin_bookings_router
from .domain.assignments.router import vendor_router as vendor_assignments_router
from .domain.availability.router import router as availability_router
from .domain.billing.router import router as webhooks_router
from .domain.bookings.customer_router import router as customer_bookings_router
from .domain.bookings.router import router as business_bookings_router
from .domain.businesses.router import admin_router as admin_businesses_router
from .domain.businesses.router import router as businesses_router
from .domain.currency.middleware import CurrencyCookieMiddleware
from .domain.currency.router import router as currency_router
from .domain.notifications.router import router as notifications_router
from .domain.tenancy.middleware import TenantMiddleware
from .domain.tenancy.router import router as tenancy_router
from .domain.wallet.admin_router import router as admin_wallet_router
from .domain.wallet.router import router as wallet_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 Application starting up ({ENVIRONMENT})")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("✅ Database tables ready")
    except Exception as e:
        # Another worker may have created them concurrently
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"❌ Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()
        logger.info("✅ Redis connection established")
    except Exception as e:
        logger.warning(f"⚠️ Redis connection failed - rate limiting and caching fall back to memory: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Infinia Transfers API", version="1.0.0", lifespan=lifespan)


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry the raw ValueError raised by a validator
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Missing Authorization header is a 401, everything else a 422"""
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(f"⚠️ Authentication failed for {request.url.path}: missing Authorization header")
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    logger.warning(f"⚠️ Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


# Middleware: the last added runs first
if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])
    logger.info("Security headers enabled")
else:
    logger.warning("⚠️ Security headers DISABLED - only use in development!")

app.add_middleware(CurrencyCookieMiddleware)
app.add_middleware(TenantMiddleware)

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=[
        "x-business-id",
        "x-business-name",
        "x-brand-name",
        "x-logo-url",
        "x-primary-color",
        "x-secondary-color",
        "x-accent-color",
        "x-custom-domain",
        "content-disposition",
    ],
)

# Routes
app.include_router(tenancy_router)
app.include_router(currency_router)
app.include_router(webhooks_router)
app.include_router(businesses_router)
app.include_router(wallet_router)
app.include_router(business_bookings_router)
app.include_router(notifications_router)
app.include_router(customer_bookings_router)
app.include_router(availability_router)
app.include_router(vendor_assignments_router)
app.include_router(admin_businesses_router)
app.include_router(admin_wallet_router)
app.include_router(admin_bookings_router)


@app.get("/")
def root():
    return {"message": "Infinia Transfers API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
