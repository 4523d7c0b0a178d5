import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from .config import SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db
from .models import BusinessUser, Profile

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"


def verify_supabase_token(token: str) -> dict:
    """
    Verify a Supabase access token (HS256, signed with the project JWT secret).
    Returns the decoded claims or raises 401.
    """
    if not SUPABASE_JWT_SECRET:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")

    try:
        return jose_jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        logger.warning("⚠️ Expired token presented")
        raise HTTPException(status_code=401, detail="Token expired") from e
    except JWTError as e:
        logger.warning(f"⚠️ JWT verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token") from e


def get_token_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    claims = verify_supabase_token(token)
    if not claims.get("sub"):
        logger.error(f"❌ Token missing subject. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")
    return claims


def get_current_profile(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> Profile:
    """Get the platform profile for the token subject, creating a customer profile on first use"""
    auth_user_id = claims["sub"]
    profile = db.query(Profile).filter(Profile.auth_user_id == auth_user_id).first()
    if profile:
        return profile

    metadata = claims.get("user_metadata") or {}
    logger.info(f"🆕 Creating profile for auth user {auth_user_id}")
    profile = Profile(
        auth_user_id=auth_user_id,
        email=claims.get("email"),
        full_name=metadata.get("full_name") or metadata.get("name"),
        role="customer",
    )
    db.add(profile)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent first request already created it
        db.rollback()
        return db.query(Profile).filter(Profile.auth_user_id == auth_user_id).one()
    db.refresh(profile)
    return profile


def require_roles(*roles: str):
    """Dependency factory restricting an endpoint to the given profile roles"""

    def dependency(profile: Profile = Depends(get_current_profile)) -> Profile:
        if profile.role not in roles:
            logger.warning(
                f"⚠️ Profile {profile.id} with role '{profile.role}' denied (needs {', '.join(roles)})"
            )
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return profile

    return dependency


require_admin = require_roles("admin")
require_vendor = require_roles("vendor")
require_customer_or_vendor = require_roles("customer", "vendor")


def get_business_user(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> BusinessUser:
    """
    Resolve the business portal user for the token.
    The user must be active and belong to an active business account.
    """
    business_user = (
        db.query(BusinessUser)
        .options(joinedload(BusinessUser.business_account))
        .filter(BusinessUser.auth_user_id == claims["sub"])
        .first()
    )
    if not business_user:
        raise HTTPException(status_code=403, detail="Not a business user")
    if not business_user.is_active:
        raise HTTPException(status_code=403, detail="Business user is deactivated")

    account = business_user.business_account
    if account.status != "active":
        logger.warning(
            f"⚠️ Business user {business_user.id} blocked, account {account.id} is {account.status}"
        )
        raise HTTPException(
            status_code=403,
            detail={
                "code": f"business_{account.status}",
                "message": f"Business account is {account.status}",
            },
        )
    return business_user


def require_business_owner(
    business_user: BusinessUser = Depends(get_business_user),
) -> BusinessUser:
    if business_user.role != "owner":
        raise HTTPException(status_code=403, detail="Only the business owner can do this")
    return business_user
