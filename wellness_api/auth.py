import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import JWT_ALGORITHM, SECRET_KEY
from .database import get_db
from .models import STAFF_ROLES, User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

KNOWN_ROLES = ("user", "professional", "staff", "admin")


def verify_access_token(token: str) -> dict:
    """
    Verify a bearer token issued by the identity service.
    Signature, expiry and the presence of a subject are checked here; the
    token itself is never minted by this API.
    """
    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError as e:
        logger.info("ℹ️ Expired token presented")
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ JWT verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token") from e

    if not payload.get("sub"):
        logger.error(f"❌ Token missing subject claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to a local user, creating the row on first sight"""

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    claims = verify_access_token(credentials.credentials)
    external_id = str(claims["sub"])
    role = claims.get("role") if claims.get("role") in KNOWN_ROLES else "user"

    user = db.query(User).filter(User.external_id == external_id).first()
    if user:
        # Role is owned by the identity service; keep the local copy in sync
        if user.role != role:
            user.role = role
            db.commit()
            db.refresh(user)
        return user

    logger.info(f"🆕 Creating local user for subject {external_id}")
    user = User(
        external_id=external_id,
        email=claims.get("email"),
        full_name=claims.get("name"),
        role=role,
    )
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
    except IntegrityError:
        # Another request created the same user between our check and insert
        db.rollback()
        user = db.query(User).filter(User.external_id == external_id).first()
        if not user:
            raise
    return user


async def get_current_staff(user: User = Depends(get_current_user)) -> User:
    """Current user, required to hold a staff role"""
    if user.role not in STAFF_ROLES:
        logger.warning(f"⚠️ User {user.id} attempted a staff-only operation")
        raise HTTPException(status_code=403, detail="Staff access required")
    return user


async def get_current_operator(user: User = Depends(get_current_user)) -> User:
    """Current user, required to be staff or a health professional"""
    if user.role not in STAFF_ROLES and user.role != "professional":
        logger.warning(f"⚠️ User {user.id} attempted a booking administration operation")
        raise HTTPException(status_code=403, detail="Not permitted")
    return user
