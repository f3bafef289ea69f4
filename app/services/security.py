"""
Session gate: password hashing, bearer tokens and the current-identity
dependency that guards every receipt route.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import RevokedTokenModel, UserModel
from app.schemas import Identity

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(user: UserModel, expires_minutes: Optional[int] = None) -> tuple[str, int]:
    """Signed token for ``user``; returns ``(token, lifetime_seconds)``."""
    lifetime = timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user.id,
        "email": user.email,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + lifetime,
    }
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, int(lifetime.total_seconds())


def decode_access_token(token: str) -> dict[str, Any]:
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        options={"require": ["sub", "jti", "exp"]},
    )


def _unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Validated claims of the request's bearer token"""
    if credentials is None or not credentials.credentials:
        raise _unauthorized()
    try:
        claims = decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Session expired")
    except jwt.PyJWTError as e:
        logger.warning("Rejected bearer token: %s", e)
        raise _unauthorized()

    revoked = db.query(RevokedTokenModel).filter(RevokedTokenModel.jti == claims["jti"]).first()
    if revoked:
        raise _unauthorized("Session ended")
    return claims


def get_current_identity(
    claims: dict[str, Any] = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> Identity:
    """Current-identity dependency"""
    user = db.query(UserModel).filter(UserModel.id == claims["sub"]).first()
    if not user:
        raise _unauthorized()
    return Identity(id=user.id, email=user.email)


def revoke_token(db: Session, claims: dict[str, Any]) -> None:
    expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc).replace(tzinfo=None)
    db.add(RevokedTokenModel(jti=claims["jti"], user_id=claims["sub"], expires_at=expires_at))
    db.commit()
    logger.info("Revoked session %s for user %s", claims["jti"], claims["sub"])
