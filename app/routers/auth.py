"""
Account API endpoints.

POST /api/auth/sign-up    — create account, returns a session token
POST /api/auth/sign-in    — email/password sign-in
POST /api/auth/sign-out   — end the current session
GET  /api/auth/me         — profile of the signed-in user
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import UserModel
from app.schemas import (
    Identity,
    ProfileResponse,
    SignInRequest,
    SignUpRequest,
    TokenResponse,
)
from app.services.security import (
    create_access_token,
    get_current_identity,
    get_token_claims,
    hash_password,
    revoke_token,
    verify_password,
)

logger = logging.getLogger(__name__)
router = APIRouter()


# ── POST /api/auth/sign-up ───────────────────────────────────────────────
@router.post("/auth/sign-up", response_model=TokenResponse, status_code=201)
def sign_up(req: SignUpRequest, db: Session = Depends(get_db)):
    email = req.email.lower()
    if db.query(UserModel).filter(UserModel.email == email).first():
        raise HTTPException(status_code=409, detail="An account with this email already exists")

    user = UserModel(
        id=uuid.uuid4().hex,
        email=email,
        password_hash=hash_password(req.password),
        display_name=req.display_name,
        created_at=datetime.now(timezone.utc).replace(tzinfo=None),
    )
    db.add(user)
    db.commit()
    logger.info("Created account %s", user.id)

    token, expires_in = create_access_token(user)
    return TokenResponse(access_token=token, expires_in=expires_in)


# ── POST /api/auth/sign-in ───────────────────────────────────────────────
@router.post("/auth/sign-in", response_model=TokenResponse)
def sign_in(req: SignInRequest, db: Session = Depends(get_db)):
    user = db.query(UserModel).filter(UserModel.email == req.email.lower()).first()
    if not user or not verify_password(req.password, user.password_hash):
        logger.info("Failed sign-in for %s", req.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token, expires_in = create_access_token(user)
    return TokenResponse(access_token=token, expires_in=expires_in)


# ── POST /api/auth/sign-out ──────────────────────────────────────────────
@router.post("/auth/sign-out")
def sign_out(
    claims: dict[str, Any] = Depends(get_token_claims),
    db: Session = Depends(get_db),
):
    revoke_token(db, claims)
    return {"message": "Signed out"}


# ── GET /api/auth/me ─────────────────────────────────────────────────────
@router.get("/auth/me", response_model=ProfileResponse)
def me(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    user = db.query(UserModel).filter(UserModel.id == identity.id).first()
    return ProfileResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        created_at=user.created_at,
    )
