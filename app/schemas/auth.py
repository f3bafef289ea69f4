"""
Account and session schemas
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    display_name: Optional[str] = None


class SignInRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="seconds")


class Identity(BaseModel):
    """The authenticated user as seen by the receipt routes."""
    id: str
    email: str


class ProfileResponse(BaseModel):
    id: str
    email: str
    display_name: Optional[str] = None
    created_at: datetime
