"""
Account and revoked-session models
"""
from sqlalchemy import Column, DateTime, String

from app.database import Base


class UserModel(Base):
    """Email/password account"""
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    display_name = Column(String)
    created_at = Column(DateTime, nullable=False)


class RevokedTokenModel(Base):
    """Signed-out token ids; a listed jti is refused until it expires."""
    __tablename__ = "revoked_tokens"

    jti = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
