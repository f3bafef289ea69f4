"""
SQLAlchemy model for receipt persistence.
"""
from sqlalchemy import Column, DateTime, Index, JSON, String

from app.database import Base


class ReceiptModel(Base):
    __tablename__ = "receipts"

    id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)  # banking | shopping
    title = Column(String, nullable=False)
    payload_json = Column(JSON, nullable=False)
    logo_url = Column(String)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_receipts_owner_created", "owner_id", "created_at"),
    )
