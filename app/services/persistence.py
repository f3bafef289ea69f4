"""
Receipt persistence client.

A ``ReceiptRepository`` is bound to one owner when it is constructed. Every
read and write goes through ``_owned()``, an owner-filtered base query, so no
method can see or touch another owner's rows.

Ordering inside ``save``/``update``: the logo upload finishes before the row
that references its URL is written. There is no transaction across the two; a
failed write after a successful upload leaves the blob orphaned.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from app.database import get_db
from app.errors import (
    ReceiptNotFoundError,
    ReceiptQueryError,
    ReceiptWriteError,
)
from app.models.receipt import ReceiptModel
from app.schemas import Identity, ReceiptRecord, derive_title
from app.schemas.receipt import SUBMISSION_MODELS, BankingDraft, ShoppingDraft
from app.services.blobs import LocalBlobStorage, LogoUpload, get_blob_storage, logo_key
from app.services.security import get_current_identity

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_receipt_id() -> str:
    return uuid.uuid4().hex


def to_record(row: ReceiptModel) -> ReceiptRecord:
    """ReceiptModel -> ReceiptRecord"""
    payload = dict(row.payload_json)
    payload["type"] = row.type
    return ReceiptRecord(
        id=row.id,
        owner_id=row.owner_id,
        type=row.type,
        title=row.title,
        payload=payload,
        logo_url=row.logo_url or None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ReceiptRepository:
    def __init__(self, db: Session, owner_id: str, blobs: LocalBlobStorage):
        if not owner_id:
            raise ValueError("owner_id is required")
        self.db = db
        self.owner_id = owner_id
        self.blobs = blobs

    def _owned(self) -> Query:
        return self.db.query(ReceiptModel).filter(ReceiptModel.owner_id == self.owner_id)

    def _upload_logo(self, logo: Optional[LogoUpload]) -> Optional[str]:
        if logo is None:
            return None
        return self.blobs.upload(logo_key(self.owner_id, logo.filename), logo.content)

    def _commit(self, action: str, receipt_id: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to %s receipt %s: %s", action, receipt_id, e)
            raise ReceiptWriteError(f"Could not {action} receipt {receipt_id}") from e

    # ── save ──────────────────────────────────────────────────────────────
    def save(
        self,
        variant: BankingDraft | ShoppingDraft,
        title: Optional[str] = None,
        logo: Optional[LogoUpload] = None,
    ) -> str:
        """Upload the logo (if any), then write a new record. Returns its id."""
        model = SUBMISSION_MODELS[variant.type]
        if not isinstance(variant, model):
            variant = model.model_validate(variant.model_dump(exclude_none=True))

        logo_url = self._upload_logo(logo)

        now = _utcnow()
        row = ReceiptModel(
            id=new_receipt_id(),
            owner_id=self.owner_id,
            type=variant.type,
            title=title or derive_title(variant),
            payload_json=variant.model_dump(mode="json", exclude={"type"}),
            logo_url=logo_url,
            created_at=now,
            updated_at=now,
        )
        self.db.add(row)
        self._commit("save", row.id)
        logger.info("Saved %s receipt %s for owner %s", row.type, row.id, self.owner_id)
        return row.id

    # ── list ──────────────────────────────────────────────────────────────
    def list(self) -> list[ReceiptRecord]:
        """Owner's records, newest first. Always re-reads the store."""
        try:
            rows = self._owned().order_by(ReceiptModel.created_at.desc()).all()
        except SQLAlchemyError as e:
            logger.error("Failed to list receipts for owner %s: %s", self.owner_id, e)
            raise ReceiptQueryError("Could not load receipts") from e
        logger.info("Found %d receipts for owner %s", len(rows), self.owner_id)
        return [to_record(r) for r in rows]

    # ── get ───────────────────────────────────────────────────────────────
    def _get_row(self, receipt_id: str) -> ReceiptModel:
        try:
            row = self._owned().filter(ReceiptModel.id == receipt_id).first()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch receipt %s: %s", receipt_id, e)
            raise ReceiptQueryError(f"Could not load receipt {receipt_id}") from e
        if row is None:
            raise ReceiptNotFoundError(receipt_id)
        return row

    def get(self, receipt_id: str) -> ReceiptRecord:
        return to_record(self._get_row(receipt_id))

    # ── update ────────────────────────────────────────────────────────────
    def update(
        self,
        receipt_id: str,
        partial: dict[str, Any],
        logo: Optional[LogoUpload] = None,
    ) -> ReceiptRecord:
        """Shallow-merge ``partial`` into the stored payload.

        The merged payload is re-validated as a full submission of the
        record's type, so a partial can never leave a record invalid. A
        derived title follows the new payload; a custom one is left alone. Raises
        ``pydantic.ValidationError`` for bad input and ``ReceiptNotFoundError``
        when the id is not one of this owner's records.
        """
        row = self._get_row(receipt_id)
        model = SUBMISSION_MODELS[row.type]
        stored = {**row.payload_json, "type": row.type}

        # a "type" in the partial must still match the stored type
        variant = model.model_validate({**stored, **partial})

        logo_url = self._upload_logo(logo)

        # a title given explicitly at save time is kept
        if row.title == derive_title(model.model_validate(stored)):
            row.title = derive_title(variant)
        row.payload_json = variant.model_dump(mode="json", exclude={"type"})
        if logo_url:
            row.logo_url = logo_url
        row.updated_at = _utcnow()
        self._commit("update", receipt_id)
        logger.info("Updated receipt %s (%s)", receipt_id, ", ".join(sorted(partial)) or "no fields")
        return to_record(row)

    # ── delete ────────────────────────────────────────────────────────────
    def delete(self, receipt_id: str) -> bool:
        """Remove the record. ``False`` when there was nothing to remove.

        The logo blob, if any, is left in place.
        """
        try:
            row = self._owned().filter(ReceiptModel.id == receipt_id).first()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch receipt %s: %s", receipt_id, e)
            raise ReceiptQueryError(f"Could not load receipt {receipt_id}") from e
        if row is None:
            logger.info("Delete of missing receipt %s ignored", receipt_id)
            return False
        self.db.delete(row)
        self._commit("delete", receipt_id)
        logger.info("Deleted receipt %s", receipt_id)
        return True


def get_repository(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    blobs: LocalBlobStorage = Depends(get_blob_storage),
) -> ReceiptRepository:
    """Repository dependency scoped to the signed-in user"""
    return ReceiptRepository(db, identity.id, blobs)
