"""
Domain errors raised by the persistence and form layers.

Routers translate these into HTTP responses; nothing here knows about HTTP.
"""
from __future__ import annotations

from app.schemas.receipt import FieldError


class ReceiptError(Exception):
    """Base class for receipt-studio failures."""


class ReceiptNotFoundError(ReceiptError):
    def __init__(self, receipt_id: str):
        super().__init__(f"Receipt not found: {receipt_id}")
        self.receipt_id = receipt_id


class LogoUploadError(ReceiptError):
    """The logo blob could not be stored; no record was written."""


class ReceiptWriteError(ReceiptError):
    """The record write failed. An already uploaded logo stays orphaned."""


class ReceiptQueryError(ReceiptError):
    """Reading records failed. Never reported as an empty result."""


class FormValidationError(ReceiptError):
    """Submit was blocked by per-field validation."""

    def __init__(self, errors: list[FieldError]):
        super().__init__(f"{len(errors)} field(s) failed validation")
        self.errors = errors


class FormStateError(ReceiptError):
    """An operation was attempted in a form state that does not allow it."""
