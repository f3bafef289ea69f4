"""
Form controllers for the two receipt types.

A controller owns the live draft of one form, the logo the user picked, and
the form state:

    editing ⇄ previewing → submitting → saved
                              ↓
                            failed  (next edit returns to editing)

Validation runs against the submission model and blocks ``submit`` before
anything reaches the repository.
"""
from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ValidationError

from app.config import settings
from app.errors import FormStateError, FormValidationError, ReceiptError
from app.schemas import (
    BankingDraft,
    BankingReceipt,
    FieldError,
    ReceiptLayout,
    ShoppingDraft,
    ShoppingItemDraft,
    ShoppingReceipt,
    derive_title,
)
from app.services.blobs import LocalBlobStorage, LogoUpload
from app.services.pdf_export import export_pdf
from app.services.persistence import ReceiptRepository
from app.services.preview import render_preview

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save receipt. Please try again."


class FormState(str, Enum):
    EDITING = "editing"
    PREVIEWING = "previewing"
    SUBMITTING = "submitting"
    SAVED = "saved"
    FAILED = "failed"


def field_errors(exc: ValidationError) -> list[FieldError]:
    """Flatten pydantic errors into ``field.path -> message`` pairs."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "__root__"
        errors.append(FieldError(field=field, message=err["msg"]))
    return errors


# ---------------------------------------------------------------------------
# Ephemeral logo preview URLs
# ---------------------------------------------------------------------------

class ObjectUrlRegistry:
    """Short-lived local URLs for logos that have not been uploaded yet.

    ``create`` hands out a ``blob:`` URL for in-memory bytes; the holder must
    ``revoke`` it when the logo is replaced or the form goes away.
    """

    SCHEME = "blob:preview/"

    def __init__(self):
        self._objects: dict[str, LogoUpload] = {}

    def create(self, logo: LogoUpload) -> str:
        url = f"{self.SCHEME}{uuid.uuid4().hex}"
        self._objects[url] = logo
        return url

    def revoke(self, url: Optional[str]) -> None:
        if url:
            self._objects.pop(url, None)

    def resolve(self, url: str) -> bytes:
        try:
            return self._objects[url].content
        except KeyError:
            raise FileNotFoundError(url) from None

    def __contains__(self, url: object) -> bool:
        return url in self._objects

    def __len__(self) -> int:
        return len(self._objects)


# ---------------------------------------------------------------------------
# Controllers
# ---------------------------------------------------------------------------

class ReceiptFormController:
    draft_model: ClassVar[type[BaseModel]]
    submission_model: ClassVar[type[BaseModel]]

    def __init__(
        self,
        repository: Optional[ReceiptRepository] = None,
        object_urls: Optional[ObjectUrlRegistry] = None,
        values: Optional[dict[str, Any]] = None,
    ):
        self.repository = repository
        self.object_urls = object_urls or ObjectUrlRegistry()
        self.state = FormState.EDITING
        self.error: Optional[str] = None
        self.saved_id: Optional[str] = None
        self.logo: Optional[LogoUpload] = None
        self.logo_preview_url: Optional[str] = None
        self._values: dict[str, Any] = {}
        if values:
            self.update(**values)

    # ── editing ───────────────────────────────────────────────────────────
    def _ensure_editable(self) -> None:
        if self.state in (FormState.SUBMITTING, FormState.SAVED):
            raise FormStateError(f"Form is {self.state.value}")
        if self.state is FormState.FAILED:
            self.state = FormState.EDITING
            self.error = None

    @property
    def draft(self):
        return self.draft_model.model_validate(self._values)

    def update(self, **fields: Any) -> None:
        """Apply field edits; raises ``pydantic.ValidationError`` for draft-level errors."""
        self._ensure_editable()
        fields.pop("type", None)
        candidate = {**self._values, **fields}
        self.draft_model.model_validate(candidate)
        self._values = candidate
        if self.state is FormState.PREVIEWING:
            self.state = FormState.EDITING

    def select_logo(self, filename: str, content: bytes, content_type: str = "") -> str:
        """Keep the file for upload at submit time; return a local preview URL."""
        self._ensure_editable()
        if len(content) > settings.MAX_LOGO_BYTES:
            raise FormValidationError([FieldError(field="logo", message="Logo file is too large")])
        self.object_urls.revoke(self.logo_preview_url)
        self.logo = LogoUpload(filename=filename, content=content,
                               content_type=content_type or "application/octet-stream")
        self.logo_preview_url = self.object_urls.create(self.logo)
        return self.logo_preview_url

    def clear_logo(self) -> None:
        self.object_urls.revoke(self.logo_preview_url)
        self.logo = None
        self.logo_preview_url = None

    def close(self) -> None:
        """Release local resources held by the form."""
        self.clear_logo()

    # ── preview ───────────────────────────────────────────────────────────
    def render(self) -> ReceiptLayout:
        return render_preview(self.draft, self.logo_preview_url)

    def preview(self) -> ReceiptLayout:
        if self.state is FormState.EDITING:
            self.state = FormState.PREVIEWING
        return self.render()

    def edit(self) -> None:
        if self.state is FormState.PREVIEWING:
            self.state = FormState.EDITING

    def export_pdf(self, blobs: Optional[LocalBlobStorage] = None) -> bytes:
        """PDF of the current draft, drawn from the same layout as ``render``."""

        def load(url: str) -> bytes:
            if url in self.object_urls:
                return self.object_urls.resolve(url)
            if blobs is None:
                raise FileNotFoundError(url)
            return blobs.read(url)

        return export_pdf(self.render(), logo_loader=load)

    # ── submit ────────────────────────────────────────────────────────────
    def _submission_values(self) -> dict[str, Any]:
        # cleared fields fall back to the submission defaults
        return {k: v for k, v in self._values.items() if v is not None}

    def validate(self) -> list[FieldError]:
        try:
            self.submission_model.model_validate(self._submission_values())
        except ValidationError as e:
            return field_errors(e)
        return []

    def submit(self) -> str:
        """Validate, then save through the repository. Returns the new id."""
        if self.state in (FormState.SUBMITTING, FormState.SAVED):
            raise FormStateError(f"Form is {self.state.value}")
        if self.repository is None:
            raise FormStateError("No signed-in user to save for")
        try:
            variant = self.submission_model.model_validate(self._submission_values())
        except ValidationError as e:
            raise FormValidationError(field_errors(e)) from e

        self.state = FormState.SUBMITTING
        try:
            receipt_id = self.repository.save(variant, derive_title(variant), self.logo)
        except ReceiptError as e:
            logger.error("Save failed for %s form: %s", variant.type, e)
            self.state = FormState.FAILED
            self.error = SAVE_FAILED_MESSAGE
            raise

        self.state = FormState.SAVED
        self.saved_id = receipt_id
        self.close()
        return receipt_id


class BankingFormController(ReceiptFormController):
    draft_model = BankingDraft
    submission_model = BankingReceipt


class ShoppingFormController(ReceiptFormController):
    draft_model = ShoppingDraft
    submission_model = ShoppingReceipt

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if not self._values.get("items"):
            self._values["items"] = [ShoppingItemDraft().model_dump()]

    @property
    def items(self) -> list[dict[str, Any]]:
        return list(self._values["items"])

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._values["items"]):
            raise FormStateError(f"No item row {index}")

    def add_item(self) -> int:
        """Append a blank row; returns the new row count."""
        self._ensure_editable()
        self._values["items"] = [*self._values["items"], ShoppingItemDraft().model_dump()]
        self.edit()
        return len(self._values["items"])

    def update_item(self, index: int, **fields: Any) -> None:
        self._check_index(index)
        items = self.items
        items[index] = {**items[index], **fields}
        self.update(items=items)

    def remove_item(self, index: int) -> None:
        """Drop row ``index``; the last remaining row cannot be removed."""
        self._ensure_editable()
        self._check_index(index)
        items = self.items
        if len(items) <= 1:
            raise FormStateError("At least one item is required")
        del items[index]
        self._values["items"] = items
        self.edit()


FORM_CONTROLLERS: dict[str, type[ReceiptFormController]] = {
    "banking": BankingFormController,
    "shopping": ShoppingFormController,
}
