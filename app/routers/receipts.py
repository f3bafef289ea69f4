"""
Receipt API endpoints.

Form bodies are multipart: a ``data`` field holding the receipt JSON and an
optional ``logo`` file.

POST   /api/preview                — draft → layout
POST   /api/preview/pdf            — draft → PDF download
POST   /api/receipts/banking       — submit banking form
POST   /api/receipts/shopping      — submit shopping form
GET    /api/receipts               — list own receipts, newest first
GET    /api/receipts/{id}          — get one receipt
PATCH  /api/receipts/{id}          — partial update (+ optional new logo)
DELETE /api/receipts/{id}          — delete receipt
GET    /api/receipts/{id}/preview  — stored receipt → layout
GET    /api/receipts/{id}/pdf      — stored receipt → PDF download
GET    /api/dashboard              — counts per type + receipt cards
GET    /api/currencies             — supported currency codes
"""
from __future__ import annotations

import json
import logging
from typing import Any, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import ValidationError

from app.config import settings
from app.errors import (
    FormStateError,
    FormValidationError,
    LogoUploadError,
    ReceiptError,
    ReceiptNotFoundError,
    ReceiptQueryError,
)
from app.schemas import (
    CurrencyOption,
    DashboardResponse,
    DeleteResponse,
    ReceiptLayout,
    ReceiptRecord,
    SaveResponse,
)
from app.services.blobs import LocalBlobStorage, LogoUpload, get_blob_storage
from app.services.currency import SUPPORTED_CURRENCIES, currency_symbol
from app.services.forms import FORM_CONTROLLERS, SAVE_FAILED_MESSAGE, ReceiptFormController, field_errors
from app.services.pdf_export import export_pdf, preview_filename, record_filename
from app.services.persistence import ReceiptRepository, get_repository
from app.services.preview import receipt_card, render_record
from app.services.security import get_current_identity

logger = logging.getLogger(__name__)
router = APIRouter()

LOAD_FAILED_MESSAGE = "Failed to load receipts. Please try again."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_data(data: str) -> dict[str, Any]:
    try:
        parsed = json.loads(data or "{}")
    except json.JSONDecodeError:
        raise HTTPException(status_code=422, detail="data must be a JSON object")
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=422, detail="data must be a JSON object")
    return parsed


def _read_logo(logo: Optional[UploadFile]) -> Optional[LogoUpload]:
    if logo is None or not logo.filename:
        return None
    content = logo.file.read()
    if len(content) > settings.MAX_LOGO_BYTES:
        raise HTTPException(status_code=413, detail="Logo file is too large")
    return LogoUpload(
        filename=logo.filename,
        content=content,
        content_type=logo.content_type or "application/octet-stream",
    )


def _http_error(e: Exception) -> HTTPException:
    """Map a domain/validation error to a short user-facing HTTP error."""
    if isinstance(e, FormValidationError):
        return HTTPException(status_code=422, detail=[err.model_dump() for err in e.errors])
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=[err.model_dump() for err in field_errors(e)])
    if isinstance(e, FormStateError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ReceiptNotFoundError):
        return HTTPException(status_code=404, detail="Receipt not found")
    if isinstance(e, LogoUploadError):
        return HTTPException(status_code=502, detail=SAVE_FAILED_MESSAGE)
    if isinstance(e, ReceiptQueryError):
        return HTTPException(status_code=500, detail=LOAD_FAILED_MESSAGE)
    return HTTPException(status_code=500, detail=SAVE_FAILED_MESSAGE)


def _controller_for(values: dict[str, Any], repository: Optional[ReceiptRepository] = None) -> ReceiptFormController:
    receipt_type = values.pop("type", None)
    controller_cls = FORM_CONTROLLERS.get(receipt_type)
    if controller_cls is None:
        raise HTTPException(status_code=422, detail="type must be 'banking' or 'shopping'")
    try:
        return controller_cls(repository=repository, values=values)
    except ValidationError as e:
        raise _http_error(e)


def _pdf_response(content: bytes, filename: str) -> Response:
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    disposition = f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": disposition},
    )


# ── GET /api/currencies ──────────────────────────────────────────────────
@router.get("/currencies", response_model=List[CurrencyOption])
def list_currencies():
    return [CurrencyOption(code=code, symbol=currency_symbol(code)) for code in SUPPORTED_CURRENCIES]


# ── POST /api/preview ────────────────────────────────────────────────────
@router.post("/preview", response_model=ReceiptLayout, dependencies=[Depends(get_current_identity)])
def preview(data: str = Form("{}"), logo: Optional[UploadFile] = File(None)):
    controller = _controller_for(_parse_data(data))
    try:
        upload = _read_logo(logo)
        if upload:
            controller.select_logo(upload.filename, upload.content, upload.content_type)
        return controller.preview()
    finally:
        controller.close()


# ── POST /api/preview/pdf ────────────────────────────────────────────────
@router.post("/preview/pdf", dependencies=[Depends(get_current_identity)])
def preview_pdf(
    data: str = Form("{}"),
    logo: Optional[UploadFile] = File(None),
    blobs: LocalBlobStorage = Depends(get_blob_storage),
):
    controller = _controller_for(_parse_data(data))
    try:
        upload = _read_logo(logo)
        if upload:
            controller.select_logo(upload.filename, upload.content, upload.content_type)
        layout = controller.render()
        pdf = controller.export_pdf(blobs)
    finally:
        controller.close()
    return _pdf_response(pdf, preview_filename(layout))


# ── POST /api/receipts/{banking|shopping} ────────────────────────────────
def _submit(receipt_type: str, data: str, logo: Optional[UploadFile], repo: ReceiptRepository) -> SaveResponse:
    values = _parse_data(data)
    values["type"] = receipt_type
    controller = _controller_for(values, repository=repo)
    try:
        upload = _read_logo(logo)
        if upload:
            controller.select_logo(upload.filename, upload.content, upload.content_type)
        receipt_id = controller.submit()
    except (FormValidationError, FormStateError, ReceiptError) as e:
        raise _http_error(e)
    finally:
        controller.close()

    record = repo.get(receipt_id)
    return SaveResponse(id=record.id, title=record.title)


@router.post("/receipts/banking", response_model=SaveResponse, status_code=201)
def create_banking_receipt(
    data: str = Form(...),
    logo: Optional[UploadFile] = File(None),
    repo: ReceiptRepository = Depends(get_repository),
):
    return _submit("banking", data, logo, repo)


@router.post("/receipts/shopping", response_model=SaveResponse, status_code=201)
def create_shopping_receipt(
    data: str = Form(...),
    logo: Optional[UploadFile] = File(None),
    repo: ReceiptRepository = Depends(get_repository),
):
    return _submit("shopping", data, logo, repo)


# ── GET /api/receipts ────────────────────────────────────────────────────
@router.get("/receipts", response_model=List[ReceiptRecord])
def list_receipts(repo: ReceiptRepository = Depends(get_repository)):
    try:
        return repo.list()
    except ReceiptQueryError as e:
        raise _http_error(e)


# ── GET /api/dashboard ───────────────────────────────────────────────────
@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(repo: ReceiptRepository = Depends(get_repository)):
    try:
        records = repo.list()
    except ReceiptQueryError as e:
        raise _http_error(e)
    return DashboardResponse(
        total_receipts=len(records),
        banking_receipts=sum(1 for r in records if r.type == "banking"),
        shopping_receipts=sum(1 for r in records if r.type == "shopping"),
        receipts=[receipt_card(r) for r in records],
    )


# ── GET /api/receipts/{receipt_id} ───────────────────────────────────────
@router.get("/receipts/{receipt_id}", response_model=ReceiptRecord)
def get_receipt(receipt_id: str, repo: ReceiptRepository = Depends(get_repository)):
    try:
        return repo.get(receipt_id)
    except ReceiptError as e:
        raise _http_error(e)


# ── PATCH /api/receipts/{receipt_id} ─────────────────────────────────────
@router.patch("/receipts/{receipt_id}", response_model=ReceiptRecord)
def update_receipt(
    receipt_id: str,
    data: str = Form("{}"),
    logo: Optional[UploadFile] = File(None),
    repo: ReceiptRepository = Depends(get_repository),
):
    partial = _parse_data(data)
    try:
        return repo.update(receipt_id, partial, _read_logo(logo))
    except (ValidationError, ReceiptError) as e:
        raise _http_error(e)


# ── DELETE /api/receipts/{receipt_id} ────────────────────────────────────
@router.delete("/receipts/{receipt_id}", response_model=DeleteResponse)
def delete_receipt(receipt_id: str, repo: ReceiptRepository = Depends(get_repository)):
    try:
        deleted = repo.delete(receipt_id)
    except ReceiptError as e:
        raise _http_error(e)
    message = "Receipt deleted successfully" if deleted else "Receipt already deleted"
    return DeleteResponse(message=message, receipt_id=receipt_id, deleted=deleted)


# ── GET /api/receipts/{receipt_id}/preview ───────────────────────────────
@router.get("/receipts/{receipt_id}/preview", response_model=ReceiptLayout)
def preview_receipt(receipt_id: str, repo: ReceiptRepository = Depends(get_repository)):
    try:
        return render_record(repo.get(receipt_id))
    except ReceiptError as e:
        raise _http_error(e)


# ── GET /api/receipts/{receipt_id}/pdf ───────────────────────────────────
@router.get("/receipts/{receipt_id}/pdf")
def download_receipt_pdf(
    receipt_id: str,
    repo: ReceiptRepository = Depends(get_repository),
    blobs: LocalBlobStorage = Depends(get_blob_storage),
):
    try:
        record = repo.get(receipt_id)
    except ReceiptError as e:
        raise _http_error(e)
    pdf = export_pdf(render_record(record), logo_loader=blobs.read)
    logger.info("Exported PDF for receipt %s", receipt_id)
    return _pdf_response(pdf, record_filename(record))
