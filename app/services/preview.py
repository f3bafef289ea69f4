"""
Preview renderer – projects a receipt variant into a ``ReceiptLayout``.

The same layout feeds the on-screen preview endpoint and the PDF exporter;
nothing in here knows which of the two will consume it.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from babel.dates import format_date, format_datetime

from app.config import settings
from app.schemas import (
    DEFAULT_BANKING_CURRENCY,
    DEFAULT_SHOPPING_CURRENCY,
    BankingDraft,
    Branding,
    LayoutRow,
    LayoutSection,
    ReceiptCard,
    ReceiptLayout,
    ReceiptRecord,
    ShoppingDraft,
)
from app.schemas.receipt import PAYMENT_TYPE_LABELS
from app.services.currency import format_money

PLACEHOLDER = "-"

BANKING_ELEMENT_ID = "banking-receipt-preview"
SHOPPING_ELEMENT_ID = "shopping-receipt-preview"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _text(value: Optional[str]) -> str:
    return value if value else PLACEHOLDER


def _money(amount: Optional[float], currency: str) -> str:
    if amount is None:
        return PLACEHOLDER
    return format_money(amount, currency, settings.RECEIPT_LOCALE)


def _datetime(value: Optional[datetime]) -> str:
    if value is None:
        return PLACEHOLDER
    return format_datetime(value, format="medium", locale=settings.RECEIPT_LOCALE)


def _date(value: Optional[date]) -> str:
    if value is None:
        return PLACEHOLDER
    return format_date(value, format="long", locale=settings.RECEIPT_LOCALE)


def monogram(name: Optional[str]) -> str:
    """First letter of the issuer name, used when no logo was chosen."""
    name = (name or "").strip()
    return name[0].upper() if name else PLACEHOLDER


# ---------------------------------------------------------------------------
# Banking
# ---------------------------------------------------------------------------

def _render_banking(data: BankingDraft, logo_url: Optional[str]) -> ReceiptLayout:
    currency = data.currency or DEFAULT_BANKING_CURRENCY
    payment_type = PAYMENT_TYPE_LABELS.get(data.payment_type or "", data.payment_type)

    return ReceiptLayout(
        receipt_type="banking",
        element_id=BANKING_ELEMENT_ID,
        branding=Branding(
            name=_text(data.company_name),
            monogram=monogram(data.company_name),
            logo_url=logo_url or None,
        ),
        heading="Transaction Details",
        sections=[
            LayoutSection(
                key="amount",
                rows=[
                    LayoutRow(
                        label="Transaction Amount",
                        value=_money(data.transaction_amount, currency),
                        emphasis=True,
                    )
                ],
            ),
            LayoutSection(
                key="details",
                rows=[
                    LayoutRow(label="Beneficiary Details", value=_text(data.beneficiary_name)),
                    LayoutRow(label="Sender Details", value=_text(data.sender_name)),
                    LayoutRow(label="Paid On", value=_datetime(data.paid_on)),
                    LayoutRow(label="Fees", value=_money(data.fees, currency)),
                    LayoutRow(label="Description", value=_text(data.description)),
                    LayoutRow(label="Transaction Reference", value=_text(data.transaction_ref)),
                    LayoutRow(label="Payment Type", value=_text(payment_type)),
                ],
            ),
        ],
    )


# ---------------------------------------------------------------------------
# Shopping
# ---------------------------------------------------------------------------

def _render_shopping(data: ShoppingDraft, logo_url: Optional[str]) -> ReceiptLayout:
    currency = data.currency or DEFAULT_SHOPPING_CURRENCY

    item_rows = [
        LayoutRow(
            label=_text(item.name),
            detail=str(item.quantity),
            value=_money(item.line_total, currency),
        )
        for item in data.items
    ]
    if not item_rows:
        item_rows = [LayoutRow(label="No items added", detail="0", value=_money(0, currency))]

    return ReceiptLayout(
        receipt_type="shopping",
        element_id=SHOPPING_ELEMENT_ID,
        branding=Branding(
            name=_text(data.store_name),
            monogram=monogram(data.store_name),
            logo_url=logo_url or None,
        ),
        heading="Order Receipt",
        sections=[
            LayoutSection(
                key="order",
                rows=[
                    LayoutRow(label="Order No", value=_text(data.order_number)),
                    LayoutRow(label="Order Date", value=_date(data.order_date)),
                ],
            ),
            LayoutSection(key="items", title="Items Purchased", rows=item_rows),
            LayoutSection(
                key="summary",
                title="Summary",
                rows=[
                    LayoutRow(label="Subtotal", value=_money(data.subtotal, currency)),
                    LayoutRow(label="Shipping", value=_money(data.shipping_cost, currency)),
                    LayoutRow(label="Total", value=_money(data.total, currency), emphasis=True),
                ],
            ),
            LayoutSection(
                key="payment",
                rows=[
                    LayoutRow(label="Payment", value=_text(data.payment_method)),
                    LayoutRow(label="Status", value=data.status.capitalize()),
                ],
            ),
        ],
        footer=[
            f"Need help? Contact {_text(data.support_email)}",
            f"Thank you for shopping with {_text(data.store_name)}!",
        ],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def render_preview(
    variant: BankingDraft | ShoppingDraft, logo_url: Optional[str] = None
) -> ReceiptLayout:
    """Render a draft or a submission. Pure: same input, same layout."""
    if isinstance(variant, BankingDraft):
        return _render_banking(variant, logo_url)
    if isinstance(variant, ShoppingDraft):
        return _render_shopping(variant, logo_url)
    raise TypeError(f"Unknown receipt variant: {type(variant).__name__}")


def render_record(record: ReceiptRecord) -> ReceiptLayout:
    return render_preview(record.payload, record.logo_url)


def receipt_card(record: ReceiptRecord) -> ReceiptCard:
    """Dashboard summary: headline amount and reference line."""
    payload = record.payload
    if isinstance(payload, BankingDraft):
        amount = _money(payload.transaction_amount, payload.currency or DEFAULT_BANKING_CURRENCY)
        reference = f"Ref: {payload.transaction_ref or 'N/A'}"
    elif isinstance(payload, ShoppingDraft):
        amount = _money(payload.total, payload.currency or DEFAULT_SHOPPING_CURRENCY)
        reference = f"Order: {payload.order_number or 'N/A'}"
    else:
        raise TypeError(f"Unknown receipt variant: {type(payload).__name__}")

    return ReceiptCard(
        id=record.id,
        type=record.type,
        title=record.title,
        amount=amount,
        reference=reference,
        logo_url=record.logo_url,
        created_at=record.created_at,
    )
