"""
Receipt variants, persisted records and the render layout.

Each variant exists at two strictness levels:

* ``*Draft``   – every field optional; what the live preview renders.
* submission – the full per-field rules; the only shape ever written.

Submissions subclass their draft, so anything that renders a draft renders a
submission too.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter


DEFAULT_BANKING_CURRENCY = "NGN"
DEFAULT_SHOPPING_CURRENCY = "USD"

ReceiptType = Literal["banking", "shopping"]
PaymentType = Literal["transfer", "card", "wallet"]
OrderStatus = Literal["paid", "pending", "processing", "shipped", "delivered"]

PAYMENT_TYPE_LABELS: dict[str, str] = {
    "transfer": "Bank Transfer",
    "card": "Card Payment",
    "wallet": "Wallet",
}


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, allow_inf_nan=False)


# ---------------------------------------------------------------------------
# Banking
# ---------------------------------------------------------------------------

class BankingDraft(_Payload):
    type: Literal["banking"] = "banking"
    company_name: Optional[str] = None
    transaction_amount: Optional[float] = Field(default=None, ge=0)
    beneficiary_name: Optional[str] = None
    sender_name: Optional[str] = None
    paid_on: Optional[datetime] = None
    fees: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    transaction_ref: Optional[str] = None
    payment_type: Optional[PaymentType] = None
    currency: Optional[str] = None


class BankingReceipt(BankingDraft):
    company_name: str = Field(..., min_length=1)
    transaction_amount: float = Field(..., ge=0)
    beneficiary_name: str = Field(..., min_length=1)
    sender_name: str = Field(..., min_length=1)
    paid_on: datetime
    fees: float = Field(default=0, ge=0)
    description: str = Field(..., min_length=1)
    transaction_ref: str = Field(..., min_length=1)
    payment_type: PaymentType
    currency: str = Field(default=DEFAULT_BANKING_CURRENCY, min_length=1)


# ---------------------------------------------------------------------------
# Shopping
# ---------------------------------------------------------------------------

class ShoppingItemDraft(_Payload):
    name: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    unit_price: float = Field(default=0, ge=0)

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price


class ShoppingItem(ShoppingItemDraft):
    name: str = Field(..., min_length=1)


class ShoppingDraft(_Payload):
    type: Literal["shopping"] = "shopping"
    store_name: Optional[str] = None
    currency: Optional[str] = None
    order_number: Optional[str] = None
    order_date: Optional[date] = None
    items: list[ShoppingItemDraft] = Field(default_factory=lambda: [ShoppingItemDraft()])
    shipping_cost: float = Field(default=0, ge=0)
    payment_method: Optional[str] = None
    status: OrderStatus = "paid"
    support_email: Optional[str] = None

    # Totals are always derived, never stored.
    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self.items)

    @property
    def total(self) -> float:
        return self.subtotal + self.shipping_cost


class ShoppingReceipt(ShoppingDraft):
    store_name: str = Field(..., min_length=1)
    currency: str = Field(default=DEFAULT_SHOPPING_CURRENCY, min_length=1)
    order_number: str = Field(..., min_length=1)
    order_date: date
    items: list[ShoppingItem] = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1)
    support_email: EmailStr


# ---------------------------------------------------------------------------
# Tagged unions
# ---------------------------------------------------------------------------

ReceiptVariant = Annotated[
    Union[BankingReceipt, ShoppingReceipt], Field(discriminator="type")
]
ReceiptDraft = Annotated[
    Union[BankingDraft, ShoppingDraft], Field(discriminator="type")
]

variant_adapter: TypeAdapter = TypeAdapter(ReceiptVariant)
draft_adapter: TypeAdapter = TypeAdapter(ReceiptDraft)

SUBMISSION_MODELS: dict[str, type[BaseModel]] = {
    "banking": BankingReceipt,
    "shopping": ShoppingReceipt,
}
DRAFT_MODELS: dict[str, type[BaseModel]] = {
    "banking": BankingDraft,
    "shopping": ShoppingDraft,
}


def derive_title(variant: BankingDraft | ShoppingDraft) -> str:
    """Title stored with a record, derived from the variant at save time."""
    if isinstance(variant, BankingDraft):
        return f"Transaction to {variant.beneficiary_name or ''}".rstrip()
    if isinstance(variant, ShoppingDraft):
        return f"{variant.store_name or ''} Order".lstrip()
    raise TypeError(f"Unknown receipt variant: {type(variant).__name__}")


# ---------------------------------------------------------------------------
# Persisted record
# ---------------------------------------------------------------------------

class ReceiptRecord(BaseModel):
    id: str
    owner_id: str
    type: ReceiptType
    title: str
    payload: ReceiptVariant
    logo_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Render layout (shared by on-screen preview and PDF export)
# ---------------------------------------------------------------------------

class Branding(BaseModel):
    name: str
    monogram: str
    logo_url: Optional[str] = None


class LayoutRow(BaseModel):
    label: str
    value: str
    detail: Optional[str] = Field(default=None, description="e.g. item quantity")
    emphasis: bool = False


class LayoutSection(BaseModel):
    key: str
    title: Optional[str] = None
    rows: list[LayoutRow] = Field(default_factory=list)


class ReceiptLayout(BaseModel):
    receipt_type: ReceiptType
    element_id: str
    branding: Branding
    heading: str
    sections: list[LayoutSection] = Field(default_factory=list)
    footer: list[str] = Field(default_factory=list)

    def section(self, key: str) -> LayoutSection:
        for section in self.sections:
            if section.key == key:
                return section
        raise KeyError(key)

    def value_of(self, label: str) -> str:
        """First row value carrying ``label``, across all sections."""
        for section in self.sections:
            for row in section.rows:
                if row.label == label:
                    return row.value
        raise KeyError(label)


# ---------------------------------------------------------------------------
# API envelopes
# ---------------------------------------------------------------------------

class SaveResponse(BaseModel):
    id: str
    title: str


class DeleteResponse(BaseModel):
    message: str
    receipt_id: str
    deleted: bool


class FieldError(BaseModel):
    field: str
    message: str


class ReceiptCard(BaseModel):
    """Dashboard row for one record."""
    id: str
    type: ReceiptType
    title: str
    amount: str
    reference: str
    logo_url: Optional[str] = None
    created_at: datetime


class DashboardResponse(BaseModel):
    total_receipts: int
    banking_receipts: int
    shopping_receipts: int
    receipts: list[ReceiptCard]


class CurrencyOption(BaseModel):
    code: str
    symbol: str
