"""
Pydantic v2 models shared by the services and routers.
"""
from app.schemas.auth import (  # noqa: F401
    Identity,
    ProfileResponse,
    SignInRequest,
    SignUpRequest,
    TokenResponse,
)
from app.schemas.receipt import (  # noqa: F401
    DEFAULT_BANKING_CURRENCY,
    DEFAULT_SHOPPING_CURRENCY,
    BankingDraft,
    BankingReceipt,
    Branding,
    CurrencyOption,
    DashboardResponse,
    DeleteResponse,
    FieldError,
    LayoutRow,
    LayoutSection,
    ReceiptCard,
    ReceiptDraft,
    ReceiptLayout,
    ReceiptRecord,
    ReceiptVariant,
    SaveResponse,
    ShoppingDraft,
    ShoppingItem,
    ShoppingItemDraft,
    ShoppingReceipt,
    derive_title,
    draft_adapter,
    variant_adapter,
)
