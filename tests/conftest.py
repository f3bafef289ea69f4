"""
Shared pytest fixtures — in‑memory SQLite, temp blob store + FastAPI TestClient.
"""
import copy
import os
import tempfile

# Keep the app's own engine and upload dir away from the working tree
_TMP_DIR = tempfile.mkdtemp(prefix="receipt-studio-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DATA_DIR", _TMP_DIR)
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TMP_DIR, "uploads"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.models import ReceiptModel, UserModel  # noqa: E402,F401  register models
from app.main import app  # noqa: E402
from app.services.blobs import LocalBlobStorage, get_blob_storage  # noqa: E402
from app.services.persistence import ReceiptRepository  # noqa: E402

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)


BANKING_DATA = {
    "company_name": "Kuda",
    "transaction_amount": 50000,
    "beneficiary_name": "Jane Doe",
    "sender_name": "John Smith",
    "paid_on": "2025-06-28T14:30:00",
    "fees": 25,
    "description": "June rent",
    "transaction_ref": "TXN-0001",
    "payment_type": "transfer",
    "currency": "NGN",
}

SHOPPING_DATA = {
    "store_name": "Fresh Cart",
    "currency": "USD",
    "order_number": "#FC123456",
    "order_date": "2025-06-28",
    "items": [{"name": "Headphones", "quantity": 2, "unit_price": 12500}],
    "shipping_cost": 1500,
    "payment_method": "Mastercard (**** 1423)",
    "status": "paid",
    "support_email": "support@freshcart.com",
}


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def blobs(tmp_path):
    return LocalBlobStorage(tmp_path / "blobs")


@pytest.fixture()
def make_repo(db, blobs):
    def _make(owner_id: str) -> ReceiptRepository:
        return ReceiptRepository(db, owner_id, blobs)

    return _make


@pytest.fixture()
def banking_data():
    return copy.deepcopy(BANKING_DATA)


@pytest.fixture()
def shopping_data():
    return copy.deepcopy(SHOPPING_DATA)


@pytest.fixture()
def client(db, blobs):
    def _override():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_blob_storage] = lambda: blobs
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _sign_up(client, email: str) -> dict:
    resp = client.post(
        "/api/auth/sign-up",
        json={"email": email, "password": "correct-horse", "display_name": email.split("@")[0]},
    )
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture()
def auth_headers(client):
    return _sign_up(client, "alice@example.com")


@pytest.fixture()
def other_headers(client):
    return _sign_up(client, "bob@example.com")
