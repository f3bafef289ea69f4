"""
Integration tests for the Receipt Studio HTTP endpoints.
"""
import json

import pytest

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _form(data: dict) -> dict:
    return {"data": json.dumps(data)}


def _create(client, headers, receipt_type: str, data: dict, files=None) -> dict:
    resp = client.post(f"/api/receipts/{receipt_type}", data=_form(data), files=files, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestHealth:
    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["service"] == "Receipt Studio"
        assert resp.json()["environment"] == "development"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_currencies(self, client):
        resp = client.get("/api/currencies")
        assert resp.status_code == 200
        codes = {c["code"]: c["symbol"] for c in resp.json()}
        assert codes["NGN"] == "₦"
        assert len(codes) == 10


class TestAuth:
    def test_sign_up_and_me(self, client, auth_headers):
        resp = client.get("/api/auth/me", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["email"] == "alice@example.com"

    def test_duplicate_sign_up(self, client, auth_headers):
        resp = client.post(
            "/api/auth/sign-up",
            json={"email": "Alice@Example.com", "password": "another-one"},
        )
        assert resp.status_code == 409

    def test_sign_in(self, client, auth_headers):
        resp = client.post(
            "/api/auth/sign-in",
            json={"email": "alice@example.com", "password": "correct-horse"},
        )
        assert resp.status_code == 200
        assert resp.json()["token_type"] == "bearer"

    def test_sign_in_wrong_password(self, client, auth_headers):
        resp = client.post(
            "/api/auth/sign-in",
            json={"email": "alice@example.com", "password": "wrong-horse"},
        )
        assert resp.status_code == 401

    def test_short_password_rejected(self, client):
        resp = client.post("/api/auth/sign-up", json={"email": "c@example.com", "password": "123"})
        assert resp.status_code == 422

    @pytest.mark.parametrize(
        "method, path",
        [
            ("get", "/api/receipts"),
            ("get", "/api/dashboard"),
            ("get", "/api/receipts/abc"),
            ("delete", "/api/receipts/abc"),
            ("post", "/api/preview"),
        ],
    )
    def test_receipt_routes_need_a_session(self, client, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == 401

    def test_garbage_token(self, client):
        resp = client.get("/api/receipts", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401

    def test_sign_out_revokes_token(self, client, auth_headers):
        assert client.post("/api/auth/sign-out", headers=auth_headers).status_code == 200
        assert client.get("/api/receipts", headers=auth_headers).status_code == 401


class TestCreateAndRead:
    def test_create_banking(self, client, auth_headers, banking_data):
        body = _create(client, auth_headers, "banking", banking_data)
        assert body["title"] == "Transaction to Jane Doe"

        resp = client.get(f"/api/receipts/{body['id']}", headers=auth_headers)
        assert resp.status_code == 200
        record = resp.json()
        assert record["type"] == "banking"
        assert record["payload"]["transaction_amount"] == 50000
        assert record["payload"]["beneficiary_name"] == "Jane Doe"

    def test_create_shopping_with_logo(self, client, auth_headers, shopping_data):
        body = _create(
            client, auth_headers, "shopping", shopping_data,
            files={"logo": ("fresh.png", PNG_BYTES, "image/png")},
        )
        record = client.get(f"/api/receipts/{body['id']}", headers=auth_headers).json()
        assert record["title"] == "Fresh Cart Order"
        assert record["logo_url"].endswith("_fresh.png")

        blob = client.get(record["logo_url"])
        assert blob.status_code == 200
        assert blob.content == PNG_BYTES

    @pytest.mark.parametrize("amount", ["1e999", "Infinity", "NaN"])
    def test_non_finite_amount_rejected(self, client, auth_headers, banking_data, amount):
        body = json.dumps(banking_data).replace('"transaction_amount": 50000', f'"transaction_amount": {amount}')
        resp = client.post("/api/receipts/banking", data={"data": body}, headers=auth_headers)
        assert resp.status_code == 422
        assert [e["field"] for e in resp.json()["detail"]] == ["transaction_amount"]
        assert client.get("/api/receipts", headers=auth_headers).json() == []

    def test_validation_errors(self, client, auth_headers):
        resp = client.post(
            "/api/receipts/banking",
            data=_form({"company_name": "Kuda"}),
            headers=auth_headers,
        )
        assert resp.status_code == 422
        fields = {e["field"] for e in resp.json()["detail"]}
        assert "beneficiary_name" in fields
        assert client.get("/api/receipts", headers=auth_headers).json() == []

    def test_data_must_be_json_object(self, client, auth_headers):
        resp = client.post("/api/receipts/banking", data={"data": "[1, 2]"}, headers=auth_headers)
        assert resp.status_code == 422

    def test_oversized_logo(self, client, auth_headers, banking_data, monkeypatch):
        from app.config import settings

        monkeypatch.setattr(settings, "MAX_LOGO_BYTES", 8)
        resp = client.post(
            "/api/receipts/banking",
            data=_form(banking_data),
            files={"logo": ("big.png", PNG_BYTES, "image/png")},
            headers=auth_headers,
        )
        assert resp.status_code == 413

    def test_list_newest_first(self, client, auth_headers, banking_data, shopping_data):
        first = _create(client, auth_headers, "banking", banking_data)
        second = _create(client, auth_headers, "shopping", shopping_data)
        ids = [r["id"] for r in client.get("/api/receipts", headers=auth_headers).json()]
        assert ids == [second["id"], first["id"]]

    def test_missing_receipt(self, client, auth_headers):
        assert client.get("/api/receipts/nope", headers=auth_headers).status_code == 404


class TestOwnerIsolation:
    def test_other_user_sees_nothing(self, client, auth_headers, other_headers, banking_data):
        body = _create(client, auth_headers, "banking", banking_data)

        assert client.get("/api/receipts", headers=other_headers).json() == []
        assert client.get(f"/api/receipts/{body['id']}", headers=other_headers).status_code == 404
        resp = client.patch(
            f"/api/receipts/{body['id']}", data=_form({"description": "x"}), headers=other_headers
        )
        assert resp.status_code == 404
        resp = client.delete(f"/api/receipts/{body['id']}", headers=other_headers)
        assert resp.json()["deleted"] is False

        assert client.get(f"/api/receipts/{body['id']}", headers=auth_headers).status_code == 200


class TestUpdateAndDelete:
    def test_patch_keeps_other_fields(self, client, auth_headers, banking_data):
        body = _create(client, auth_headers, "banking", banking_data)
        resp = client.patch(
            f"/api/receipts/{body['id']}",
            data=_form({"description": "July rent"}),
            headers=auth_headers,
        )
        assert resp.status_code == 200
        payload = resp.json()["payload"]
        assert payload["description"] == "July rent"
        assert payload["sender_name"] == "John Smith"

    def test_patch_invalid_value(self, client, auth_headers, banking_data):
        body = _create(client, auth_headers, "banking", banking_data)
        resp = client.patch(
            f"/api/receipts/{body['id']}",
            data=_form({"payment_type": "cheque"}),
            headers=auth_headers,
        )
        assert resp.status_code == 422

    def test_delete_twice(self, client, auth_headers, banking_data):
        body = _create(client, auth_headers, "banking", banking_data)

        first = client.delete(f"/api/receipts/{body['id']}", headers=auth_headers)
        assert first.status_code == 200
        assert first.json()["deleted"] is True

        second = client.delete(f"/api/receipts/{body['id']}", headers=auth_headers)
        assert second.status_code == 200
        assert second.json() == {
            "message": "Receipt already deleted",
            "receipt_id": body["id"],
            "deleted": False,
        }


class TestDashboard:
    def test_counts_and_cards(self, client, auth_headers, banking_data, shopping_data):
        _create(client, auth_headers, "banking", banking_data)
        _create(client, auth_headers, "banking", banking_data)
        _create(client, auth_headers, "shopping", shopping_data)

        body = client.get("/api/dashboard", headers=auth_headers).json()
        assert body["total_receipts"] == 3
        assert body["banking_receipts"] == 2
        assert body["shopping_receipts"] == 1
        assert body["receipts"][0]["amount"] == "$26,500"
        assert body["receipts"][1]["reference"] == "Ref: TXN-0001"


class TestPreview:
    def test_draft_preview(self, client, auth_headers):
        resp = client.post(
            "/api/preview",
            data=_form({"type": "banking", "company_name": "Kuda", "transaction_amount": 50000}),
            headers=auth_headers,
        )
        assert resp.status_code == 200
        layout = resp.json()
        assert layout["element_id"] == "banking-receipt-preview"
        assert layout["branding"]["monogram"] == "K"
        amount = layout["sections"][0]["rows"][0]
        assert amount == {
            "label": "Transaction Amount",
            "value": "₦50,000",
            "detail": None,
            "emphasis": True,
        }

    def test_preview_needs_known_type(self, client, auth_headers):
        resp = client.post("/api/preview", data=_form({"type": "invoice"}), headers=auth_headers)
        assert resp.status_code == 422

    def test_preview_pdf(self, client, auth_headers, shopping_data):
        shopping_data["type"] = "shopping"
        resp = client.post("/api/preview/pdf", data=_form(shopping_data), headers=auth_headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert 'filename="shopping-receipt-preview.pdf"' in resp.headers["content-disposition"]
        assert resp.content.startswith(b"%PDF")

    def test_stored_receipt_preview_and_pdf(self, client, auth_headers, banking_data):
        body = _create(client, auth_headers, "banking", banking_data)

        layout = client.get(f"/api/receipts/{body['id']}/preview", headers=auth_headers).json()
        assert layout["branding"]["name"] == "Kuda"

        resp = client.get(f"/api/receipts/{body['id']}/pdf", headers=auth_headers)
        assert resp.status_code == 200
        assert 'filename="Transaction to Jane Doe-receipt.pdf"' in resp.headers["content-disposition"]
        assert resp.content.startswith(b"%PDF")


class TestBlobs:
    def test_missing_blob(self, client):
        assert client.get("/blobs/logos/nobody/missing.png").status_code == 404
