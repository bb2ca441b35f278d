"""
Unit tests per il client MVola.

Le richieste HTTP sono servite da httpx.MockTransport.
"""

import hashlib
import json
from decimal import Decimal

import httpx
import pytest

from printpro.core.exceptions import PaymentGatewayError
from printpro.services.mvola_client import MVolaClient


def make_client(handler) -> MVolaClient:
    return MVolaClient(
        base_url="https://mvola.test",
        merchant_id="MERCHANT-1",
        secret_key="s3cret",
        callback_url="https://printpro.test/api/v1/payments/mvola/callback",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


class TestSignature:

    def test_signature_sorted_keys(self):
        """Test firma = sha256('a=1&b=2' + segreto)."""
        client = make_client(lambda request: httpx.Response(200))
        expected = hashlib.sha256(b"a=1&b=2s3cret").hexdigest()

        assert client.generate_signature({"b": 2, "a": 1}) == expected

    def test_integral_amount_without_decimals(self):
        client = make_client(lambda request: httpx.Response(200))

        assert client.generate_signature({"amount": Decimal("25000.00")}) == client.generate_signature({"amount": 25000})

    def test_verify_callback(self):
        client = make_client(lambda request: httpx.Response(200))
        data = {"transactionId": "TX-1", "status": "SUCCESS", "amount": 25000}
        payload = {**data, "signature": client.generate_signature(data)}

        assert client.verify_signature(payload) is True
        assert client.verify_signature({**payload, "status": "FAILED"}) is False
        assert client.verify_signature(data) is False


class TestRequests:

    async def test_initiate_payment(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"transactionId": "TX-42", "status": "PENDING"})

        client = make_client(handler)
        transaction = await client.initiate_payment(Decimal("25000"), "0341234567", "PAY-20240305-0001")

        assert transaction.transaction_id == "TX-42"
        assert transaction.status == "PENDING"
        assert captured["path"] == "/api/v1/payments/initiate"
        assert captured["auth"] == "Bearer s3cret"

        body = captured["body"]
        assert body["amount"] == 25000
        assert body["merchantId"] == "MERCHANT-1"
        signature = body.pop("signature")
        assert signature == client.generate_signature(body)

    async def test_http_error(self):
        client = make_client(lambda request: httpx.Response(400, json={"message": "Solde insuffisant"}))

        with pytest.raises(PaymentGatewayError, match="Solde insuffisant") as exc_info:
            await client.initiate_payment(Decimal("1000"), "0341234567", "PAY-1")
        assert exc_info.value.status_code == 502
        assert exc_info.value.extra == {"status_code": 400}

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("timeout", request=request)

        client = make_client(handler)

        with pytest.raises(PaymentGatewayError):
            await client.check_status("TX-1")

    async def test_missing_transaction_id(self):
        client = make_client(lambda request: httpx.Response(200, json={"status": "PENDING"}))

        with pytest.raises(PaymentGatewayError):
            await client.initiate_payment(Decimal("1000"), "0341234567", "PAY-1")

    async def test_check_status_path(self):
        paths = []

        def handler(request):
            paths.append(request.url.path)
            return httpx.Response(200, json={"transactionId": "TX-9", "status": "SUCCESS"})

        client = make_client(handler)
        transaction = await client.check_status("TX-9")

        assert paths == ["/api/v1/payments/TX-9/status"]
        assert transaction.status == "SUCCESS"

    async def test_balance(self):
        client = make_client(
            lambda request: httpx.Response(200, json={"balance": 150000, "currency": "MGA", "extra": 1})
        )

        assert await client.get_balance() == {"balance": 150000, "currency": "MGA"}
