import base64
import json

import pytest

from app.core.config import settings
from app.services.x402 import (
    PAYMENT_REQUIREMENTS,
    PaymentHeaderError,
    decode_payment_header,
    payment_required_body,
)

PAYLOAD = {
    "x402Version": 1,
    "scheme": "exact",
    "network": "base",
    "payload": {
        "signature": "0xdeadbeef",
        "authorization": {"from": "0xabc", "to": "0xdef", "value": "5000000"},
    },
}


def test_payment_required_body_shape():
    body = payment_required_body()
    assert body["x402Version"] == 1
    assert len(body["accepts"]) == 1

    accepted = body["accepts"][0]
    assert accepted == {
        "scheme": "exact",
        "network": "base",
        "maxAmountRequired": "5000000",
        "resource": settings.mint_resource_url(),
        "description": PAYMENT_REQUIREMENTS.description,
        "mimeType": "application/json",
        "payTo": settings.PAYMENT_RECIPIENT_ADDRESS,
        "maxTimeoutSeconds": 60,
        "asset": settings.USDC_ADDRESS,
        "extra": {"name": "USD Coin", "version": "2"},
    }


def test_payment_requirements_are_frozen():
    with pytest.raises(Exception):
        PAYMENT_REQUIREMENTS.max_amount_required = "1"


def test_get_returns_402(client):
    response = client.get("/api/mint-permit-v2")
    assert response.status_code == 402
    assert response.headers["x-payment-required"] == "true"
    assert response.json() == payment_required_body()


def test_decode_base64_header():
    raw = base64.b64encode(json.dumps(PAYLOAD).encode()).decode()
    assert decode_payment_header(raw) == PAYLOAD


def test_decode_unpadded_urlsafe_header():
    raw = base64.urlsafe_b64encode(json.dumps(PAYLOAD).encode()).decode().rstrip("=")
    assert decode_payment_header(raw) == PAYLOAD


def test_decode_raw_json_header():
    assert decode_payment_header(json.dumps(PAYLOAD)) == PAYLOAD


@pytest.mark.parametrize("raw", ["", "   ", "not-base64!!", "{broken json", base64.b64encode(b"[1, 2]").decode()])
def test_decode_invalid_header(raw):
    with pytest.raises(PaymentHeaderError):
        decode_payment_header(raw)
