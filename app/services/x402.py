# app/services/x402.py
import base64
import binascii
import json
import logging

from fastapi.responses import JSONResponse

from app.core.config import settings
from app.schemas.x402 import PaymentRequirements

logger = logging.getLogger(__name__)

X402_VERSION = 1

# Built once: the 402 body and the facilitator settle/verify calls must carry
# exactly this object or the facilitator rejects the settlement.
PAYMENT_REQUIREMENTS = PaymentRequirements(
    scheme="exact",
    network=settings.payment_network(),
    max_amount_required=settings.PAYMENT_AMOUNT,
    resource=settings.mint_resource_url(),
    description="Mint permit for xFrora NFT - Pay 5 USDC to mint your AI-crafted identity",
    mime_type="application/json",
    pay_to=settings.PAYMENT_RECIPIENT_ADDRESS,
    max_timeout_seconds=60,
    asset=settings.USDC_ADDRESS,
)


class PaymentHeaderError(ValueError):
    pass


def payment_required_body() -> dict:
    return {
        "x402Version": X402_VERSION,
        "accepts": [PAYMENT_REQUIREMENTS.as_wire()],
    }


def payment_required_response() -> JSONResponse:
    return JSONResponse(
        status_code=402,
        content=payment_required_body(),
        headers={"X-Payment-Required": "true"},
    )


def _b64decode(raw: str) -> bytes:
    padded = raw + "=" * (-len(raw) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError):
        return base64.urlsafe_b64decode(padded)


def decode_payment_header(raw: str | None) -> dict:
    """
    Decode an X-PAYMENT header. x402 clients send base64 JSON, some send
    the JSON as-is.
    """
    if not raw or not raw.strip():
        raise PaymentHeaderError("Empty payment header")

    value = raw.strip()
    try:
        if value.startswith("{"):
            payload = json.loads(value)
        else:
            payload = json.loads(_b64decode(value).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise PaymentHeaderError(f"Invalid payment header: {e}") from e

    if not isinstance(payload, dict):
        raise PaymentHeaderError("Payment header must decode to a JSON object")
    return payload


def describe_payload(payload: dict) -> dict:
    """Loggable summary of a payment payload (no signature material)."""
    inner = payload.get("payload") or {}
    authorization = inner.get("authorization") or {}
    return {
        "x402Version": payload.get("x402Version"),
        "scheme": payload.get("scheme"),
        "network": payload.get("network"),
        "from": str(authorization.get("from", ""))[:10],
        "to": str(authorization.get("to", ""))[:10],
        "value": authorization.get("value"),
    }
