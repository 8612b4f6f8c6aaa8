# app/services/facilitator.py
"""
Coinbase CDP x402 facilitator client.

`settle_payment` is the call that actually moves the USDC on-chain; the
requirements sent with it are always `x402.PAYMENT_REQUIREMENTS`.
"""
import logging
import secrets
import time

import httpx
from jose import jwt

from app.core.config import settings
from app.schemas.x402 import SettlementResult, VerificationResult
from app.services.x402 import PAYMENT_REQUIREMENTS, X402_VERSION, describe_payload

logger = logging.getLogger(__name__)

SETTLE_PATH = "/platform/v2/x402/settle"
VERIFY_PATH = "/platform/v2/x402/verify"

SETTLE_JWT_EXPIRES = 120
VERIFY_JWT_EXPIRES = 60


def _api_key_secret() -> str:
    # PEM secrets are often stored with literal "\n" in env files
    return settings.CDP_API_KEY_SECRET.replace("\\n", "\n")


def keys_configured() -> bool:
    return bool(settings.CDP_API_KEY_ID and settings.CDP_API_KEY_SECRET)


def generate_cdp_jwt(method: str, host: str, path: str, expires_in: int = SETTLE_JWT_EXPIRES) -> str:
    now = int(time.time())
    claims = {
        "sub": settings.CDP_API_KEY_ID,
        "iss": "cdp",
        "nbf": now,
        "exp": now + expires_in,
        "uris": [f"{method} {host}{path}"],
    }
    headers = {
        "kid": settings.CDP_API_KEY_ID,
        "nonce": secrets.token_hex(16),
        "typ": "JWT",
    }
    return jwt.encode(claims, _api_key_secret(), algorithm="ES256", headers=headers)


def _request_body(payment_payload: dict) -> dict:
    return {
        "x402Version": X402_VERSION,
        "paymentPayload": payment_payload,
        "paymentRequirements": PAYMENT_REQUIREMENTS.as_wire(),
    }


def _post(path: str, payment_payload: dict, expires_in: int) -> httpx.Response:
    host = settings.CDP_API_HOST
    token = generate_cdp_jwt("POST", host, path, expires_in)
    return httpx.post(
        f"https://{host}{path}",
        json=_request_body(payment_payload),
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        },
        timeout=settings.FACILITATOR_TIMEOUT_SECONDS,
    )


def settle_payment(payment_payload: dict) -> SettlementResult:
    if not keys_configured():
        logger.error("❌ CDP API keys not configured")
        return SettlementResult(success=False, error_reason="api_keys_missing")

    logger.info("💰 Settling payment with CDP facilitator: %s", describe_payload(payment_payload))
    try:
        response = _post(SETTLE_PATH, payment_payload, SETTLE_JWT_EXPIRES)
    except Exception as e:
        logger.error("❌ Settlement error: %s", e)
        return SettlementResult(success=False, error_reason="exception")

    if not response.is_success:
        logger.error("❌ CDP facilitator settlement error: %s %s", response.status_code, response.text)
        return SettlementResult(success=False, error_reason="facilitator_error")

    try:
        result = SettlementResult.model_validate(response.json())
    except ValueError as e:
        logger.error("❌ Unreadable settlement response: %s", e)
        return SettlementResult(success=False, error_reason="exception")

    logger.info("✅ Settlement response: success=%s tx=%s", result.success, result.transaction)
    return result


def verify_payment(payment_payload: dict) -> VerificationResult:
    if not keys_configured():
        logger.error("❌ CDP API keys not configured")
        return VerificationResult(is_valid=False, invalid_reason="api_keys_missing")

    try:
        response = _post(VERIFY_PATH, payment_payload, VERIFY_JWT_EXPIRES)
    except Exception as e:
        logger.error("❌ CDP facilitator verification error: %s", e)
        return VerificationResult(is_valid=False, invalid_reason="exception")

    if not response.is_success:
        logger.error("❌ CDP facilitator verify error: %s %s", response.status_code, response.text)
        return VerificationResult(is_valid=False, invalid_reason="facilitator_error")

    try:
        result = VerificationResult.model_validate(response.json())
    except ValueError as e:
        logger.error("❌ Unreadable verify response: %s", e)
        return VerificationResult(is_valid=False, invalid_reason="exception")

    if result.is_valid:
        logger.info("✅ Payment verified by CDP facilitator (payer=%s)", result.payer)
    else:
        logger.warning("❌ Payment verification failed: %s", result.invalid_reason or "unknown")
    return result
