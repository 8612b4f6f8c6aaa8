# app/auth/api_keys.py
import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from app.core.config import settings


def _matches(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def require_admin_key(x_admin_api_key: Optional[str] = Header(default=None)) -> None:
    if not settings.ADMIN_API_KEY:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Admin API key not configured")
    if not _matches(x_admin_api_key, settings.ADMIN_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized. Admin API key required in header: x-admin-api-key",
        )


def require_update_token_secret(x_update_token_secret: Optional[str] = Header(default=None)) -> None:
    # Only enforced once a secret is configured
    if not settings.UPDATE_TOKEN_SECRET:
        return
    if not _matches(x_update_token_secret, settings.UPDATE_TOKEN_SECRET):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
