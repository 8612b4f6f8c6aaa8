import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.api_keys import require_admin_key
from app.database import get_db
from app.schemas.chat import ClearMintRateLimitRequest
from app.services import rate_limit
from app.utils.responses import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


@router.post("/clear-mint-rate-limit")
def clear_mint_rate_limit(payload: ClearMintRateLimitRequest, db: Session = Depends(get_db)):
    if not payload.wallet:
        return error_response(400, "Missing wallet address parameter")

    wallet = payload.wallet.strip().lower()
    key = rate_limit.mint_key(wallet)

    if payload.action == "clear":
        rate_limit.clear(db, key)
        logger.info("🧹 Cleared mint rate limit for %s", wallet)
        return {
            "success": True,
            "message": "Mint rate limit cleared for wallet",
            "wallet": wallet,
            "clearedKeys": [key],
        }

    if payload.action == "check":
        return {
            "wallet": wallet,
            "mintRateLimitKey": key,
            "currentCount": rate_limit.get_count(db, key),
            "limit": rate_limit.MINT_LIMIT,
            "window": "1 hour",
        }

    return error_response(400, "Invalid action. Use 'clear' or 'check'")
