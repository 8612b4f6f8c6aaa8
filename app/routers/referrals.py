import logging
import random
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.database import get_db
from app.models.referral import PendingReferral, Referral, ReferralCode
from app.models.token import Token
from app.schemas.referral import CreateReferralRequest, SavePendingReferralRequest, TrackReferralRequest
from app.services import chat_tokens
from app.utils.responses import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/referrals", tags=["referrals"])

REFERRAL_REWARD = 50_000
REFERRAL_PENDING = "pending"
REFERRAL_COMPLETED = "completed"


def _can_create_code(db: Session, wallet: str) -> bool:
    if db.query(Token.id).filter(Token.wallet_address == wallet).first():
        return True
    if settings.is_development():
        return True
    return wallet == settings.DEVELOPER_WALLET.lower()


@router.post("/create")
def create_referral_code(payload: CreateReferralRequest, db: Session = Depends(get_db)):
    if not payload.walletAddress:
        return error_response(400, "Wallet address required")

    wallet = payload.walletAddress.strip().lower()
    if not _can_create_code(db, wallet):
        return error_response(403, "You must own an xFrora NFT to create a referral link.")

    existing = db.query(ReferralCode).filter(ReferralCode.wallet_address == wallet).first()
    if existing:
        return {"code": existing.code}

    code = f"ref_{wallet[-6:]}"
    try:
        db.add(ReferralCode(wallet_address=wallet, code=code))
        db.commit()
    except IntegrityError:
        # Another wallet already owns these last six characters
        db.rollback()
        code = f"ref_{wallet[-6:]}{random.randint(0, 999)}"
        db.add(ReferralCode(wallet_address=wallet, code=code))
        db.commit()

    logger.info("🔗 Referral code %s created for %s…", code, wallet[:10])
    return {"code": code}


@router.post("/save-pending")
def save_pending_referral(payload: SavePendingReferralRequest, db: Session = Depends(get_db)):
    if payload.x_user_id in (None, "") or not payload.referral_code:
        return error_response(400, "Missing x_user_id or referral_code")

    x_user_id = str(payload.x_user_id)
    logger.info("💾 Saving referral code to pending_referrals: %s -> %s", x_user_id, payload.referral_code)

    if not db.query(ReferralCode.id).filter(ReferralCode.code == payload.referral_code).first():
        logger.warning("⚠️ Referral code not found: %s", payload.referral_code)
        return {"success": False, "message": "Invalid referral code"}

    pending = db.query(PendingReferral).filter(PendingReferral.x_user_id == x_user_id).first()
    if pending:
        pending.referral_code = payload.referral_code
        pending.created_at = datetime.utcnow()
        db.commit()
        return {"success": True, "message": "Pending referral updated"}

    db.add(PendingReferral(x_user_id=x_user_id, referral_code=payload.referral_code))
    db.commit()
    return {"success": True, "message": "Pending referral saved"}


@router.get("/stats")
def referral_stats(wallet: Optional[str] = Query(default=None), db: Session = Depends(get_db)):
    if not wallet:
        return error_response(400, "Wallet required")

    wallet = wallet.strip().lower()
    referrals = db.query(Referral).filter(Referral.referrer_wallet == wallet).all()
    code = db.query(ReferralCode).filter(ReferralCode.wallet_address == wallet).first()

    return {
        "referralCode": code.code if code else None,
        "totalReferrals": len(referrals),
        "totalCreditsEarned": sum(int(r.reward_credits or 0) for r in referrals if r.status == REFERRAL_COMPLETED),
        "pendingCredits": sum(int(r.reward_credits or 0) for r in referrals if r.status == REFERRAL_PENDING),
    }


@router.post("/track")
def track_referral(payload: TrackReferralRequest, db: Session = Depends(get_db)):
    if not payload.refereeWallet or not payload.referralCode:
        return error_response(400, "Missing data")

    referee = payload.refereeWallet.strip().lower()
    code = db.query(ReferralCode).filter(ReferralCode.code == payload.referralCode).first()
    if not code:
        return error_response(404, "Invalid code")

    referrer = code.wallet_address.lower()
    if referrer == referee:
        return error_response(400, "Self-referral not allowed")

    already = db.query(func.count(Referral.id)).filter(Referral.referee_wallet == referee).scalar()
    if already:
        return {"success": False, "message": "Already referred"}

    referral = Referral(
        referrer_wallet=referrer,
        referee_wallet=referee,
        status=REFERRAL_PENDING,
        reward_credits=REFERRAL_REWARD,
    )
    db.add(referral)
    db.commit()

    # Called after a confirmed mint, so the referrer is paid right away
    try:
        chat_tokens.add_tokens(db, referrer, REFERRAL_REWARD)
        referral.status = REFERRAL_COMPLETED
        referral.rewarded_at = datetime.utcnow()
        db.commit()
        logger.info("✅ Referral reward awarded: %s received %s credits", referrer, REFERRAL_REWARD)
    except Exception as e:
        db.rollback()
        logger.error("Error awarding referral credits: %s", e)

    return {"success": True}
