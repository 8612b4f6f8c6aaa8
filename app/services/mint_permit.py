# app/services/mint_permit.py
import logging
import time
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.payment import Payment, PAYMENT_COMPLETED
from app.models.token import Token, STATUS_PAID
from app.schemas.mint import MintAuth
from app.schemas.x402 import SettlementResult
from app.services import contract as chain
from app.services.eip712 import normalize_uint256, server_signer_address, sign_mint_auth

logger = logging.getLogger(__name__)

PERMIT_TTL_SECONDS = 3600


class PaymentReusedError(Exception):
    pass


def find_token(db: Session, fid: str) -> Optional[Token]:
    return db.query(Token).filter(Token.x_user_id == fid).first()


def find_payment(db: Session, fid: str) -> Optional[Payment]:
    return (
        db.query(Payment)
        .filter(Payment.x_user_id == fid)
        .order_by(Payment.id.desc())
        .first()
    )


def _resolve_token_uri(db: Session, fid: str, token_record: Optional[Token]) -> str:
    if token_record and token_record.metadata_uri:
        return token_record.metadata_uri

    try:
        row = find_token(db, fid)
        if row and row.metadata_uri:
            logger.info("✅ Found token metadata for %s: %s", fid, row.metadata_uri)
            return row.metadata_uri
    except Exception as e:
        logger.error("❌ Database error fetching metadata: %s", e)

    placeholder = f"ipfs://QmPlaceholder{int(time.time() * 1000)}"
    logger.warning("⚠️ Using placeholder tokenURI: %s", placeholder)
    return placeholder


def issue_mint_permit(db: Session, wallet: str, fid: str, token_record: Optional[Token]) -> dict:
    logger.info("📝 Generating mint permit for wallet %s…, Farcaster user %s", wallet[:10], fid)

    nonce = chain.get_nonce(wallet)
    auth = MintAuth(
        to=wallet,
        payer=wallet,
        xUserId=normalize_uint256(chain.hash_x_user_id(fid)),
        tokenURI=_resolve_token_uri(db, fid, token_record),
        nonce=int(normalize_uint256(nonce)),
        deadline=int(time.time()) + PERMIT_TTL_SECONDS,
    )
    signature = sign_mint_auth(auth)
    logger.info("✅ Mint permit signed for %s by %s", fid, server_signer_address())
    return {"auth": auth.as_wire(), "signature": signature}


def record_settlement(
    db: Session,
    fid: str,
    wallet: str,
    settlement: SettlementResult,
    token_record: Optional[Token],
) -> Optional[Payment]:
    """
    Persist a settled payment. A transaction hash that is already on file
    raises PaymentReusedError; the token status flip is best-effort.
    """
    if not settlement.transaction:
        logger.warning("⚠️ Settlement returned no transaction hash; nothing to record")
        return None

    existing = db.query(Payment).filter(Payment.transaction_hash == settlement.transaction).first()
    if existing:
        logger.error("❌ Transaction already used: %s", settlement.transaction)
        raise PaymentReusedError(settlement.transaction)

    paying_wallet = (settlement.payer or wallet).lower()
    payment = Payment(
        x_user_id=fid,
        wallet_address=paying_wallet,
        amount=settings.PAYMENT_AMOUNT,
        transaction_hash=settlement.transaction,
        status=PAYMENT_COMPLETED,
        created_at=datetime.utcnow(),
    )
    db.add(payment)
    db.commit()
    logger.info("💾 Transaction recorded in payments table")

    try:
        db.query(Token).filter(Token.x_user_id == fid).update(
            {"status": STATUS_PAID, "wallet_address": paying_wallet}
        )
        db.commit()
        if token_record is not None:
            db.refresh(token_record)
        logger.info("✅ Token status updated to 'paid'")
    except Exception as e:
        db.rollback()
        logger.error("⚠️ Failed to update token status: %s", e)

    return payment
