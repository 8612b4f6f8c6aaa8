import logging

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
from web3 import Web3

from app.auth.api_keys import require_update_token_secret
from app.core.config import settings
from app.database import get_db
from app.models.payment import PAYMENT_COMPLETED
from app.models.token import Token, STATUS_MINTED, STATUS_PAID
from app.schemas.mint import CheckMintStatusRequest, MintPermitRequest, UpdateTokenIdRequest
from app.services import contract as chain
from app.services import facilitator, mint_permit, rate_limit
from app.services.eip712 import SigningError
from app.services.mint_permit import PaymentReusedError
from app.services.nft_ownership import ensure_chat_tokens_record_for_nft_owner, find_nft_image, ipfs_to_gateway
from app.services.x402 import PaymentHeaderError, decode_payment_header, payment_required_response
from app.utils.responses import NO_CACHE_HEADERS, error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["mint"])


def _issue(db: Session, wallet: str, fid: str, token_record) -> JSONResponse:
    try:
        return JSONResponse(content=mint_permit.issue_mint_permit(db, wallet, fid, token_record))
    except SigningError as e:
        logger.error("❌ Mint permit signing failed: %s", e)
        return error_response(500, "Internal server error", str(e))


@router.get("/mint-permit-v2")
def mint_permit_discovery():
    # x402 discovery tools probe with GET
    logger.info("📮 GET mint-permit-v2 - returning 402 for discovery")
    return payment_required_response()


@router.post("/mint-permit-v2")
def mint_permit_v2(
    payload: MintPermitRequest,
    x_payment: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
):
    wallet = (payload.wallet or "").strip()
    if not wallet or not payload.farcaster_user_id:
        return error_response(400, "Missing required fields: wallet and farcaster_user_id")
    if not Web3.is_address(wallet):
        return error_response(400, "Invalid wallet address")

    fid = str(payload.farcaster_user_id)
    normalized_wallet = wallet.lower()

    token_record = None
    payment_record = None
    try:
        token_record = mint_permit.find_token(db, fid)
        payment_record = mint_permit.find_payment(db, fid)
    except Exception as e:
        db.rollback()
        logger.error("⚠️ Token lookup failed: %s", e)

    # 🔒 Reject already-minted identities before any payment is taken
    if token_record is not None and token_record.is_minted:
        return error_response(
            400,
            "Farcaster User ID already minted",
            "This Farcaster account has already minted an NFT. Each account can only mint once.",
        )
    try:
        if chain.is_x_user_id_used(fid):
            logger.error("❌ Farcaster user %s already minted. Rejecting payment.", fid)
            return error_response(
                400,
                "Farcaster User ID already minted",
                "This Farcaster account has already minted an NFT. Each account can only mint once.",
            )
    except Exception as e:
        # The mint transaction enforces uniqueness on-chain anyway
        logger.warning("⚠️ Contract check failed, continuing: %s", e)

    recorded_wallet = None
    if token_record is not None and token_record.wallet_address:
        recorded_wallet = token_record.wallet_address.lower()
    elif payment_record is not None and payment_record.wallet_address:
        recorded_wallet = payment_record.wallet_address.lower()

    has_recorded_payment = (
        (token_record is not None and token_record.status == STATUS_PAID)
        or (payment_record is not None and payment_record.status == PAYMENT_COMPLETED)
    )

    if has_recorded_payment:
        logger.info("💳 Payment already recorded for %s. Skipping 402 flow.", fid)
        if recorded_wallet and recorded_wallet != normalized_wallet:
            logger.error("❌ Wallet mismatch for recorded payment: %s != %s", recorded_wallet, normalized_wallet)
            return error_response(
                400,
                "Payment already completed with another wallet",
                f"Payment was completed using wallet {recorded_wallet}. "
                "Please reconnect with the same wallet to continue.",
            )
        if token_record is None:
            logger.error("❌ No generated NFT record found for paid user %s", fid)
            return error_response(
                400,
                "Generated NFT not found",
                "We could not find the generated NFT for this payment. Please regenerate your NFT.",
            )
        return _issue(db, wallet, fid, token_record)

    # Only unpaid attempts count against the window
    if not rate_limit.check_mint_rate_limit(db, normalized_wallet):
        return error_response(429, "Rate limit exceeded", "Too many mint attempts. Please try again later.")

    if not x_payment:
        logger.info("💳 No payment header - returning 402")
        return payment_required_response()

    try:
        payment_payload = decode_payment_header(x_payment)
    except PaymentHeaderError as e:
        logger.error("❌ Invalid payment header format: %s", e)
        return error_response(400, "Invalid payment header")

    if settings.X402_VERIFY_BEFORE_SETTLE:
        verification = facilitator.verify_payment(payment_payload)
        if not verification.is_valid:
            return error_response(402, "Payment verification failed", reason=verification.invalid_reason)

    settlement = facilitator.settle_payment(payment_payload)
    if not settlement.success:
        logger.error("❌ Payment settlement failed: %s", settlement.error_reason)
        return error_response(402, "Payment settlement failed", reason=settlement.error_reason)

    logger.info("✅ Payment settled (payer=%s, tx=%s)", settlement.payer, settlement.transaction)

    try:
        mint_permit.record_settlement(db, fid, wallet, settlement, token_record)
    except PaymentReusedError:
        return error_response(400, "Payment already used", "This payment has already been used to mint an NFT")
    except Exception as e:
        # USDC has moved already; the permit is still owed
        db.rollback()
        logger.error("⚠️ Recording the payment failed: %s", e)

    return _issue(db, wallet, fid, token_record)


@router.post("/check-mint-status")
def check_mint_status(payload: CheckMintStatusRequest, db: Session = Depends(get_db)):
    if payload.x_user_id in (None, ""):
        return error_response(400, "Missing x_user_id")

    x_user_id = str(payload.x_user_id)
    try:
        token = db.query(Token).filter(Token.x_user_id == x_user_id).first()
    except Exception as e:
        logger.error("❌ Database check error: %s", e)
        return error_response(500, "Database check failed", str(e))

    token_id = token.token_id if token else None
    return {
        "hasMinted": bool(token_id and token_id > 0),
        "hasMetadata": bool(token and token.metadata_uri),
        "tokenId": token_id or 0,
        "imageUri": token.image_uri if token else None,
        "metadataUri": token.metadata_uri if token else None,
    }


@router.post("/update-token-id", dependencies=[Depends(require_update_token_secret)])
def update_token_id(payload: UpdateTokenIdRequest, db: Session = Depends(get_db)):
    if payload.x_user_id in (None, "") or payload.token_id is None:
        return error_response(400, "Missing required fields: x_user_id, token_id")

    x_user_id = str(payload.x_user_id)
    token_id = int(payload.token_id)
    logger.info("🔄 Update token_id: %s -> %s (tx %s)", x_user_id, token_id, (payload.transaction_hash or "")[:20])

    try:
        token = db.query(Token).filter(Token.x_user_id == x_user_id).first()
        if not token:
            return error_response(404, "Token not found", f"No generated NFT for x_user_id {x_user_id}")
        token.token_id = token_id
        token.status = STATUS_MINTED
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error("❌ Database update error: %s", e)
        return error_response(500, "Database update failed", str(e))

    # chat_tokens bookkeeping must not fail the mint update
    if token.wallet_address:
        try:
            ensure_chat_tokens_record_for_nft_owner(db, token.wallet_address)
        except Exception as e:
            db.rollback()
            logger.error("⚠️ Failed to create chat_tokens record after mint: %s", e)

    return {"success": True, "x_user_id": x_user_id, "token_id": token_id}


@router.get("/recent-nfts")
def recent_nfts(db: Session = Depends(get_db)):
    try:
        rows = (
            db.query(Token)
            .filter(Token.token_id > 0)
            .order_by(Token.id.desc())
            .limit(8)
            .all()
        )
    except Exception as e:
        logger.error("❌ Error fetching recent NFTs: %s", e)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e), "nfts": []})

    nfts = [
        {"id": row.id, "tokenId": row.token_id, "image": ipfs_to_gateway(row.image_uri) or ""}
        for row in rows
    ]
    return {"success": True, "count": len(nfts), "nfts": nfts}


@router.get("/nft-image")
def nft_image(
    wallet: Optional[str] = Query(default=None),
    nft_token_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    if not wallet and not nft_token_id:
        return error_response(400, "Missing wallet or nft_token_id parameter")

    token_id = None
    if nft_token_id:
        try:
            token_id = int(nft_token_id)
        except ValueError:
            logger.warning("⚠️ Ignoring non-numeric nft_token_id %r", nft_token_id)

    image_url, found_token_id = find_nft_image(db, wallet=wallet, nft_token_id=token_id)
    if not image_url:
        logger.info("❌ No NFT image found for wallet=%s nft_token_id=%s", wallet, nft_token_id)
        return JSONResponse(
            status_code=404,
            content={"hasNFT": False, "imageUrl": None, "tokenId": None},
            headers=NO_CACHE_HEADERS,
        )

    return JSONResponse(
        content={"hasNFT": True, "imageUrl": image_url, "tokenId": found_token_id},
        headers=NO_CACHE_HEADERS,
    )
