import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional
from web3 import Web3

from app.database import get_db
from app.models.chat_token import ChatToken
from app.models.token import Token, STATUS_MINTED
from app.schemas.chat import CheckNFTRequest, UserRankRequest
from app.services import chat_tokens
from app.services.nft_ownership import check_ownership
from app.utils.responses import NO_CACHE_HEADERS, error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.get("/token-balance")
def token_balance(wallet: Optional[str] = Query(default=None), db: Session = Depends(get_db)):
    if not wallet:
        return error_response(400, "Missing wallet parameter")

    record = chat_tokens.get_record(db, wallet)
    if record is None:
        # Only wallets that minted get a ledger row
        if chat_tokens.has_minted(db, wallet):
            try:
                chat_tokens.create_empty_record(db, wallet)
            except Exception as e:
                db.rollback()
                logger.error("Database error creating chat_tokens record: %s", e)
        return JSONResponse(content={"balance": 0, "points": 0}, headers=NO_CACHE_HEADERS)

    return JSONResponse(
        content={"balance": int(record.balance or 0), "points": int(record.points or 0)},
        headers=NO_CACHE_HEADERS,
    )


@router.post("/check-nft")
def check_nft(payload: CheckNFTRequest, db: Session = Depends(get_db)):
    if not payload.walletAddress:
        return error_response(400, "Missing walletAddress")
    if not Web3.is_address(payload.walletAddress):
        return error_response(400, "Invalid wallet address")

    wallet = Web3.to_checksum_address(payload.walletAddress)
    try:
        return check_ownership(db, wallet)
    except Exception as e:
        logger.error("❌ Both contract and OpenSea checks failed: %s", e)
        return error_response(
            500,
            "Failed to check NFT ownership",
            "Both contract and OpenSea API checks failed",
            details=str(e),
        )


def _minted_wallets(db: Session) -> set[str]:
    return {
        row.wallet_address.lower()
        for row in db.query(Token.wallet_address)
        .filter(or_(Token.status == STATUS_MINTED, Token.token_id > 0))
        .all()
        if row.wallet_address
    }


def _ranked(db: Session, minted_wallets: set[str]):
    return (
        db.query(ChatToken)
        .filter(ChatToken.wallet_address.in_(sorted(minted_wallets)))
        .order_by(ChatToken.points.desc(), ChatToken.total_tokens_spent.desc())
    )


@router.get("/leaderboard")
def leaderboard(
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    minted_wallets = _minted_wallets(db)
    if not minted_wallets:
        return {"leaderboard": [], "total": 0, "limit": limit, "offset": offset}

    ranked = _ranked(db, minted_wallets)
    total = ranked.count()
    page = ranked.offset(offset).limit(limit).all()

    return {
        "leaderboard": [
            {
                "rank": offset + index + 1,
                "wallet_address": row.wallet_address,
                "points": int(row.points or 0),
                "total_tokens_spent": int(row.total_tokens_spent or 0),
                "balance": int(row.balance or 0),
                "updated_at": row.updated_at.isoformat() if row.updated_at else None,
            }
            for index, row in enumerate(page)
        ],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("/leaderboard")
def user_rank(payload: UserRankRequest, db: Session = Depends(get_db)):
    """Rank of one wallet among minters; wallets that never minted are unranked."""
    if not payload.walletAddress:
        return error_response(400, "Missing walletAddress")

    wallet = chat_tokens.normalize_wallet(payload.walletAddress)
    unranked = {"rank": None, "points": 0, "total_users": 0}

    if not chat_tokens.has_minted(db, wallet):
        return unranked
    record = chat_tokens.get_record(db, wallet)
    if record is None:
        return unranked

    ranked_wallets = [row.wallet_address for row in _ranked(db, _minted_wallets(db)).all()]
    rank = ranked_wallets.index(wallet) + 1 if wallet in ranked_wallets else None

    return {"rank": rank, "points": int(record.points or 0), "total_users": len(ranked_wallets)}
