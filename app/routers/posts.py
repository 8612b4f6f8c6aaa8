import logging
from collections import Counter
from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from web3 import Web3

from app.auth.api_keys import require_admin_key
from app.database import get_db
from app.models.post import Post, PostFav, WeeklyReward
from app.models.token import Token
from app.models.user import User
from app.schemas.posts import CreatePostRequest
from app.services import chat_tokens
from app.services import contract as chain
from app.services.chat_tokens import InsufficientTokensError
from app.utils.responses import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])

POSTS_LIMIT = 200
TOKENS_TO_BURN = 20_000
POINTS_TO_AWARD = 8
MAX_CONTENT_LENGTH = 280

REWARD_AMOUNT = 1_000_000
CLEANUP_DAYS = 14


def current_week(today: date | None = None) -> tuple[date, date]:
    """Monday..Sunday of the week containing `today`."""
    today = today or date.today()
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)


def _post_out(post: Post) -> dict:
    return {
        "id": post.id,
        "nft_token_id": int(post.nft_token_id or 0),
        "content": post.content or "",
        "fav_count": int(post.fav_count or 0),
        "created_at": post.created_at.isoformat() if post.created_at else None,
    }


def _resolve_nft_token_id(db: Session, checksum_wallet: str) -> int:
    wallet = checksum_wallet.lower()

    try:
        if chain.balance_of(checksum_wallet) > 0:
            token_id = chain.token_of_owner_by_index(checksum_wallet, 0)
            if token_id > 0:
                return token_id
    except Exception as e:
        logger.warning("⚠️ Contract check failed, trying database: %s", e)

    user = db.query(User).filter(User.wallet_address == wallet).first()
    if user:
        token = db.query(Token).filter(Token.x_user_id == user.x_user_id).first()
        if token and token.token_id:
            return int(token.token_id)

    previous = (
        db.query(Post)
        .filter(Post.wallet_address == wallet, Post.nft_token_id > 0)
        .order_by(Post.id.desc())
        .first()
    )
    if previous:
        return int(previous.nft_token_id)

    logger.warning("⚠️ Could not determine NFT token ID for %s…, using fallback", wallet[:10])
    return 1


@router.get("")
def list_posts(db: Session = Depends(get_db)):
    rows = (
        db.query(Post)
        .filter(Post.created_at.isnot(None))
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(POSTS_LIMIT)
        .all()
    )
    return {"posts": [_post_out(p) for p in rows], "total": len(rows)}


@router.post("/create")
def create_post(payload: CreatePostRequest, db: Session = Depends(get_db)):
    if not payload.walletAddress or not payload.content:
        return error_response(400, "Missing required fields: walletAddress and content")
    if not Web3.is_address(payload.walletAddress):
        return error_response(400, "Invalid wallet address")
    if len(payload.content) > MAX_CONTENT_LENGTH:
        return error_response(400, f"Content too long. Maximum {MAX_CONTENT_LENGTH} characters allowed.")
    if not payload.content.strip():
        return error_response(400, "Content cannot be empty")

    checksum_wallet = Web3.to_checksum_address(payload.walletAddress)
    wallet = checksum_wallet.lower()

    record = chat_tokens.get_record(db, wallet)
    current_balance = int(record.balance or 0) if record else 0
    if current_balance < TOKENS_TO_BURN:
        return error_response(402, "Insufficient token balance", required=TOKENS_TO_BURN, current=current_balance)

    token_id = _resolve_nft_token_id(db, checksum_wallet)

    try:
        updated = chat_tokens.spend_tokens(db, wallet, TOKENS_TO_BURN, POINTS_TO_AWARD)
    except InsufficientTokensError as e:
        return error_response(402, "Insufficient token balance", required=e.required, current=e.current)

    post = Post(
        wallet_address=wallet,
        nft_token_id=token_id,
        content=payload.content.strip(),
        fav_count=0,
        points_earned=POINTS_TO_AWARD,
        tokens_burned=TOKENS_TO_BURN,
    )
    db.add(post)
    db.commit()
    db.refresh(post)

    return {
        "success": True,
        "post": _post_out(post),
        "newBalance": int(updated.balance),
        "newPoints": int(updated.points),
        "tokensBurned": TOKENS_TO_BURN,
        "pointsEarned": POINTS_TO_AWARD,
    }


@router.get("/weekly-winners")
def weekly_winners(db: Session = Depends(get_db)):
    rows = (
        db.query(WeeklyReward)
        .order_by(WeeklyReward.week_start_date.desc(), WeeklyReward.id.desc())
        .limit(10)
        .all()
    )
    return {
        "winners": [
            {
                "id": r.id,
                "week_start_date": r.week_start_date.isoformat(),
                "week_end_date": r.week_end_date.isoformat(),
                "reward_type": r.reward_type,
                "winner_nft_token_id": r.winner_nft_token_id,
                "winner_post_id": r.winner_post_id,
                "tokens_awarded": int(r.tokens_awarded or 0),
                "status": r.status,
                "created_at": r.created_at.isoformat() if r.created_at else None,
            }
            for r in rows
        ]
    }


@router.post("/distribute-weekly-rewards", dependencies=[Depends(require_admin_key)])
def distribute_weekly_rewards(db: Session = Depends(get_db)):
    week_start, week_end = current_week()
    rewards = []

    top_post = (
        db.query(Post)
        .filter(Post.fav_count > 0)
        .order_by(Post.fav_count.desc(), Post.id.asc())
        .first()
    )
    if top_post:
        winner = top_post.wallet_address.lower()
        chat_tokens.add_tokens(db, winner, REWARD_AMOUNT)
        db.add(WeeklyReward(
            week_start_date=week_start,
            week_end_date=week_end,
            reward_type="most_favd_post",
            winner_wallet_address=winner,
            winner_nft_token_id=top_post.nft_token_id,
            winner_post_id=top_post.id,
            tokens_awarded=REWARD_AMOUNT,
            status="completed",
        ))
        db.commit()
        rewards.append({
            "type": "most_favd_post",
            "winner_nft_token_id": top_post.nft_token_id,
            "winner_post_id": top_post.id,
            "tokens_awarded": REWARD_AMOUNT,
            "fav_count": int(top_post.fav_count),
        })

    favs = db.query(PostFav.wallet_address, PostFav.nft_token_id).order_by(PostFav.id.asc()).all()
    if favs:
        counts = Counter(f.wallet_address.lower() for f in favs)
        first_token = {}
        for f in favs:
            first_token.setdefault(f.wallet_address.lower(), f.nft_token_id)
        # Counter.most_common keeps first-seen order on ties
        giver, given = counts.most_common(1)[0]
        chat_tokens.add_tokens(db, giver, REWARD_AMOUNT)
        db.add(WeeklyReward(
            week_start_date=week_start,
            week_end_date=week_end,
            reward_type="most_favs_given",
            winner_wallet_address=giver,
            winner_nft_token_id=first_token[giver],
            winner_post_id=None,
            tokens_awarded=REWARD_AMOUNT,
            status="completed",
        ))
        db.commit()
        rewards.append({
            "type": "most_favs_given",
            "winner_nft_token_id": first_token[giver],
            "tokens_awarded": REWARD_AMOUNT,
            "favs_given": given,
        })

    cutoff = datetime.utcnow() - timedelta(days=CLEANUP_DAYS)
    old_ids = [row.id for row in db.query(Post.id).filter(Post.created_at < cutoff).all()]
    if old_ids:
        db.query(PostFav).filter(PostFav.post_id.in_(old_ids)).delete(synchronize_session=False)
        db.query(Post).filter(Post.id.in_(old_ids)).delete(synchronize_session=False)
        db.commit()
    logger.info("🧹 Removed %s posts older than %s", len(old_ids), cutoff.date().isoformat())

    return {
        "success": True,
        "week": {"start": week_start.isoformat(), "end": week_end.isoformat()},
        "rewards": rewards,
        "cleanup": {
            "cutoff_date": cutoff.date().isoformat(),
            "deleted_posts": len(old_ids),
            "message": "Old posts and favs cleaned up",
        },
    }
