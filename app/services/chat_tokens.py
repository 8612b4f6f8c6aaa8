# app/services/chat_tokens.py
"""
Chat-token ledger: one row per wallet holding the spendable balance, the
leaderboard points and the lifetime spend.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.chat_token import ChatToken
from app.models.token import Token, STATUS_MINTED

logger = logging.getLogger(__name__)


class InsufficientTokensError(Exception):
    def __init__(self, required: int, current: int):
        super().__init__(f"Insufficient token balance: required {required}, current {current}")
        self.required = required
        self.current = current


def normalize_wallet(wallet: str) -> str:
    return wallet.strip().lower()


def get_record(db: Session, wallet: str) -> Optional[ChatToken]:
    return db.query(ChatToken).filter(ChatToken.wallet_address == normalize_wallet(wallet)).first()


def has_minted(db: Session, wallet: str) -> bool:
    row = (
        db.query(Token.id)
        .filter(
            Token.wallet_address == normalize_wallet(wallet),
            or_(Token.status == STATUS_MINTED, Token.token_id > 0),
        )
        .first()
    )
    return row is not None


def create_empty_record(db: Session, wallet: str) -> ChatToken:
    record = ChatToken(wallet_address=normalize_wallet(wallet), balance=0, points=0, total_tokens_spent=0)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def update_token_balance(
    db: Session,
    wallet: str,
    new_balance: int,
    new_points: Optional[int] = None,
    total_tokens_spent: Optional[int] = None,
) -> ChatToken:
    # Balances never go negative
    balance = max(0, int(new_balance))
    record = get_record(db, wallet)

    if record:
        record.balance = balance
        if new_points is not None:
            record.points = int(new_points)
        if total_tokens_spent is not None:
            record.total_tokens_spent = int(total_tokens_spent)
        record.updated_at = datetime.utcnow()
    else:
        record = ChatToken(
            wallet_address=normalize_wallet(wallet),
            balance=balance,
            points=int(new_points or 0),
            total_tokens_spent=int(total_tokens_spent or 0),
        )
        db.add(record)

    db.commit()
    db.refresh(record)
    return record


def add_tokens(db: Session, wallet: str, amount: int) -> int:
    """Credit `amount` tokens, preserving points. Returns the new balance."""
    record = get_record(db, wallet)
    current_balance = int(record.balance or 0) if record else 0
    updated = update_token_balance(db, wallet, current_balance + int(amount))
    logger.info("💰 Credited %s tokens to %s… (balance=%s)", amount, normalize_wallet(wallet)[:10], updated.balance)
    return int(updated.balance)


def spend_tokens(db: Session, wallet: str, cost: int, points_awarded: int = 0) -> ChatToken:
    """Debit `cost` tokens and award points; raises if the balance is short."""
    record = get_record(db, wallet)
    current_balance = int(record.balance or 0) if record else 0
    if current_balance < cost:
        raise InsufficientTokensError(required=cost, current=current_balance)

    current_points = int(record.points or 0)
    current_spent = int(record.total_tokens_spent or 0)
    return update_token_balance(
        db,
        wallet,
        current_balance - cost,
        current_points + points_awarded,
        current_spent + cost,
    )
