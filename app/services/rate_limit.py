import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.models.kv import KVEntry

logger = logging.getLogger(__name__)

MINT_LIMIT = 10
MINT_WINDOW_SECONDS = 3600


def mint_key(wallet: str) -> str:
    return f"rate_limit:mint:{wallet.lower()}"


def _live_entry(db: Session, key: str, now: datetime):
    entry = db.get(KVEntry, key)
    if entry and entry.expires_at and entry.expires_at <= now:
        db.delete(entry)
        db.flush()
        return None
    return entry


def get_count(db: Session, key: str) -> int:
    entry = _live_entry(db, key, datetime.utcnow())
    return int(entry.value) if entry else 0


def clear(db: Session, key: str) -> None:
    db.query(KVEntry).filter(KVEntry.key == key).delete()
    db.commit()


def check_rate_limit(db: Session, key: str, limit: int, window_seconds: int) -> bool:
    """Fixed-window counter. Returns False once `limit` hits are used up."""
    try:
        now = datetime.utcnow()
        entry = _live_entry(db, key, now)
        if entry is None:
            db.add(KVEntry(key=key, value="1", expires_at=now + timedelta(seconds=window_seconds)))
            db.commit()
            return True

        count = int(entry.value)
        if count >= limit:
            return False
        entry.value = str(count + 1)
        db.commit()
        return True
    except Exception as e:
        # Fail open
        db.rollback()
        logger.warning("Rate limit check failed, allowing request: %s", e)
        return True


def check_mint_rate_limit(db: Session, wallet: str) -> bool:
    return check_rate_limit(db, mint_key(wallet), MINT_LIMIT, MINT_WINDOW_SECONDS)
