# app/database.py
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings

logger = logging.getLogger(__name__)


def _make_engine(url: str):
    if url == "sqlite://":
        # Mock mode: one shared in-memory database for every session
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, pool_size=10, pool_recycle=300)


engine = _make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    # Models register themselves on Base when imported
    from app.models import chat_token, kv, payment, post, referral, token, user  # noqa: F401

    Base.metadata.create_all(bind=engine)
    if settings.MOCK_MODE:
        logger.info("🐛 Mock database mode enabled (in-memory SQLite)")
