from datetime import datetime
from sqlalchemy import Column, Integer, BigInteger, String, DateTime
from app.database import Base


class ChatToken(Base):
    __tablename__ = "chat_tokens"

    id = Column(Integer, primary_key=True, index=True)
    wallet_address = Column(String(255), unique=True, index=True, nullable=False)
    balance = Column(BigInteger, nullable=False, default=0)
    points = Column(BigInteger, nullable=False, default=0)
    total_tokens_spent = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
