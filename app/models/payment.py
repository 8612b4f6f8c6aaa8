from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from app.database import Base

PAYMENT_COMPLETED = "completed"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    x_user_id = Column(String(255), index=True, nullable=False)
    wallet_address = Column(String(255), nullable=False)
    amount = Column(String(100), nullable=False)
    transaction_hash = Column(String(255), unique=True, nullable=True)  # settlement idempotency
    status = Column(String(50), nullable=False)
    x402_payment_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
