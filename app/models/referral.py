from datetime import datetime
from sqlalchemy import Column, Integer, BigInteger, String, DateTime
from app.database import Base


class ReferralCode(Base):
    __tablename__ = "referral_codes"

    id = Column(Integer, primary_key=True, index=True)
    wallet_address = Column(String(255), unique=True, index=True, nullable=False)
    code = Column(String(64), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class Referral(Base):
    __tablename__ = "referrals"

    id = Column(Integer, primary_key=True, index=True)
    referrer_wallet = Column(String(255), index=True, nullable=False)
    referee_wallet = Column(String(255), unique=True, index=True, nullable=False)
    status = Column(String(50), nullable=False, default="pending")  # pending | completed
    reward_credits = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    rewarded_at = Column(DateTime, nullable=True)


class PendingReferral(Base):
    __tablename__ = "pending_referrals"

    id = Column(Integer, primary_key=True, index=True)
    x_user_id = Column(String(255), unique=True, index=True, nullable=False)
    referral_code = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
