from datetime import datetime
from sqlalchemy import Column, Integer, BigInteger, String, Text, Date, DateTime, UniqueConstraint
from app.database import Base


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    wallet_address = Column(String(255), index=True, nullable=False)
    nft_token_id = Column(Integer, index=True, nullable=False)
    content = Column(Text, nullable=False)
    fav_count = Column(BigInteger, nullable=False, default=0)
    points_earned = Column(BigInteger, nullable=False, default=0)
    tokens_burned = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class PostFav(Base):
    __tablename__ = "post_favs"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, index=True, nullable=False)
    wallet_address = Column(String(255), index=True, nullable=False)
    nft_token_id = Column(Integer, nullable=False)
    tokens_burned = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    __table_args__ = (UniqueConstraint("post_id", "wallet_address", name="_post_fav_wallet_uc"),)


class WeeklyReward(Base):
    __tablename__ = "weekly_rewards"

    id = Column(Integer, primary_key=True, index=True)
    week_start_date = Column(Date, index=True, nullable=False)
    week_end_date = Column(Date, nullable=False)
    reward_type = Column(String(50), index=True, nullable=False)  # most_favd_post | most_favs_given
    winner_wallet_address = Column(String(255), nullable=False)
    winner_nft_token_id = Column(Integer, nullable=True)
    winner_post_id = Column(Integer, nullable=True)
    tokens_awarded = Column(BigInteger, nullable=False, default=0)
    status = Column(String(50), nullable=False, default="completed")
    created_at = Column(DateTime, default=datetime.utcnow)
