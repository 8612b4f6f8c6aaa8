# models/user.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime
from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    x_user_id = Column(String(255), unique=True, index=True, nullable=False)  # Farcaster fid
    username = Column(String(255), nullable=False)
    profile_image_url = Column(Text, nullable=True)
    wallet_address = Column(String(255), nullable=True, index=True)  # lowercase
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
