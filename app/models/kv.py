from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime
from app.database import Base


class KVEntry(Base):
    __tablename__ = "kv_store"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
