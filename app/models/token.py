from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from app.database import Base

# Lifecycle of a generated NFT row
STATUS_GENERATED = "generated"
STATUS_PAID = "paid"
STATUS_MINTED = "minted"


class Token(Base):
    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, index=True)
    x_user_id = Column(String(255), unique=True, index=True, nullable=False)  # one NFT per fid
    token_id = Column(Integer, unique=True, nullable=True)  # NULL until the mint lands
    seed = Column(String(64), nullable=False)
    token_uri = Column(Text, nullable=False)
    metadata_uri = Column(Text, nullable=False)
    image_uri = Column(Text, nullable=False)
    traits = Column(JSON, nullable=False, default=dict)
    status = Column(String(50), nullable=False, default=STATUS_GENERATED)
    wallet_address = Column(String(255), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def is_minted(self) -> bool:
        return self.status == STATUS_MINTED or bool(self.token_id and self.token_id > 0)
