from pydantic import BaseModel
from typing import Optional


class CheckNFTRequest(BaseModel):
    walletAddress: Optional[str] = None


class ClearMintRateLimitRequest(BaseModel):
    wallet: Optional[str] = None
    action: Optional[str] = None


class UserRankRequest(BaseModel):
    walletAddress: Optional[str] = None
