from pydantic import BaseModel
from typing import Optional


class CreateReferralRequest(BaseModel):
    walletAddress: Optional[str] = None


class SavePendingReferralRequest(BaseModel):
    x_user_id: Optional[str | int] = None
    referral_code: Optional[str] = None


class TrackReferralRequest(BaseModel):
    refereeWallet: Optional[str] = None
    referralCode: Optional[str] = None
