from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class MintAuth(BaseModel):
    """Signed permit for a single mint. xUserId travels as a decimal string, nonce and deadline as numbers."""
    model_config = ConfigDict(populate_by_name=True)

    to: str
    payer: str
    x_user_id: str = Field(alias="xUserId")
    token_uri: str = Field(alias="tokenURI")
    nonce: int | str
    deadline: int | str

    def as_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class MintPermitRequest(BaseModel):
    wallet: Optional[str] = None
    farcaster_user_id: Optional[str | int] = None


class CheckMintStatusRequest(BaseModel):
    x_user_id: Optional[str | int] = None


class UpdateTokenIdRequest(BaseModel):
    x_user_id: Optional[str | int] = None
    token_id: Optional[int] = None
    transaction_hash: Optional[str] = None
