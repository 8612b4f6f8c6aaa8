from pydantic import BaseModel
from typing import Optional


class CreatePostRequest(BaseModel):
    walletAddress: Optional[str] = None
    content: Optional[str] = None
