from pydantic import BaseModel
from typing import Optional


# === Session cookie payload ===
class FarcasterSessionUser(BaseModel):
    fid: Optional[str | int] = None
    username: Optional[str] = None
    display_name: Optional[str] = None
    pfp_url: Optional[str] = None
    bio: Optional[str] = None
