import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from app.auth.session import SessionConfigError, decrypt_session, encrypt_session
from app.core.config import settings
from app.schemas.farcaster import FarcasterSessionUser
from app.utils.responses import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth/farcaster", tags=["farcaster"])

_UNAUTHENTICATED = {"authenticated": False, "user": None}


@router.get("/session")
def get_session(request: Request):
    data = decrypt_session(request.cookies.get(settings.SESSION_COOKIE_NAME))
    if not data:
        return _UNAUTHENTICATED

    user = FarcasterSessionUser(
        fid=data.get("fid"),
        username=data.get("username"),
        display_name=data.get("display_name"),
        pfp_url=data.get("pfp_url") or "",
        bio=data.get("bio"),
    )
    return {"authenticated": True, "user": user.model_dump()}


@router.post("/session")
def save_session(user: FarcasterSessionUser):
    if not user.fid or not user.username:
        return error_response(400, "Missing required fields")

    try:
        cookie_value = encrypt_session(user.model_dump())
    except SessionConfigError:
        logger.error("❌ FARCASTER_CLIENT_SECRET not configured - cannot encrypt session")
        return error_response(500, "Server configuration error")

    response = JSONResponse(content={"success": True})
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=cookie_value,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    logger.info("✅ Farcaster session cookie set for %s (fid %s)", user.username, user.fid)
    return response


@router.delete("/session")
def clear_session(response: Response):
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")
    return {"success": True}
