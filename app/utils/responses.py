from typing import Optional

from fastapi.responses import JSONResponse

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


def error_response(status_code: int, error: str, message: Optional[str] = None, **extra) -> JSONResponse:
    """The `{error, message}` body every handler returns on failure."""
    content = {"error": error}
    if message is not None:
        content["message"] = message
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)
