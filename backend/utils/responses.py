from typing import Optional
from fastapi.responses import JSONResponse

# Tokens and profile data must not be cached by clients or proxies.
NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


def no_store_json(data, status_code: int = 200, headers: Optional[dict] = None) -> JSONResponse:
    merged = dict(NO_STORE_HEADERS)
    if headers:
        merged.update(headers)
    return JSONResponse(content=data, status_code=status_code, headers=merged)


def error_json(status_code: int, detail: str, code: str, headers: Optional[dict] = None, **extra) -> JSONResponse:
    """Uniform error body: ``{"detail": ..., "code": ...}`` plus any extra keys.

    Auth failures go out with no-store headers so a cached 401 never masks a later login.
    """
    content = {"detail": detail, "code": code, **extra}
    if status_code == 401:
        return no_store_json(content, status_code=status_code, headers=headers)
    return JSONResponse(content=content, status_code=status_code, headers=headers)
