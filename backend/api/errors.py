from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from utils.responses import error_json
from core.errors import AuthServiceError
import logging

logger = logging.getLogger(__name__)

# Error kind -> HTTP status. The service layer never sees these numbers.
STATUS_BY_KIND = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_400_BAD_REQUEST,
    "conflict": status.HTTP_400_BAD_REQUEST,
    "invalid_credential": status.HTTP_400_BAD_REQUEST,
    "expired": status.HTTP_400_BAD_REQUEST,
    "auth": status.HTTP_401_UNAUTHORIZED,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "internal": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: AuthServiceError) -> int:
    return STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


async def auth_service_error_handler(request: Request, exc: AuthServiceError):
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"Internal error at {request.url.path}: {exc.__cause__ or exc}")
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return error_json(status_code, exc.message, exc.code, headers=headers)


def _field_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query")]
        message = str(err.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": ".".join(loc) or None, "message": message})
    return errors


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = _field_errors(exc)
    logger.warning(f"Request validation failed at {request.url.path}: {errors}")
    detail = errors[0]["message"] if errors else "Invalid request"
    return error_json(status.HTTP_400_BAD_REQUEST, detail, "ValidationError", errors=errors)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error at {request.url.path}: {exc}", exc_info=exc)
    return error_json(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "InternalError")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthServiceError, auth_service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
