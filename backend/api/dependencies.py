from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from core.config import settings
from core.errors import (
    AuthServiceError,
    ForbiddenError,
    InternalError,
    InvalidTokenError,
    MissingTokenError,
    TokenUserNotFoundError,
)
from core.security import SESSION_PURPOSE
from db.account_store import AccountStore, MongoAccountStore, SqlAccountStore
from db.mongodb import get_mongo_db
from db import session as db_session
from schemas.account_schema import UserAccount
from services.auth_service import AuthService, build_auth_service
from services.notifier import build_notifier
from utils.logging_config import user_id_var
import logging

logger = logging.getLogger(__name__)

# auto_error=False so a missing header surfaces as our own MissingTokenError
bearer_scheme = HTTPBearer(auto_error=False)

_auth_service: Optional[AuthService] = None


def build_account_store() -> AccountStore:
    if settings.USE_MONGO:
        return MongoAccountStore(get_mongo_db())
    return SqlAccountStore(db_session.SessionLocal)


def get_auth_service() -> AuthService:
    global _auth_service
    if _auth_service is None:
        _auth_service = build_auth_service(settings, build_account_store(), build_notifier(settings))
    return _auth_service


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    service: AuthService = Depends(get_auth_service),
) -> UserAccount:
    """Resolve the bearer session token to a stored user."""
    if credentials is None or not credentials.credentials:
        raise MissingTokenError()

    payload = service.signer.decode(credentials.credentials, SESSION_PURPOSE)
    if payload is None:
        raise InvalidTokenError()

    try:
        user = await service.store.get_user(payload["sub"])
    except AuthServiceError:
        raise
    except Exception as e:
        logger.exception(f"get_current_user lookup failed: {e}")
        raise InternalError() from e

    if user is None:
        raise TokenUserNotFoundError()

    user_id_var.set(user.id)
    return user


async def require_phone_verified(current_user: UserAccount = Depends(get_current_user)) -> UserAccount:
    if not current_user.phone_verified:
        raise ForbiddenError()
    return current_user
