from datetime import timedelta
from typing import Optional, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
from utils.clock import utcnow
import logging

logger = logging.getLogger(__name__)

SESSION_PURPOSE = "session"
EMAIL_VERIFICATION_PURPOSE = "email_verification"


class PasswordHasher:
    """One-way password hashing backed by passlib's bcrypt scheme."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash; malformed hashes never match."""
        if not plain_password or not hashed_password:
            return False
        try:
            return self._context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.warning(f"Password hash could not be verified: {e}")
            return False


class TokenSigner:
    """Issues and checks signed, time-limited JWTs.

    Every token carries the user id in ``sub`` and a ``purpose`` claim, so an
    email verification link cannot be replayed as a session token.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        if not secret_key:
            raise ValueError("Token signer requires a secret key")
        self._secret_key = secret_key
        self._algorithm = algorithm

    def issue(self, subject: str, purpose: str, expires_delta: timedelta, **claims: Any) -> str:
        to_encode = dict(claims)
        to_encode.update({
            "sub": str(subject),
            "purpose": purpose,
            "exp": utcnow() + expires_delta,
        })
        return jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)

    def decode(self, token: str, purpose: str) -> Optional[dict]:
        """Return the payload of a valid token for ``purpose``, else None."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as e:
            logger.warning(f"JWT decode failed: {e}")
            return None
        if not payload.get("sub"):
            return None
        if payload.get("purpose") != purpose:
            logger.warning(f"JWT purpose mismatch: expected {purpose}, got {payload.get('purpose')}")
            return None
        return payload
