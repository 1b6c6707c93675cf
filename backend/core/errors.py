"""Domain errors raised by the auth service and the access guard.

Each error has a ``kind`` (the taxonomy the boundary layer maps to a transport
status), a stable ``code`` and a user-safe ``message``. Nothing in here knows
about HTTP.
"""
from typing import Optional


class AuthServiceError(Exception):
    kind = "internal"
    code = "InternalError"
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class ValidationError(AuthServiceError):
    kind = "validation"
    code = "ValidationError"
    message = "Invalid request"


class NotFoundError(AuthServiceError):
    kind = "not_found"
    code = "NotFound"
    message = "Not found"


class ConflictError(AuthServiceError):
    kind = "conflict"
    code = "Conflict"
    message = "Already taken"


class InvalidCredentialError(AuthServiceError):
    kind = "invalid_credential"
    code = "InvalidCredential"
    message = "Invalid credential"


class ExpiredError(AuthServiceError):
    kind = "expired"
    code = "Expired"
    message = "Expired"


class AuthError(AuthServiceError):
    kind = "auth"
    code = "AuthError"
    message = "Not authorized"


class ForbiddenError(AuthServiceError):
    kind = "forbidden"
    code = "Forbidden"
    message = "Phone number not verified, access denied"


class InternalError(AuthServiceError):
    pass


# Registration
class PhoneTakenError(ConflictError):
    code = "PhoneTaken"
    message = "Phone number already verified by another user"


class EmailTakenError(ConflictError):
    code = "EmailTaken"
    message = "Email already verified by another user"


# One-time codes
class InvalidOTPError(InvalidCredentialError):
    code = "InvalidOTP"
    message = "Invalid OTP"


class OTPExpiredError(ExpiredError):
    code = "OTPExpired"
    message = "OTP expired"


# Signed tokens
class MissingTokenError(AuthError):
    code = "MissingToken"
    message = "Not authorized, token missing"


class InvalidTokenError(AuthError):
    code = "InvalidToken"
    message = "Not authorized, token invalid"


class TokenUserNotFoundError(AuthError):
    code = "UserNotFound"
    message = "User not found"


class InvalidOrExpiredTokenError(ExpiredError):
    code = "InvalidOrExpiredToken"
    message = "Invalid or expired token"


# Accounts and credentials
class UserNotFoundError(NotFoundError):
    code = "UserNotFound"
    message = "User not found"


class InvalidCredentialsError(InvalidCredentialError):
    code = "InvalidCredentials"
    message = "Invalid phone or password"


class IncorrectPasswordError(InvalidCredentialError):
    code = "IncorrectPassword"
    message = "Existing password is incorrect"


class PhoneNotVerifiedError(ForbiddenError):
    code = "PhoneNotVerified"
    message = "Phone number not verified. Cannot login."
