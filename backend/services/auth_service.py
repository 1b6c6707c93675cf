"""Account lifecycle: registration, phone/email verification, login and
password recovery.

A user starts with both ``phone_verified`` and ``email_verified`` false. The
phone flag only flips by presenting an unexpired phoneVerification OTP, the
email flag only by presenting a valid email verification token. Login requires
a verified phone; the email flag is informational.

Every public method raises a ``core.errors.AuthServiceError`` subclass on a
rule violation. Anything unexpected (store, transport or signing faults) is
logged and re-raised as ``InternalError``.
"""
import logging
from datetime import timedelta
from typing import Callable, Optional
from urllib.parse import urlencode

from core.errors import (
    AuthServiceError,
    EmailTakenError,
    IncorrectPasswordError,
    InternalError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidOTPError,
    OTPExpiredError,
    PhoneNotVerifiedError,
    PhoneTakenError,
    UserNotFoundError,
    ValidationError,
)
from core.otp import generate_otp
from core.security import EMAIL_VERIFICATION_PURPOSE, SESSION_PURPOSE, PasswordHasher, TokenSigner
from db.account_store import AccountStore
from schemas.account_schema import OtpPurpose, OtpRecord, UserAccount
from services.notifier import Notifier
from utils.clock import utcnow
from utils.email import verification_email_bodies

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def normalize_phone(phone: str) -> str:
    return (phone or "").strip()


class AuthService:

    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        signer: TokenSigner,
        notifier: Notifier,
        public_base_url: str = "http://localhost:5000",
        otp_ttl: timedelta = timedelta(minutes=5),
        session_ttl: timedelta = timedelta(hours=24),
        email_token_ttl: timedelta = timedelta(hours=24),
        otp_generator: Callable[[], str] = generate_otp,
        clock: Callable = utcnow,
    ):
        self.store = store
        self.hasher = hasher
        self.signer = signer
        self.notifier = notifier
        self.public_base_url = public_base_url.rstrip("/")
        self.otp_ttl = otp_ttl
        self.session_ttl = session_ttl
        self.email_token_ttl = email_token_ttl
        self._otp_generator = otp_generator
        self._clock = clock

    # ---------------------- helpers ----------------------

    async def _issue_otp(self, user: UserAccount, purpose: OtpPurpose) -> OtpRecord:
        code = self._otp_generator()
        return await self.store.create_otp(user.id, code, purpose, self._clock() + self.otp_ttl)

    async def _check_otp(self, user_id: str, code: str, purpose: OtpPurpose) -> OtpRecord:
        """Return the matching live OTP; an expired match is left in place."""
        record = await self.store.find_otp(user_id, code, purpose)
        if record is None:
            raise InvalidOTPError()
        if record.is_expired(self._clock()):
            raise OTPExpiredError()
        return record

    async def _consume_otp(self, record: OtpRecord) -> None:
        if not await self.store.delete_otp(record.id):
            # Already removed by a concurrent request for the same code
            logger.warning(f"OTP {record.id} was already consumed")

    def verification_url(self, token: str) -> str:
        return f"{self.public_base_url}/auth/verify-email?{urlencode({'token': token})}"

    def issue_session_token(self, user: UserAccount) -> str:
        return self.signer.issue(user.id, SESSION_PURPOSE, self.session_ttl)

    # ---------------------- registration ----------------------

    async def register(self, full_name: str, email: str, phone: str, password: str) -> dict:
        email = normalize_email(email)
        phone = normalize_phone(phone)
        try:
            if await self.store.find_user_by_phone(phone, verified=True):
                raise PhoneTakenError()
            if await self.store.find_user_by_email(email, verified=True):
                raise EmailTakenError()

            account = UserAccount(full_name=full_name.strip(), email=email, phone=phone)
            account.set_password(self.hasher, password)
            user = await self.store.create_user(account)
            logger.info(f"Registered user {user.id}")

            otp = await self._issue_otp(user, OtpPurpose.PHONE_VERIFICATION)
            await self.notifier.notify_phone(phone, f"Your OTP code is: {otp.code}")

            email_token = self.signer.issue(
                user.id, EMAIL_VERIFICATION_PURPOSE, self.email_token_ttl, email=user.email,
            )
            hours = int(self.email_token_ttl.total_seconds() // 3600)
            text, html = verification_email_bodies(self.verification_url(email_token), hours)
            await self.notifier.notify_email(user.email, "Verify your email address", text, html)

            return {"userId": user.id}
        except AuthServiceError:
            raise
        except Exception as e:
            logger.exception(f"Error registering user: {e}")
            raise InternalError() from e

    # ---------------------- verification ----------------------

    async def verify_phone(self, user_id: str, code: str) -> dict:
        try:
            record = await self._check_otp(user_id, code, OtpPurpose.PHONE_VERIFICATION)
            user = await self.store.get_user(user_id)
            if user is not None and not user.phone_verified:
                user.phone_verified = True
                await self.store.save_user(user)
            await self._consume_otp(record)
            logger.info(f"Phone verified for user {user_id}")
            return {"message": "Phone verified successfully"}
        except AuthServiceError:
            raise
        except Exception as e:
            logger.exception(f"Error verifying phone: {e}")
            raise InternalError() from e

    async def verify_email(self, token: Optional[str]) -> dict:
        if not token or not token.strip():
            raise ValidationError("Missing token", code="MissingToken")
        try:
            payload = self.signer.decode(token.strip(), EMAIL_VERIFICATION_PURPOSE)
            if payload is None:
                raise InvalidOrExpiredTokenError()
            user = await self.store.get_user(payload["sub"])
            if user is None:
                raise UserNotFoundError()
            if not user.email_verified:
                user.email_verified = True
                await self.store.save_user(user)
                logger.info(f"Email verified for user {user.id}")
            return {"message": "Email verified successfully"}
        except AuthServiceError:
            raise
        except Exception as e:
            logger.exception(f"Error verifying email: {e}")
            raise InternalError() from e

    # ---------------------- login ----------------------

    async def login(self, phone: str, password: str) -> dict:
        try:
            user = await self.store.find_user_by_phone(normalize_phone(phone))
            # Unknown phone and wrong password must be indistinguishable
            if user is None or not self.hasher.verify(password, user.password_hash):
                raise InvalidCredentialsError()
            if not user.phone_verified:
                raise PhoneNotVerifiedError()
            return {
                "message": "Login successful",
                "token": self.issue_session_token(user),
                "user": user.summary(),
            }
        except AuthServiceError:
            raise
        except Exception as e:
            logger.exception(f"Error logging in user: {e}")
            raise InternalError() from e

    # ---------------------- password recovery ----------------------

    async def forgot_password_request(self, phone: str) -> dict:
        phone = normalize_phone(phone)
        try:
            user = await self.store.find_user_by_phone(phone)
            if user is None:
                raise UserNotFoundError("User with this phone not found")
            otp = await self._issue_otp(user, OtpPurpose.FORGOT_PASSWORD)
            await self.notifier.notify_phone(phone, f"Your password reset OTP is: {otp.code}")
            return {"message": "OTP sent successfully"}
        except AuthServiceError:
            raise
        except Exception as e:
            logger.exception(f"Error requesting password reset: {e}")
            raise InternalError() from e

    async def forgot_password_reset(self, phone: str, code: str, new_password: str) -> dict:
        try:
            user = await self.store.find_user_by_phone(normalize_phone(phone))
            if user is None:
                raise UserNotFoundError()
            record = await self._check_otp(user.id, code, OtpPurpose.FORGOT_PASSWORD)
            user.set_password(self.hasher, new_password)
            await self.store.save_user(user)
            await self._consume_otp(record)
            logger.info(f"Password reset for user {user.id}")
            return {"message": "Password reset successfully"}
        except AuthServiceError:
            raise
        except Exception as e:
            logger.exception(f"Error resetting password with OTP: {e}")
            raise InternalError() from e

    # ---------------------- authenticated ----------------------

    async def change_password(self, user: UserAccount, old_password: str, new_password: str) -> dict:
        try:
            if not self.hasher.verify(old_password, user.password_hash):
                raise IncorrectPasswordError()
            user.set_password(self.hasher, new_password)
            if await self.store.save_user(user) is None:
                raise UserNotFoundError()
            logger.info(f"Password changed for user {user.id}")
            return {"message": "Password changed successfully"}
        except AuthServiceError:
            raise
        except Exception as e:
            logger.exception(f"Error changing password: {e}")
            raise InternalError() from e

    def get_profile(self, user: UserAccount) -> dict:
        return user.profile()


def build_auth_service(settings, store: AccountStore, notifier: Notifier) -> AuthService:
    return AuthService(
        store=store,
        hasher=PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
        signer=TokenSigner(settings.SECRET_KEY, settings.ALGORITHM),
        notifier=notifier,
        public_base_url=settings.PUBLIC_BASE_URL,
        otp_ttl=timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        session_ttl=timedelta(hours=settings.SESSION_TOKEN_EXPIRE_HOURS),
        email_token_ttl=timedelta(hours=settings.EMAIL_TOKEN_EXPIRE_HOURS),
        otp_generator=lambda: generate_otp(settings.OTP_LENGTH),
    )
