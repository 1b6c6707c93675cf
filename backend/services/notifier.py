"""Outbound SMS and email delivery.

Delivery is best-effort: every method logs failures and returns False rather
than raising, so a broken transport never fails the request that triggered it.
"""
import asyncio
import logging
from typing import Callable, Optional

import aiohttp

from utils.email import SmtpConfig, send_email

logger = logging.getLogger(__name__)


def _mask(phone: str) -> str:
    return f"***{phone[-4:]}" if len(phone) > 4 else "***"


class SmsNotifier:
    """Sends SMS through a Twilio-compatible Messages endpoint.

    Without credentials the message is written to the log instead, which is
    how local development receives its codes.
    """

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        api_base: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 10.0,
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._session_factory = session_factory

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send(self, phone: str, message: str) -> bool:
        if not self.configured:
            logger.info(f"SMS transport not configured; message for {phone}: {message}")
            return True
        url = f"{self.api_base}/Accounts/{self.account_sid}/Messages.json"
        auth = aiohttp.BasicAuth(self.account_sid, self.auth_token)
        form = {"To": phone, "From": self.from_number, "Body": message}
        try:
            async with self._session_factory() as session:
                async with session.post(
                    url, data=form, auth=auth, timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if resp.status >= 400:
                        body = await resp.text()
                        logger.error(f"SMS provider error for {_mask(phone)}: {resp.status} {body}")
                        return False
            logger.info(f"Sent SMS to {_mask(phone)}")
            return True
        except Exception as exc:
            logger.error(f"Failed to send SMS to {_mask(phone)}: {exc}")
            return False


class EmailNotifier:

    def __init__(self, config: SmtpConfig):
        self.config = config

    async def send(self, to_email: str, subject: str, text_body: str, html_body: Optional[str] = None) -> bool:
        # smtplib blocks; keep it off the event loop
        try:
            return await asyncio.to_thread(send_email, self.config, subject, to_email, text_body, html_body)
        except Exception as exc:
            logger.error(f"Email worker failed for {to_email}: {exc}")
            return False


class Notifier:
    """Phone and email channels used by the auth service."""

    def __init__(self, sms: SmsNotifier, email: EmailNotifier):
        self.sms = sms
        self.email = email

    async def notify_phone(self, phone: str, message: str) -> bool:
        return await self.sms.send(phone, message)

    async def notify_email(self, to_email: str, subject: str, text_body: str, html_body: Optional[str] = None) -> bool:
        return await self.email.send(to_email, subject, text_body, html_body)


def build_notifier(settings) -> Notifier:
    sms = SmsNotifier(
        account_sid=settings.SMS_ACCOUNT_SID,
        auth_token=settings.SMS_AUTH_TOKEN,
        from_number=settings.SMS_FROM_NUMBER,
        api_base=settings.SMS_API_BASE,
        timeout=settings.SMS_TIMEOUT,
    )
    email = EmailNotifier(SmtpConfig(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        from_email=settings.SMTP_FROM_EMAIL,
        from_name=settings.SMTP_FROM_NAME,
        use_tls=settings.SMTP_USE_TLS,
        use_ssl=settings.SMTP_USE_SSL,
        timeout=settings.SMTP_TIMEOUT,
    ))
    return Notifier(sms, email)
