import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmtpConfig:
    host: Optional[str] = None
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    use_tls: bool = True
    use_ssl: bool = False
    timeout: int = 15

    @property
    def configured(self) -> bool:
        return bool(self.host and self.from_email)


def _build_message(config: SmtpConfig, subject: str, to_email: str, text_body: str, html_body: Optional[str] = None) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = f"{config.from_name} <{config.from_email}>" if config.from_name else config.from_email
    msg["To"] = to_email
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")
    return msg


def send_email(config: SmtpConfig, subject: str, to_email: str, text_body: str, html_body: Optional[str] = None) -> bool:
    """Send one message over SMTP (blocking). Returns False instead of raising."""
    if not config.configured:
        logger.warning("SMTP not configured; skipping email send")
        return False
    try:
        msg = _build_message(config, subject, to_email, text_body, html_body)
        if config.use_ssl:
            with smtplib.SMTP_SSL(config.host, config.port, timeout=config.timeout) as server:
                if config.username and config.password:
                    server.login(config.username, config.password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(config.host, config.port, timeout=config.timeout) as server:
                if config.use_tls:
                    server.starttls()
                if config.username and config.password:
                    server.login(config.username, config.password)
                server.send_message(msg)
        logger.info(f"Sent email to {to_email} with subject '{subject}'")
        return True
    except Exception as exc:
        logger.error(f"Failed to send email to {to_email}: {exc}")
        return False


def verification_email_bodies(verification_url: str, valid_hours: int) -> tuple[str, str]:
    text = f"Click here to verify your email: {verification_url}"
    html = f"""
    <div style='font-family: Arial, sans-serif; line-height: 1.5;'>
      <h2>Verify your email address</h2>
      <p>Thank you for signing up! Please verify your email address by clicking the link below:</p>
      <p><a href="{verification_url}">Verify Email</a></p>
      <p style='word-break: break-all; color: #666;'>{verification_url}</p>
      <p>This link will expire in <strong>{valid_hours} hours</strong>.</p>
      <p>If you did not create an account, you can safely ignore this email.</p>
    </div>
    """
    return text, html
