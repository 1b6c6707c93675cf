import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Index
from db.session import Base
from utils.clock import utcnow


def _new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=_new_id)
    full_name = Column(String(255), nullable=False)
    # phone/email are only unique among verified users, enforced by the service
    email = Column(String(255), index=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    phone = Column(String(32), index=True, nullable=False)
    phone_verified = Column(Boolean, default=False, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_users_phone_verified", "phone", "phone_verified"),
        Index("ix_users_email_verified", "email", "email_verified"),
    )
