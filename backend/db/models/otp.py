import uuid
from sqlalchemy import Column, String, DateTime, Index
from db.session import Base
from utils.clock import utcnow


class OTP(Base):
    __tablename__ = "otps"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    # Plain reference; removing an OTP never touches the user
    user_id = Column(String(32), index=True, nullable=False)
    code = Column(String(10), nullable=False)
    purpose = Column(String(32), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_otps_lookup", "user_id", "code", "purpose"),
    )
