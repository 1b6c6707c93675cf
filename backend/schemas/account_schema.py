from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class OtpPurpose(str, Enum):
    PHONE_VERIFICATION = "phoneVerification"
    FORGOT_PASSWORD = "forgotPassword"


class UserAccount(BaseModel):
    """A user as the auth service sees it, independent of the storage backend."""
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[str] = None
    full_name: str
    email: str
    email_verified: bool = False
    phone: str
    phone_verified: bool = False
    password_hash: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def set_password(self, hasher, raw_password: str) -> None:
        """Replace the stored credential with the hash of ``raw_password``."""
        self.password_hash = hasher.hash(raw_password)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "emailVerified": self.email_verified,
            "phoneVerified": self.phone_verified,
        }

    def profile(self) -> dict:
        data = self.summary()
        data["createdAt"] = self.created_at.isoformat() if self.created_at else None
        data["updatedAt"] = self.updated_at.isoformat() if self.updated_at else None
        return data


class OtpRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[str] = None
    user_id: str
    code: str
    purpose: OtpPurpose
    expires_at: datetime
    created_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
