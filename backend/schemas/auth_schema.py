import re
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel

# min 12 chars, at least 1 uppercase, 1 lowercase, 1 number, 1 symbol
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[\W_]).{12,}$")
PASSWORD_RULE = "must be at least 12 characters long and include uppercase, lowercase, number, and symbol"

# bcrypt only reads the first 72 bytes of a password
PASSWORD_MAX_BYTES = 72


def _require_text(value: str, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


def _strong_password(value: str, label: str) -> str:
    if not PASSWORD_PATTERN.match(value or ""):
        raise ValueError(f"{label} {PASSWORD_RULE}")
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"{label} must be at most {PASSWORD_MAX_BYTES} bytes long")
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    full_name: str
    email: EmailStr
    phone: str
    password: str

    @field_validator("full_name")
    @classmethod
    def _full_name(cls, v: str) -> str:
        v = _require_text(v, "Full name")
        if len(v) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return _require_text(v, "Phone number")

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _strong_password(v, "Password")


class VerifyPhoneRequest(CamelModel):
    user_id: str
    otp: str

    @field_validator("user_id", "otp")
    @classmethod
    def _present(cls, v: str, info) -> str:
        return _require_text(v, "User id" if info.field_name == "user_id" else "OTP")


class LoginRequest(CamelModel):
    phone: str
    password: str

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return _require_text(v, "Phone number")

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class ForgotPasswordRequest(CamelModel):
    phone: str

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return _require_text(v, "Phone number")


class ForgotPasswordReset(CamelModel):
    phone: str
    otp: str
    new_password: str

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return _require_text(v, "Phone number")

    @field_validator("otp")
    @classmethod
    def _otp(cls, v: str) -> str:
        return _require_text(v, "OTP")

    @field_validator("new_password")
    @classmethod
    def _new_password(cls, v: str) -> str:
        return _strong_password(v, "New password")


class ChangePasswordRequest(CamelModel):
    old_password: str
    new_password: str

    @field_validator("old_password")
    @classmethod
    def _old_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Existing password is required")
        return v

    @field_validator("new_password")
    @classmethod
    def _new_password(cls, v: str) -> str:
        return _strong_password(v, "New password")


class UserSummary(CamelModel):
    id: str
    full_name: str
    email: str
    phone: str
    email_verified: bool
    phone_verified: bool


class LoginResponse(CamelModel):
    message: str
    token: str
    user: UserSummary
