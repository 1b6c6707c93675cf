"""Durable storage for user accounts and one-time codes.

``AccountStore`` is what the auth service depends on. Two backends exist:
``SqlAccountStore`` on SQLAlchemy's async ORM and ``MongoAccountStore`` on
motor. Both provide atomic single-record writes and nothing more; callers must
not assume transactions spanning several records.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from sqlalchemy import select, delete, text
from sqlalchemy.ext.asyncio import async_sessionmaker

from db.models.user import User as UserModel
from db.models.otp import OTP as OTPModel
from schemas.account_schema import UserAccount, OtpRecord, OtpPurpose
from utils.clock import utcnow
from utils.db import safe_commit

logger = logging.getLogger(__name__)

# Fields copied from a UserAccount onto storage on create/save
_USER_FIELDS = ("full_name", "email", "email_verified", "phone", "phone_verified", "password_hash")


class AccountStore(ABC):

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserAccount]:
        ...

    @abstractmethod
    async def find_user_by_phone(self, phone: str, verified: Optional[bool] = None) -> Optional[UserAccount]:
        """Find a user holding ``phone``.

        With ``verified=None`` any holder matches; a verified holder is
        preferred, then the earliest created one.
        """

    @abstractmethod
    async def find_user_by_email(self, email: str, verified: Optional[bool] = None) -> Optional[UserAccount]:
        ...

    @abstractmethod
    async def create_user(self, account: UserAccount) -> UserAccount:
        ...

    @abstractmethod
    async def save_user(self, account: UserAccount) -> Optional[UserAccount]:
        """Persist mutable fields; returns None when the user no longer exists."""

    @abstractmethod
    async def create_otp(self, user_id: str, code: str, purpose: OtpPurpose, expires_at: datetime) -> OtpRecord:
        ...

    @abstractmethod
    async def find_otp(self, user_id: str, code: str, purpose: OtpPurpose) -> Optional[OtpRecord]:
        ...

    @abstractmethod
    async def delete_otp(self, otp_id: str) -> bool:
        ...

    @abstractmethod
    async def ping(self) -> None:
        ...


class SqlAccountStore(AccountStore):

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def get_user(self, user_id: str) -> Optional[UserAccount]:
        async with self._session_factory() as db:
            row = await db.get(UserModel, user_id)
            return UserAccount.model_validate(row) if row else None

    async def _find_user(self, column, flag_column, value: str, verified: Optional[bool]) -> Optional[UserAccount]:
        stmt = select(UserModel).where(column == value)
        if verified is not None:
            stmt = stmt.where(flag_column == verified)
        stmt = stmt.order_by(flag_column.desc(), UserModel.created_at.asc()).limit(1)
        async with self._session_factory() as db:
            row = (await db.execute(stmt)).scalars().first()
            return UserAccount.model_validate(row) if row else None

    async def find_user_by_phone(self, phone: str, verified: Optional[bool] = None) -> Optional[UserAccount]:
        return await self._find_user(UserModel.phone, UserModel.phone_verified, phone, verified)

    async def find_user_by_email(self, email: str, verified: Optional[bool] = None) -> Optional[UserAccount]:
        return await self._find_user(UserModel.email, UserModel.email_verified, email, verified)

    async def create_user(self, account: UserAccount) -> UserAccount:
        async with self._session_factory() as db:
            row = UserModel(**{f: getattr(account, f) for f in _USER_FIELDS})
            db.add(row)
            await safe_commit(db, "create user")
            await db.refresh(row)
            return UserAccount.model_validate(row)

    async def save_user(self, account: UserAccount) -> Optional[UserAccount]:
        async with self._session_factory() as db:
            row = await db.get(UserModel, account.id)
            if row is None:
                return None
            for f in _USER_FIELDS:
                setattr(row, f, getattr(account, f))
            await safe_commit(db, "save user")
            await db.refresh(row)
            return UserAccount.model_validate(row)

    async def create_otp(self, user_id: str, code: str, purpose: OtpPurpose, expires_at: datetime) -> OtpRecord:
        async with self._session_factory() as db:
            row = OTPModel(user_id=user_id, code=code, purpose=purpose.value, expires_at=expires_at)
            db.add(row)
            await safe_commit(db, "create otp")
            await db.refresh(row)
            return OtpRecord.model_validate(row)

    async def find_otp(self, user_id: str, code: str, purpose: OtpPurpose) -> Optional[OtpRecord]:
        stmt = select(OTPModel).where(
            OTPModel.user_id == user_id,
            OTPModel.code == code,
            OTPModel.purpose == purpose.value,
        ).order_by(OTPModel.created_at.desc()).limit(1)
        async with self._session_factory() as db:
            row = (await db.execute(stmt)).scalars().first()
            return OtpRecord.model_validate(row) if row else None

    async def delete_otp(self, otp_id: str) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(delete(OTPModel).where(OTPModel.id == otp_id))
            await safe_commit(db, "delete otp")
            return bool(result.rowcount)

    async def ping(self) -> None:
        async with self._session_factory() as db:
            await db.execute(text("SELECT 1"))


def _object_id(value: str) -> Optional[ObjectId]:
    # ObjectId(None) would mint a fresh id
    if not value:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _user_from_doc(doc: dict) -> UserAccount:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return UserAccount.model_validate(data)


def _otp_from_doc(doc: dict) -> OtpRecord:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return OtpRecord.model_validate(data)


class MongoAccountStore(AccountStore):

    def __init__(self, db):
        self._db = db

    async def get_user(self, user_id: str) -> Optional[UserAccount]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        doc = await self._db.users.find_one({"_id": oid})
        return _user_from_doc(doc) if doc else None

    async def _find_user(self, field: str, flag: str, value: str, verified: Optional[bool]) -> Optional[UserAccount]:
        query = {field: value}
        if verified is not None:
            query[flag] = verified
        doc = await self._db.users.find_one(query, sort=[(flag, -1), ("created_at", 1)])
        return _user_from_doc(doc) if doc else None

    async def find_user_by_phone(self, phone: str, verified: Optional[bool] = None) -> Optional[UserAccount]:
        return await self._find_user("phone", "phone_verified", phone, verified)

    async def find_user_by_email(self, email: str, verified: Optional[bool] = None) -> Optional[UserAccount]:
        return await self._find_user("email", "email_verified", email, verified)

    async def create_user(self, account: UserAccount) -> UserAccount:
        now = utcnow()
        doc = {f: getattr(account, f) for f in _USER_FIELDS}
        doc.update({"created_at": now, "updated_at": now})
        result = await self._db.users.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _user_from_doc(doc)

    async def save_user(self, account: UserAccount) -> Optional[UserAccount]:
        oid = _object_id(account.id)
        if oid is None:
            return None
        changes = {f: getattr(account, f) for f in _USER_FIELDS}
        changes["updated_at"] = utcnow()
        result = await self._db.users.update_one({"_id": oid}, {"$set": changes})
        if not result.matched_count:
            return None
        return account.model_copy(update={"updated_at": changes["updated_at"]})

    async def create_otp(self, user_id: str, code: str, purpose: OtpPurpose, expires_at: datetime) -> OtpRecord:
        doc = {
            "user_id": user_id,
            "code": code,
            "purpose": purpose.value,
            "expires_at": expires_at,
            "created_at": utcnow(),
        }
        result = await self._db.otps.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _otp_from_doc(doc)

    async def find_otp(self, user_id: str, code: str, purpose: OtpPurpose) -> Optional[OtpRecord]:
        doc = await self._db.otps.find_one(
            {"user_id": user_id, "code": code, "purpose": purpose.value},
            sort=[("created_at", -1)],
        )
        return _otp_from_doc(doc) if doc else None

    async def delete_otp(self, otp_id: str) -> bool:
        oid = _object_id(otp_id)
        if oid is None:
            return False
        result = await self._db.otps.delete_one({"_id": oid})
        return bool(result.deleted_count)

    async def ping(self) -> None:
        await self._db.command({"ping": 1})
