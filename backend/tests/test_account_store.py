"""
Tests for the SQL and Mongo account store backends.
"""
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from bson import ObjectId
from faker import Faker

from db.account_store import MongoAccountStore
from db.mongodb import init_mongo_indexes
from schemas.account_schema import OtpPurpose, UserAccount

fake = Faker()


def _account(**overrides) -> UserAccount:
    data = {
        "full_name": fake.name(),
        "email": fake.email(),
        "phone": fake.numerify("+1555#######"),
        "password_hash": "hashed",
    }
    data.update(overrides)
    return UserAccount(**data)


class TestSqlAccountStore:

    async def test_create_assigns_id_and_timestamps(self, store):
        user = await store.create_user(_account())

        assert user.id
        assert user.created_at is not None
        assert user.updated_at is not None
        assert await store.get_user(user.id) == user

    async def test_get_unknown_user(self, store):
        assert await store.get_user("missing") is None

    async def test_find_by_phone_with_verified_filter(self, store):
        phone = "+15550001111"
        unverified = await store.create_user(_account(phone=phone))

        assert (await store.find_user_by_phone(phone)).id == unverified.id
        assert await store.find_user_by_phone(phone, verified=True) is None
        assert (await store.find_user_by_phone(phone, verified=False)).id == unverified.id

    async def test_find_by_phone_prefers_verified_holder(self, store):
        phone = "+15550002222"
        first = await store.create_user(_account(phone=phone))
        second = await store.create_user(_account(phone=phone, phone_verified=True))

        assert (await store.find_user_by_phone(phone)).id == second.id
        assert first.id != second.id

    async def test_find_by_phone_falls_back_to_earliest(self, store):
        phone = "+15550003333"
        first = await store.create_user(_account(phone=phone))
        await store.create_user(_account(phone=phone))

        assert (await store.find_user_by_phone(phone)).id == first.id

    async def test_find_by_email(self, store):
        user = await store.create_user(_account(email="a@example.com", email_verified=True))

        assert (await store.find_user_by_email("a@example.com", verified=True)).id == user.id
        assert await store.find_user_by_email("b@example.com") is None

    async def test_save_user_persists_changes(self, store):
        user = await store.create_user(_account())
        user.phone_verified = True
        user.password_hash = "rehashed"

        saved = await store.save_user(user)

        assert saved.phone_verified is True
        stored = await store.get_user(user.id)
        assert stored.phone_verified is True
        assert stored.password_hash == "rehashed"

    async def test_save_missing_user_returns_none(self, store):
        assert await store.save_user(_account(id="missing")) is None

    async def test_otp_lifecycle(self, store):
        user = await store.create_user(_account())
        expires = datetime(2030, 1, 1, 12, 5)

        otp = await store.create_otp(user.id, "123456", OtpPurpose.PHONE_VERIFICATION, expires)

        assert otp.id
        assert otp.expires_at == expires
        found = await store.find_otp(user.id, "123456", OtpPurpose.PHONE_VERIFICATION)
        assert found.id == otp.id
        assert await store.find_otp(user.id, "123456", OtpPurpose.FORGOT_PASSWORD) is None
        assert await store.delete_otp(otp.id) is True
        assert await store.delete_otp(otp.id) is False
        assert await store.find_otp(user.id, "123456", OtpPurpose.PHONE_VERIFICATION) is None

    async def test_multiple_live_otps_per_purpose(self, store):
        user = await store.create_user(_account())
        expires = datetime(2030, 1, 1, 12, 5)
        await store.create_otp(user.id, "111111", OtpPurpose.FORGOT_PASSWORD, expires)
        await store.create_otp(user.id, "222222", OtpPurpose.FORGOT_PASSWORD, expires)

        assert await store.find_otp(user.id, "111111", OtpPurpose.FORGOT_PASSWORD) is not None
        assert await store.find_otp(user.id, "222222", OtpPurpose.FORGOT_PASSWORD) is not None

    async def test_ping(self, store):
        await store.ping()


def _mock_mongo_db():
    mock_db = MagicMock()
    for name in ("users", "otps"):
        collection = MagicMock()
        collection.find_one = AsyncMock(return_value=None)
        collection.insert_one = AsyncMock()
        collection.update_one = AsyncMock()
        collection.delete_one = AsyncMock()
        setattr(mock_db, name, collection)
    mock_db.command = AsyncMock(return_value={"ok": 1})
    return mock_db


class TestMongoAccountStore:

    async def test_create_user_returns_string_id(self):
        db = _mock_mongo_db()
        oid = ObjectId()
        db.users.insert_one.return_value = MagicMock(inserted_id=oid)
        store = MongoAccountStore(db)

        user = await store.create_user(_account(email="m@example.com"))

        assert user.id == str(oid)
        inserted = db.users.insert_one.call_args.args[0]
        assert inserted["email"] == "m@example.com"
        assert inserted["phone_verified"] is False
        assert inserted["created_at"] == inserted["updated_at"]

    async def test_get_user_converts_document(self):
        db = _mock_mongo_db()
        oid = ObjectId()
        db.users.find_one.return_value = {
            "_id": oid,
            "full_name": "Mongo User",
            "email": "m@example.com",
            "email_verified": True,
            "phone": "+1555",
            "phone_verified": False,
            "password_hash": "hashed",
            "created_at": datetime(2030, 1, 1),
            "updated_at": datetime(2030, 1, 1),
        }
        store = MongoAccountStore(db)

        user = await store.get_user(str(oid))

        assert user.id == str(oid)
        assert user.email_verified is True
        db.users.find_one.assert_awaited_once_with({"_id": oid})

    async def test_get_user_with_invalid_id(self):
        db = _mock_mongo_db()
        store = MongoAccountStore(db)

        assert await store.get_user("not-an-object-id") is None
        assert await store.get_user(None) is None
        db.users.find_one.assert_not_called()

    async def test_find_by_phone_query_and_ordering(self):
        db = _mock_mongo_db()
        store = MongoAccountStore(db)

        assert await store.find_user_by_phone("+1555", verified=True) is None

        db.users.find_one.assert_awaited_once_with(
            {"phone": "+1555", "phone_verified": True},
            sort=[("phone_verified", -1), ("created_at", 1)],
        )

    async def test_save_missing_user(self):
        db = _mock_mongo_db()
        db.users.update_one.return_value = MagicMock(matched_count=0)
        store = MongoAccountStore(db)

        assert await store.save_user(_account(id=str(ObjectId()))) is None

    async def test_otp_roundtrip_calls(self):
        db = _mock_mongo_db()
        oid = ObjectId()
        db.otps.insert_one.return_value = MagicMock(inserted_id=oid)
        db.otps.delete_one.return_value = MagicMock(deleted_count=1)
        store = MongoAccountStore(db)
        expires = datetime(2030, 1, 1) + timedelta(minutes=5)

        otp = await store.create_otp("user-1", "654321", OtpPurpose.FORGOT_PASSWORD, expires)

        assert otp.id == str(oid)
        assert otp.purpose is OtpPurpose.FORGOT_PASSWORD
        assert db.otps.insert_one.call_args.args[0]["purpose"] == "forgotPassword"
        assert await store.delete_otp(otp.id) is True
        db.otps.delete_one.assert_awaited_once_with({"_id": oid})


async def test_init_mongo_indexes_on_given_db():
    db = _mock_mongo_db()
    db.users.create_index = AsyncMock()
    db.otps.create_index = AsyncMock()

    await init_mongo_indexes(db)

    db.command.assert_awaited_once_with({"ping": 1})
    names = [c.kwargs["name"] for c in db.users.create_index.await_args_list]
    assert names == ["i_phone_verified", "i_email_verified"]
    db.otps.create_index.assert_awaited_once()
