from datetime import datetime, timedelta, timezone

import pytest

from fractown.database import build_engine, create_db_and_tables
from fractown.exceptions import ConflictError, TransientError
from fractown.infrastructure.persistence.sqlalchemy.repositories.admin_repository_sql import SqlAdminRepository
from fractown.infrastructure.persistence.sqlalchemy.repositories.otp_store_sql import SqlOtpStore
from fractown.infrastructure.persistence.sqlalchemy.repositories.session_repository_sql import SqlSessionRepository
from fractown.infrastructure.persistence.sqlalchemy.repositories.totp_store_sql import SqlTotpStore
from fractown.infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from fractown.utils import utcnow

NOW = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
PHONE = "+911234567890"


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


def test_otp_replace_and_consume_once(engine):
    store = SqlOtpStore(engine)
    store.replace(PHONE, "111111", NOW + timedelta(minutes=5))
    store.replace(PHONE, "222222", NOW + timedelta(minutes=5))

    assert store.consume(PHONE, "111111", NOW) is False
    assert store.is_pending(PHONE, "222222", NOW) is True
    assert store.consume(PHONE, "222222", NOW) is True
    assert store.consume(PHONE, "222222", NOW) is False
    assert store.is_pending(PHONE, "222222", NOW) is False


def test_otp_expired_code_not_consumed(engine):
    store = SqlOtpStore(engine)
    store.replace(PHONE, "333333", NOW + timedelta(minutes=5))

    assert store.consume(PHONE, "333333", NOW + timedelta(minutes=5)) is False
    assert store.purge_expired(NOW + timedelta(minutes=5)) == 1


def test_user_create_and_conflict(engine):
    repo = SqlUserRepository(engine)
    user = repo.create(name="Asha", phone_number=PHONE, country_code="+91")

    assert repo.get_by_phone(PHONE).id == user.id
    assert user.is_verified and user.is_active
    with pytest.raises(ConflictError):
        repo.create(name="Other", phone_number=PHONE, country_code="+91")

    repo.set_active(user.id, False)
    assert repo.get_by_id(user.id).is_active is False
    assert repo.mark_verified(user.id).is_active is True


def test_session_roundtrip_and_purge(engine):
    repo = SqlSessionRepository(engine)
    repo.create("user", "u1", "a" * 64, NOW + timedelta(hours=1), ip_address="127.0.0.1")
    repo.create("user", "u1", "b" * 64, NOW + timedelta(hours=24))
    repo.create("admin", "a1", "c" * 64, NOW + timedelta(hours=12))

    assert repo.get_by_token_hash("a" * 64).subject_id == "u1"
    assert repo.purge_expired(NOW + timedelta(hours=2)) == 1
    assert repo.delete_for_subject("user", "u1") == 1
    repo.delete_by_token_hash("c" * 64)
    repo.delete_by_token_hash("c" * 64)
    assert repo.get_by_token_hash("c" * 64) is None


def test_session_token_hash_unique(engine):
    repo = SqlSessionRepository(engine)
    repo.create("user", "u1", "d" * 64, NOW + timedelta(hours=1))

    with pytest.raises(TransientError):
        repo.create("user", "u2", "d" * 64, NOW + timedelta(hours=1))


def test_admin_repository(engine):
    repo = SqlAdminRepository(engine)
    admin = repo.create(username="admin1", email="admin1@fractown.com", password_hash="x")

    with pytest.raises(ConflictError):
        repo.create(username="admin1", email="other@fractown.com", password_hash="y")
    repo.update_password(admin.id, "z")
    assert repo.get_by_username("admin1").password_hash == "z"
    updated = repo.update_profile(admin.id, email=None, phone_number="9876543210", country_code="+91")
    assert (updated.email, updated.phone_number, updated.country_code) == ("admin1@fractown.com", "9876543210", "+91")
    assert repo.update_profile("missing", None, None, None) is None


def test_totp_store_activation_and_backup_codes(engine):
    admin = SqlAdminRepository(engine).create(username="admin1", email="admin1@fractown.com", password_hash="x")
    store = SqlTotpStore(engine)
    store.save_pending(admin.id, "SECRET1")

    assert store.activate(admin.id, "OTHER", ["h1"], NOW) is False
    assert store.activate(admin.id, "SECRET1", ["h1", "h2"], NOW) is True
    cred = store.get(admin.id)
    assert (cred.secret, cred.pending_secret, cred.enabled) == ("SECRET1", None, True)

    rows = store.list_unused_backup_codes(admin.id)
    assert sorted(r.code_hash for r in rows) == ["h1", "h2"]
    assert store.consume_backup_code(rows[0].id, NOW) is True
    assert store.consume_backup_code(rows[0].id, NOW) is False
    assert len(store.list_unused_backup_codes(admin.id)) == 1

    store.save_pending(admin.id, "SECRET2")
    assert store.get(admin.id).secret == "SECRET1"

    store.clear(admin.id)
    assert store.get(admin.id) is None
    assert store.list_unused_backup_codes(admin.id) == []


def test_datetimes_round_trip_as_aware_utc(engine):
    sessions = SqlSessionRepository(engine)
    sessions.create("user", "u1", "e" * 64, NOW + timedelta(hours=1))
    stored = sessions.get_by_token_hash("e" * 64)

    assert stored.expires_at == NOW + timedelta(hours=1)
    assert stored.expires_at.utcoffset() == timedelta(0)
    assert stored.created_at.utcoffset() == timedelta(0)

    otp = SqlOtpStore(engine)
    otp.replace(PHONE, "444444", utcnow() + timedelta(minutes=5))
    assert otp.consume(PHONE, "444444", utcnow()) is True


def test_naive_datetimes_are_rejected(engine):
    store = SqlOtpStore(engine)

    with pytest.raises(TransientError):
        store.replace(PHONE, "555555", datetime(2024, 1, 15, 10, 5, 0))
