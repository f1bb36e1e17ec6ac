from datetime import datetime, timedelta

import pytest
from sqlmodel import Session

from app.database import build_engine, create_db_and_tables
from app.application.ports.user_repo import UserDto, DuplicateUserError
from app.application.ports.otp_repo import OtpDto
from app.application.ports.reset_token_repo import ResetTokenDto
from app.application.ports.biometric_repo import BiometricDto
from app.infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from app.infrastructure.persistence.sqlalchemy.repositories.otp_repository_sql import SqlOtpRepository
from app.infrastructure.persistence.sqlalchemy.repositories.reset_token_repository_sql import SqlResetTokenRepository
from app.infrastructure.persistence.sqlalchemy.repositories.biometric_repository_sql import SqlBiometricRepository

NOW = datetime(2024, 5, 1, 8, 0, 0)


@pytest.fixture
def session():
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    with Session(engine) as s:
        yield s


@pytest.fixture
def user(session):
    return SqlUserRepository(session).create(UserDto(
        id=None, username="a@x.com", email="a@x.com", phone_number="+6281111111111", password_hash="h",
    ))


def test_user_lookup_paths(session, user):
    repo = SqlUserRepository(session)
    assert user.id is not None
    assert repo.get_by_id(user.id).email == "a@x.com"
    assert repo.get_by_email("A@X.com").id == user.id
    assert repo.get_by_phone("+6281111111111").id == user.id
    assert repo.exists_by_email("a@x.com")
    assert not repo.exists_by_phone("+6200000000000")
    assert user.created_at is not None


def test_duplicate_user_raises(session, user):
    repo = SqlUserRepository(session)
    with pytest.raises(DuplicateUserError) as exc:
        repo.create(UserDto(id=None, username="a@x.com", email="a@x.com", phone_number="+6282222222222", password_hash="h"))
    assert exc.value.fields == ["email"]
    # Session is still usable after the rollback
    assert repo.get_by_id(user.id) is not None


def test_update_fields_and_atomic_increment(session, user):
    repo = SqlUserRepository(session)
    assert repo.increment_failed_attempts(user.id) == 1
    assert repo.increment_failed_attempts(user.id) == 2
    repo.update_fields(user.id, is_account_locked=True, locked_until=NOW, social_provider="google", social_provider_id="g1")
    stored = repo.get_by_id(user.id)
    assert stored.failed_login_attempts == 2
    assert stored.is_account_locked and stored.locked_until == NOW
    assert repo.get_by_social("google", "g1").id == user.id
    with pytest.raises(ValueError):
        repo.update_fields(user.id, not_a_column=1)


def test_otp_compare_and_swap(session, user):
    repo = SqlOtpRepository(session)
    repo.create(OtpDto(
        verification_id="ver_0123456789abcdef", user_id=user.id, otp_code="123456",
        phone_number=user.phone_number, expires_at=NOW + timedelta(minutes=5), max_attempts=2, created_at=NOW,
    ))
    assert repo.consume_attempt("ver_0123456789abcdef") == 1
    assert repo.consume_attempt("ver_0123456789abcdef") == 2
    assert repo.consume_attempt("ver_0123456789abcdef") is None
    assert repo.get("ver_0123456789abcdef").attempts == 2

    repo.replace_code("ver_0123456789abcdef", "654321", NOW + timedelta(minutes=10), NOW)
    stored = repo.get("ver_0123456789abcdef")
    assert stored.attempts == 0 and stored.otp_code == "654321" and stored.last_resent_at == NOW

    assert repo.mark_verified("ver_0123456789abcdef") is True
    assert repo.mark_verified("ver_0123456789abcdef") is False
    assert repo.consume_attempt("ver_0123456789abcdef") is None
    assert repo.get("ver_missing") is None


def test_reset_tokens(session, user):
    repo = SqlResetTokenRepository(session)
    for token in ("reset_a", "reset_b"):
        repo.create(ResetTokenDto(reset_token=token, user_id=user.id, otp_code="111111", expires_at=NOW))
    assert repo.find("reset_a", "111111") is not None
    assert repo.find("reset_a", "222222") is None
    assert repo.delete_for_user(user.id) == 2
    assert repo.find("reset_a", "111111") is None

    repo.create(ResetTokenDto(reset_token="reset_c", user_id=user.id, otp_code="333333", expires_at=NOW))
    assert repo.mark_used("reset_c") is True
    assert repo.mark_used("reset_c") is False
    assert repo.find("reset_c", "333333").is_used


def test_biometric_records(session, user):
    repo = SqlBiometricRepository(session)
    created = repo.create(BiometricDto(
        id=None, user_id=user.id, device_id="dev-1", public_key="pk", biometric_type="face", registered_at=NOW,
    ))
    assert created.id is not None
    repo.touch("dev-1", NOW + timedelta(hours=1))
    assert repo.get_by_device("dev-1").last_used_at == NOW + timedelta(hours=1)
    assert repo.get_by_device("dev-2") is None


def test_timestamps_stay_naive_utc(session, user):
    repo = SqlUserRepository(session)
    repo.update_fields(user.id, is_account_locked=True, locked_until=NOW + timedelta(minutes=30), last_login_at=NOW)
    stored = repo.get_by_id(user.id)
    assert stored.locked_until.tzinfo is None
    assert stored.created_at.tzinfo is None
    assert stored.effective_locked(NOW)
    assert not stored.effective_locked(NOW + timedelta(hours=1))
    assert stored.locked_until - stored.last_login_at == timedelta(minutes=30)

    otps = SqlOtpRepository(session)
    otps.create(OtpDto(
        verification_id="ver_naive000000000", user_id=user.id, otp_code="123456",
        phone_number="+6281111111111", expires_at=NOW + timedelta(minutes=5), created_at=NOW,
    ))
    assert otps.get("ver_naive000000000").expires_at > NOW
