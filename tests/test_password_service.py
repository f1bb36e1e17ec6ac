from datetime import timedelta

import pytest

from app.application.results import ErrorKind, ResetIssued, PasswordReset, PasswordChanged
from app.application.services.password_service import PasswordService

STRONG_PASSWORD = "SecurePass123!"
NEW_PASSWORD = "NewSecure456$"


@pytest.fixture
def svc(users, resets, hasher, notifier, audit, clock):
    return PasswordService(user_repo=users, reset_repo=resets, hasher=hasher, notifier=notifier, audit=audit, clock=clock)


@pytest.fixture
def issued(svc, make_user, notifier):
    user = make_user()
    result = svc.forgot_password("farmer@example.com")
    return user, result, notifier.last_code


def test_forgot_password_prefers_email(issued, clock):
    user, result, _ = issued
    assert isinstance(result, ResetIssued)
    assert result.reset_token.startswith("reset_") and len(result.reset_token) == 38
    assert result.method == "email"
    assert result.sent_to == user.email
    assert result.expires_at == clock() + timedelta(minutes=15)


def test_forgot_password_falls_back_to_sms(svc, make_user):
    make_user(email=None)
    result = svc.forgot_password("+6281234567890")
    assert result.method == "sms"
    assert result.sent_to == "+6281234567890"


def test_forgot_password_unknown_identifier_creates_nothing(svc, resets):
    result = svc.forgot_password("ghost@example.com")
    assert result.kind == ErrorKind.USER_NOT_FOUND
    assert resets.tokens == {}


def test_forgot_password_hides_deleted_account(svc, make_user, users, resets):
    user = make_user()
    users.update_fields(user.id, account_status="deleted")
    result = svc.forgot_password("farmer@example.com")
    assert result.kind == ErrorKind.USER_NOT_FOUND
    assert resets.tokens == {}


def test_new_request_replaces_previous_token(svc, issued, resets):
    user, first, _ = issued
    second = svc.forgot_password("farmer@example.com")
    assert list(resets.tokens) == [second.reset_token]
    assert first.reset_token not in resets.tokens


def test_reset_token_is_redeemable_once(svc, issued, users, hasher):
    user, result, code = issued
    done = svc.reset_password(result.reset_token, code, NEW_PASSWORD, NEW_PASSWORD)
    assert isinstance(done, PasswordReset)
    assert done.user_id == user.id
    assert hasher.verify(NEW_PASSWORD, users.get_by_id(user.id).password_hash)

    again = svc.reset_password(result.reset_token, code, "Another789%", "Another789%")
    assert again.kind == ErrorKind.RESET_TOKEN_USED


def test_reset_clears_lockout(svc, issued, users, clock):
    user, result, code = issued
    users.update_fields(user.id, is_account_locked=True, locked_until=clock() + timedelta(minutes=30), failed_login_attempts=5)
    svc.reset_password(result.reset_token, code, NEW_PASSWORD, NEW_PASSWORD)
    stored = users.get_by_id(user.id)
    assert not stored.is_account_locked
    assert stored.locked_until is None
    assert stored.failed_login_attempts == 0


def test_reset_checks_in_order(svc, issued, clock):
    _, result, code = issued
    assert svc.reset_password(result.reset_token, code, NEW_PASSWORD, "Different1!").kind == ErrorKind.PASSWORD_MISMATCH
    assert svc.reset_password(result.reset_token, code, "weakpass", "weakpass").kind == ErrorKind.WEAK_PASSWORD
    wrong = "000000" if code != "000000" else "111111"
    assert svc.reset_password(result.reset_token, wrong, NEW_PASSWORD, NEW_PASSWORD).kind == ErrorKind.INVALID_RESET_TOKEN
    assert svc.reset_password("reset_unknown", code, NEW_PASSWORD, NEW_PASSWORD).kind == ErrorKind.INVALID_RESET_TOKEN

    clock.advance(minutes=16)
    assert svc.reset_password(result.reset_token, code, NEW_PASSWORD, NEW_PASSWORD).kind == ErrorKind.RESET_TOKEN_EXPIRED


def test_reset_loses_race_to_concurrent_redemption(svc, issued, resets):
    _, result, code = issued
    original = resets.find

    def find_then_consume(token, otp_code):
        found = original(token, otp_code)
        resets.mark_used(token)
        return found

    resets.find = find_then_consume
    assert svc.reset_password(result.reset_token, code, NEW_PASSWORD, NEW_PASSWORD).kind == ErrorKind.RESET_TOKEN_USED


def test_change_password(svc, make_user, users, hasher):
    user = make_user()
    result = svc.change_password(STRONG_PASSWORD, NEW_PASSWORD, NEW_PASSWORD, user.id)
    assert isinstance(result, PasswordChanged)
    assert hasher.verify(NEW_PASSWORD, users.get_by_id(user.id).password_hash)


@pytest.mark.parametrize("current,new,confirm,kind", [
    (STRONG_PASSWORD, NEW_PASSWORD, "Mismatch1!", ErrorKind.PASSWORD_MISMATCH),
    (STRONG_PASSWORD, "short", "short", ErrorKind.WEAK_PASSWORD),
    ("WrongCurrent1!", NEW_PASSWORD, NEW_PASSWORD, ErrorKind.INVALID_CURRENT_PASSWORD),
    (STRONG_PASSWORD, STRONG_PASSWORD, STRONG_PASSWORD, ErrorKind.SAME_PASSWORD),
])
def test_change_password_failures(svc, make_user, current, new, confirm, kind):
    user = make_user()
    assert svc.change_password(current, new, confirm, user.id).kind == kind


def test_change_password_unknown_user(svc):
    assert svc.change_password(STRONG_PASSWORD, NEW_PASSWORD, NEW_PASSWORD, 999).kind == ErrorKind.USER_NOT_FOUND
