from datetime import timedelta

import pytest

from app.application.results import ErrorKind, BiometricRegistered, BiometricLoginSuccess
from app.application.services.biometric_service import BiometricService
from app.infrastructure.biometric.mock_verifier import MockBiometricVerifier


@pytest.fixture
def svc(users, biometrics, issuer, audit, clock):
    return BiometricService(
        user_repo=users, biometric_repo=biometrics, verifier=MockBiometricVerifier(),
        token_issuer=issuer, audit=audit, clock=clock,
    )


@pytest.fixture
def registered(svc, make_user):
    user = make_user()
    result = svc.register_device(user.id, "device-1", "fingerprint", "cHVibGljLWtleQ==", "Pixel 8")
    return user, result


def test_register_device(registered, biometrics, clock):
    user, result = registered
    assert isinstance(result, BiometricRegistered)
    assert result.device_id == "device-1"
    assert result.enabled_at == clock()
    stored = biometrics.get_by_device("device-1")
    assert stored.user_id == user.id
    assert stored.device_name == "Pixel 8"


def test_register_same_device_twice(svc, registered):
    user, _ = registered
    result = svc.register_device(user.id, "device-1", "face", "key")
    assert result.kind == ErrorKind.DEVICE_ALREADY_REGISTERED


def test_register_for_unknown_user(svc):
    assert svc.register_device(42, "device-9", "face", "key").kind == ErrorKind.USER_NOT_FOUND


def test_login_with_registered_device(svc, registered, biometrics, clock):
    user, _ = registered
    clock.advance(minutes=5)
    result = svc.login("device-1", "signed-challenge", "challenge-1")
    assert isinstance(result, BiometricLoginSuccess)
    assert result.user.id == user.id
    assert biometrics.get_by_device("device-1").last_used_at == clock()


def test_login_unknown_or_inactive_device(svc, registered, biometrics):
    assert svc.login("device-404", "token").kind == ErrorKind.DEVICE_NOT_REGISTERED
    biometrics.devices["device-1"].is_active = False
    assert svc.login("device-1", "token").kind == ErrorKind.DEVICE_NOT_REGISTERED


def test_login_rejected_by_verifier(svc, registered):
    assert svc.login("device-1", "").kind == ErrorKind.BIOMETRIC_AUTH_FAILED


def test_login_while_locked(svc, registered, users, clock):
    user, _ = registered
    users.update_fields(user.id, is_account_locked=True, locked_until=clock() + timedelta(minutes=10))
    assert svc.login("device-1", "token").kind == ErrorKind.ACCOUNT_LOCKED

    clock.advance(minutes=11)
    assert isinstance(svc.login("device-1", "token"), BiometricLoginSuccess)


def test_login_while_suspended(svc, registered, users):
    user, _ = registered
    users.update_fields(user.id, account_status="suspended")
    assert svc.login("device-1", "token").kind == ErrorKind.ACCOUNT_SUSPENDED
