import pytest

from app.application.results import ErrorKind, Registered
from app.application.ports.user_repo import DuplicateUserError
from app.application.services.otp_service import OtpService
from app.application.services.registration_service import RegistrationService, RegistrationData


def registration(**overrides):
    data = dict(
        user_type="producer",
        full_name="Budi Santoso",
        email="a@x.com",
        country_code="+62",
        phone="81111111111",
        password="SecurePass123!",
        confirm_password="SecurePass123!",
        terms_accepted=True,
        location={"province": "West Java", "city": "Bandung", "district": "Coblong"},
    )
    data.update(overrides)
    return RegistrationData(**data)


@pytest.fixture
def svc(users, otps, hasher, notifier, issuer, clock):
    otp_service = OtpService(otp_repo=otps, user_repo=users, notifier=notifier, token_issuer=issuer, clock=clock)
    return RegistrationService(user_repo=users, hasher=hasher, otp_service=otp_service, clock=clock)


def test_register_creates_unverified_user_and_sends_otp(svc, users, otps, notifier, hasher):
    result = svc.register(registration())
    assert isinstance(result, Registered)
    user = users.get_by_id(result.user.id)
    assert user.username == "a@x.com"
    assert user.phone_number == "+6281111111111"
    assert not user.is_phone_verified and not user.is_email_verified
    assert hasher.verify("SecurePass123!", user.password_hash)
    assert user.city == "Bandung"
    assert otps.get(result.otp.verification_id).user_id == user.id
    assert notifier.sent == [("+6281111111111", result.otp.otp_code, "sms")]


def test_duplicate_email_is_a_validation_error(svc):
    svc.register(registration())
    result = svc.register(registration(phone="82222222222"))
    assert result.kind == ErrorKind.VALIDATION_ERROR
    assert "email" in result.details["errors"]
    assert "phone" not in result.details["errors"]


def test_duplicate_phone_is_a_validation_error(svc):
    svc.register(registration())
    result = svc.register(registration(email="b@x.com"))
    assert list(result.details["errors"]) == ["phone"]


def test_all_field_errors_are_collected(svc, users):
    result = svc.register(registration(password="weak", confirm_password="other", terms_accepted=False))
    errors = result.details["errors"]
    assert set(errors) == {"password", "confirm_password", "terms_accepted"}
    assert users.users == {}


def test_insert_race_maps_to_duplicate_user(svc, users):
    def racing_create(user):
        raise DuplicateUserError(["email"])

    users.create = racing_create
    result = svc.register(registration())
    assert result.kind == ErrorKind.DUPLICATE_USER
    assert result.details["existing_fields"] == ["email"]
