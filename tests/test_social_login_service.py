import pytest

from app.application.results import ErrorKind, SocialLoginSuccess
from app.application.services.social_login_service import SocialLoginService, COMPLETE_PROFILE_STEP
from app.infrastructure.social.mock_identity_resolver import MockIdentityResolver


@pytest.fixture
def resolver():
    return MockIdentityResolver()


@pytest.fixture
def svc(users, hasher, issuer, resolver, clock):
    return SocialLoginService(user_repo=users, hasher=hasher, token_issuer=issuer, resolver=resolver, clock=clock)


def test_mock_resolver_is_deterministic(resolver):
    first = resolver.resolve("google", "token-1")
    assert first == resolver.resolve("google", "token-1")
    assert first != resolver.resolve("facebook", "token-1")
    assert first.email.endswith("@google.com")
    assert resolver.resolve("google", "  ") is None


@pytest.mark.parametrize("token", ["", "   ", None])
def test_empty_token_fails(svc, token):
    assert svc.social_login("google", token, "buyer").kind == ErrorKind.SOCIAL_AUTH_FAILED


def test_new_user_requires_user_type(svc, users):
    result = svc.social_login("google", "tok")
    assert result.kind == ErrorKind.MISSING_USER_TYPE
    assert users.users == {}


def test_new_user_without_location_needs_profile_completion(svc, users):
    result = svc.social_login("google", "tok", "buyer")
    assert isinstance(result, SocialLoginSuccess)
    assert result.is_new_user
    assert result.requires_profile_completion
    assert result.next_step == COMPLETE_PROFILE_STEP
    stored = users.get_by_id(result.user.id)
    assert stored.is_social_account and stored.is_email_verified
    assert stored.social_provider == "google"
    assert stored.phone_number is None


def test_new_user_with_full_details_is_complete(svc):
    info = {"phone": "+6281200000000", "location": {"province": "West Java", "city": "Bandung"}}
    result = svc.social_login("apple", "tok", "producer", info)
    assert result.is_new_user
    assert not result.requires_profile_completion
    assert result.next_step is None
    assert result.user.city == "Bandung"


def test_social_password_is_unusable(svc, hasher):
    result = svc.social_login("google", "tok", "buyer")
    assert not hasher.verify("", result.user.password_hash)


def test_returning_user_is_not_new(svc, users):
    first = svc.social_login("google", "tok", "buyer")
    second = svc.social_login("google", "tok")
    assert not second.is_new_user
    assert second.user.id == first.user.id
    assert len(users.users) == 1


def test_existing_email_account_is_linked(svc, resolver, make_user, users):
    identity = resolver.resolve("facebook", "fb-token")
    existing = make_user(email=identity.email)
    result = svc.social_login("facebook", "fb-token")
    assert not result.is_new_user
    assert result.user.id == existing.id
    stored = users.get_by_id(existing.id)
    assert stored.social_provider == "facebook"
    assert stored.social_provider_id == identity.social_id
    assert stored.is_email_verified


def test_duplicate_phone_on_create(svc, make_user):
    make_user(email="someone@example.com", phone="+6281200000000")
    result = svc.social_login("google", "tok", "buyer", {"phone": "+6281200000000"})
    assert result.kind == ErrorKind.DUPLICATE_USER
    assert result.details["existing_fields"] == ["phone"]


@pytest.mark.parametrize("status,kind", [
    ("suspended", ErrorKind.ACCOUNT_SUSPENDED),
    ("deleted", ErrorKind.SOCIAL_AUTH_FAILED),
])
def test_inactive_linked_account_is_refused(svc, users, status, kind):
    first = svc.social_login("google", "tok", "buyer")
    users.update_fields(first.user.id, account_status=status)
    result = svc.social_login("google", "tok")
    assert result.kind == kind


def test_suspended_email_account_is_not_linked(svc, resolver, make_user, users):
    identity = resolver.resolve("facebook", "fb-token")
    existing = make_user(email=identity.email, account_status="suspended")
    result = svc.social_login("facebook", "fb-token")
    assert result.kind == ErrorKind.ACCOUNT_SUSPENDED
    assert result.details["support_email"]
    assert users.get_by_id(existing.id).social_provider is None
