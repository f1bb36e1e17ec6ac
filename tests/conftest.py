from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional, Any, Dict, List

import pytest

from app.application.ports.user_repo import UserRepository, UserDto, DuplicateUserError
from app.application.ports.otp_repo import OtpRepository, OtpDto
from app.application.ports.reset_token_repo import ResetTokenRepository, ResetTokenDto
from app.application.ports.biometric_repo import BiometricRepository, BiometricDto
from app.application.ports.notifier import Notifier
from app.application.ports.password_hasher import PasswordHasher
from app.application.ports.audit_logger import AuditLogger
from app.application.services.token_issuer import TokenIssuer

START = datetime(2024, 5, 1, 8, 0, 0)
STRONG_PASSWORD = "SecurePass123!"


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeUserRepo(UserRepository):
    def __init__(self):
        self.users: Dict[int, UserDto] = {}
        self.next_id = 1
        self.writes = 0

    def _find(self, predicate) -> Optional[UserDto]:
        for user in self.users.values():
            if predicate(user):
                return replace(user)
        return None

    def get_by_id(self, user_id: int) -> Optional[UserDto]:
        user = self.users.get(user_id)
        return replace(user) if user else None

    def get_by_email(self, email: str) -> Optional[UserDto]:
        return self._find(lambda u: u.email is not None and u.email.lower() == email.lower())

    def get_by_phone(self, phone: str) -> Optional[UserDto]:
        return self._find(lambda u: u.phone_number == phone)

    def get_by_social(self, provider: str, social_id: str) -> Optional[UserDto]:
        return self._find(lambda u: u.social_provider == provider and u.social_provider_id == social_id)

    def exists_by_email(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def exists_by_phone(self, phone: str) -> bool:
        return self.get_by_phone(phone) is not None

    def create(self, user: UserDto) -> UserDto:
        clashes = []
        if user.email and self.exists_by_email(user.email):
            clashes.append("email")
        if user.phone_number and self.exists_by_phone(user.phone_number):
            clashes.append("phone")
        if clashes:
            raise DuplicateUserError(clashes)
        stored = replace(user, id=self.next_id)
        self.next_id += 1
        self.users[stored.id] = stored
        self.writes += 1
        return replace(stored)

    def update_fields(self, user_id: int, **fields: Any) -> None:
        self.users[user_id] = replace(self.users[user_id], **fields)
        self.writes += 1

    def increment_failed_attempts(self, user_id: int) -> int:
        user = self.users[user_id]
        user.failed_login_attempts += 1
        self.writes += 1
        return user.failed_login_attempts


class FakeOtpRepo(OtpRepository):
    def __init__(self):
        self.records: Dict[str, OtpDto] = {}

    def create(self, otp: OtpDto) -> OtpDto:
        self.records[otp.verification_id] = replace(otp)
        return replace(otp)

    def get(self, verification_id: str) -> Optional[OtpDto]:
        rec = self.records.get(verification_id)
        return replace(rec) if rec else None

    def consume_attempt(self, verification_id: str) -> Optional[int]:
        rec = self.records.get(verification_id)
        if rec is None or rec.verified or rec.attempts >= rec.max_attempts:
            return None
        rec.attempts += 1
        return rec.attempts

    def mark_verified(self, verification_id: str) -> bool:
        rec = self.records.get(verification_id)
        if rec is None or rec.verified:
            return False
        rec.verified = True
        return True

    def replace_code(self, verification_id: str, otp_code: str, expires_at: datetime, resent_at: datetime) -> None:
        rec = self.records[verification_id]
        rec.otp_code = otp_code
        rec.expires_at = expires_at
        rec.attempts = 0
        rec.last_resent_at = resent_at


class FakeResetRepo(ResetTokenRepository):
    def __init__(self):
        self.tokens: Dict[str, ResetTokenDto] = {}

    def create(self, token: ResetTokenDto) -> ResetTokenDto:
        self.tokens[token.reset_token] = replace(token)
        return replace(token)

    def find(self, reset_token: str, otp_code: str) -> Optional[ResetTokenDto]:
        rec = self.tokens.get(reset_token)
        if rec is None or rec.otp_code != otp_code:
            return None
        return replace(rec)

    def delete_for_user(self, user_id: int) -> int:
        doomed = [key for key, rec in self.tokens.items() if rec.user_id == user_id]
        for key in doomed:
            del self.tokens[key]
        return len(doomed)

    def mark_used(self, reset_token: str) -> bool:
        rec = self.tokens.get(reset_token)
        if rec is None or rec.is_used:
            return False
        rec.is_used = True
        return True


class FakeBiometricRepo(BiometricRepository):
    def __init__(self):
        self.devices: Dict[str, BiometricDto] = {}

    def get_by_device(self, device_id: str) -> Optional[BiometricDto]:
        rec = self.devices.get(device_id)
        return replace(rec) if rec else None

    def create(self, record: BiometricDto) -> BiometricDto:
        stored = replace(record, id=len(self.devices) + 1)
        self.devices[stored.device_id] = stored
        return replace(stored)

    def touch(self, device_id: str, used_at: datetime) -> None:
        self.devices[device_id].last_used_at = used_at


class FakeNotifier(Notifier):
    def __init__(self, fail: bool = False):
        self.sent: List[tuple] = []
        self.fail = fail

    def send(self, destination: str, code: str, channel: str) -> None:
        if self.fail:
            raise RuntimeError("gateway down")
        self.sent.append((destination, code, channel))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


class FakeHasher(PasswordHasher):
    def hash(self, plaintext: str) -> str:
        return f"hashed:{plaintext}"

    def verify(self, plaintext: str, digest: str) -> bool:
        return digest == f"hashed:{plaintext}"


class FakeAudit(AuditLogger):
    def __init__(self):
        self.entries: List[dict] = []

    def log(self, action, identifier, user_id=None, success=True, details=None) -> None:
        self.entries.append({"action": action, "identifier": identifier, "user_id": user_id, "success": success, "details": details or {}})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def users():
    return FakeUserRepo()


@pytest.fixture
def otps():
    return FakeOtpRepo()


@pytest.fixture
def resets():
    return FakeResetRepo()


@pytest.fixture
def biometrics():
    return FakeBiometricRepo()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def failing_notifier():
    return FakeNotifier(fail=True)


@pytest.fixture
def hasher():
    return FakeHasher()


@pytest.fixture
def audit():
    return FakeAudit()


@pytest.fixture
def issuer(clock):
    return TokenIssuer(secret_key="test-secret", clock=clock)


@pytest.fixture
def make_user(users, hasher, clock):
    def _make(email="farmer@example.com", phone="+6281234567890", password=STRONG_PASSWORD, **fields):
        return users.create(UserDto(
            id=None,
            username=email or phone,
            email=email,
            phone_number=phone,
            password_hash=hasher.hash(password),
            full_name=fields.pop("full_name", "Budi Santoso"),
            user_type=fields.pop("user_type", "producer"),
            created_at=clock(),
            updated_at=clock(),
            **fields,
        ))
    return _make
