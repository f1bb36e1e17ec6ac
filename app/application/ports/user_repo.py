from dataclasses import dataclass
from typing import Protocol, Optional, Any, List
from datetime import datetime


class DuplicateUserError(Exception):
    """Raised by a repository when an insert clashes with a unique email or phone."""

    def __init__(self, fields: List[str]):
        super().__init__(f"Duplicate user fields: {', '.join(fields) or 'unknown'}")
        self.fields = fields


@dataclass
class UserDto:
    id: Optional[int]
    username: str
    email: Optional[str]
    phone_number: Optional[str]
    password_hash: str
    full_name: Optional[str] = None
    user_type: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    detailed_address: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    profile_picture: Optional[str] = None
    marketing_consent: bool = False
    referral_code: Optional[str] = None
    is_email_verified: bool = False
    is_phone_verified: bool = False
    is_account_locked: bool = False
    locked_until: Optional[datetime] = None
    failed_login_attempts: int = 0
    account_status: str = "active"
    social_provider: Optional[str] = None
    social_provider_id: Optional[str] = None
    is_social_account: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    def effective_locked(self, now: datetime) -> bool:
        """Lock state as seen at ``now``; an expired lock no longer counts."""
        return bool(self.is_account_locked and self.locked_until is not None and now < self.locked_until)

    def is_profile_complete(self) -> bool:
        return all([self.full_name, self.email, self.phone_number, self.province, self.city])


class UserRepository(Protocol):
    def get_by_id(self, user_id: int) -> Optional[UserDto]:
        ...

    def get_by_email(self, email: str) -> Optional[UserDto]:
        ...

    def get_by_phone(self, phone: str) -> Optional[UserDto]:
        ...

    def get_by_social(self, provider: str, social_id: str) -> Optional[UserDto]:
        ...

    def exists_by_email(self, email: str) -> bool:
        ...

    def exists_by_phone(self, phone: str) -> bool:
        ...

    def create(self, user: UserDto) -> UserDto:
        """Insert a new user; raises DuplicateUserError on a unique-constraint clash."""
        ...

    def update_fields(self, user_id: int, **fields: Any) -> None:
        ...

    def increment_failed_attempts(self, user_id: int) -> int:
        """Atomically add one failed login and return the new count."""
        ...
