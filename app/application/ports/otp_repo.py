from dataclasses import dataclass
from typing import Protocol, Optional
from datetime import datetime


@dataclass
class OtpDto:
    verification_id: str
    user_id: Optional[int]
    otp_code: str
    phone_number: str
    expires_at: datetime
    attempts: int = 0
    max_attempts: int = 5
    verified: bool = False
    created_at: Optional[datetime] = None
    last_resent_at: Optional[datetime] = None


class OtpRepository(Protocol):
    def create(self, otp: OtpDto) -> OtpDto:
        ...

    def get(self, verification_id: str) -> Optional[OtpDto]:
        ...

    def consume_attempt(self, verification_id: str) -> Optional[int]:
        """Increment attempts only while ``attempts < max_attempts`` and not verified.

        Returns the new attempt count, or None when the guard did not hold.
        """
        ...

    def mark_verified(self, verification_id: str) -> bool:
        """Flip ``verified`` from false to true; False if it was already set."""
        ...

    def replace_code(self, verification_id: str, otp_code: str, expires_at: datetime, resent_at: datetime) -> None:
        """Store a resent code and reset the attempt counter."""
        ...
