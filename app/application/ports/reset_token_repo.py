from dataclasses import dataclass
from typing import Protocol, Optional
from datetime import datetime


@dataclass
class ResetTokenDto:
    reset_token: str
    user_id: int
    otp_code: str
    expires_at: datetime
    is_used: bool = False
    created_at: Optional[datetime] = None


class ResetTokenRepository(Protocol):
    def create(self, token: ResetTokenDto) -> ResetTokenDto:
        ...

    def find(self, reset_token: str, otp_code: str) -> Optional[ResetTokenDto]:
        ...

    def delete_for_user(self, user_id: int) -> int:
        ...

    def mark_used(self, reset_token: str) -> bool:
        """Consume the token; False if another request already used it."""
        ...
