# app/schemas/user.py
from pydantic import BaseModel
from typing import Optional

from ...application.ports.user_repo import UserDto
from ...utils import external_user_id


class UserSummary(BaseModel):
    user_id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    user_type: Optional[str] = None
    profile_picture: Optional[str] = None
    is_email_verified: bool = False
    is_phone_verified: bool = False
    is_social_account: bool = False
    account_status: str = "active"

    @classmethod
    def from_dto(cls, user: UserDto) -> "UserSummary":
        return cls(
            user_id=external_user_id(user.id),
            email=user.email,
            phone=user.phone_number,
            full_name=user.full_name,
            user_type=user.user_type,
            profile_picture=user.profile_picture,
            is_email_verified=user.is_email_verified,
            is_phone_verified=user.is_phone_verified,
            is_social_account=user.is_social_account,
            account_status=user.account_status,
        )
