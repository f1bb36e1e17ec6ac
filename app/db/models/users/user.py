# app/db/models/users/user.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
from sqlalchemy import DateTime

from ....utils import utcnow

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(max_length=100)
    email: Optional[str] = Field(default=None, max_length=100, unique=True, index=True)
    phone_number: Optional[str] = Field(default=None, max_length=20, unique=True, index=True)
    password_hash: str = Field(max_length=255)
    full_name: Optional[str] = Field(default=None, max_length=100)
    user_type: Optional[str] = Field(default=None, max_length=10)

    # Location
    province: Optional[str] = Field(default=None, max_length=100)
    city: Optional[str] = Field(default=None, max_length=100)
    district: Optional[str] = Field(default=None, max_length=100)
    detailed_address: Optional[str] = Field(default=None, max_length=255)
    postal_code: Optional[str] = Field(default=None, max_length=10)
    latitude: Optional[float] = Field(default=None)
    longitude: Optional[float] = Field(default=None)

    profile_picture: Optional[str] = Field(default=None, max_length=255)
    marketing_consent: bool = Field(default=False)
    referral_code: Optional[str] = Field(default=None, max_length=50)

    # Verification
    is_email_verified: bool = Field(default=False)
    is_phone_verified: bool = Field(default=False)

    # Lockout
    is_account_locked: bool = Field(default=False)
    locked_until: Optional[datetime] = Field(default=None, sa_type=DateTime)
    failed_login_attempts: int = Field(default=0)

    account_status: str = Field(default="active", max_length=20)  # active, suspended, deleted

    # Social login link
    social_provider: Optional[str] = Field(default=None, max_length=20)
    social_provider_id: Optional[str] = Field(default=None, max_length=100, index=True)
    is_social_account: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    last_login_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
