# app/db/models/auth/otp.py
from sqlmodel import SQLModel, Field
from datetime import datetime
from sqlalchemy import DateTime
from typing import Optional

from ....utils import utcnow

class OtpVerification(SQLModel, table=True):
    __tablename__ = "otp_verifications"
    id: Optional[int] = Field(default=None, primary_key=True)
    verification_id: str = Field(max_length=40, unique=True, index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    otp_code: str = Field(max_length=6)
    phone_number: str = Field(max_length=20, index=True)
    attempts: int = Field(default=0)
    max_attempts: int = Field(default=5)
    expires_at: datetime = Field(sa_type=DateTime)
    verified: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    last_resent_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
