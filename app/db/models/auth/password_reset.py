# app/db/models/auth/password_reset.py
from sqlmodel import SQLModel, Field
from datetime import datetime
from sqlalchemy import DateTime
from typing import Optional

from ....utils import utcnow

class PasswordResetToken(SQLModel, table=True):
    __tablename__ = "password_reset_tokens"
    id: Optional[int] = Field(default=None, primary_key=True)
    reset_token: str = Field(max_length=64, unique=True, index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    otp_code: str = Field(max_length=6)
    expires_at: datetime = Field(sa_type=DateTime)
    is_used: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
