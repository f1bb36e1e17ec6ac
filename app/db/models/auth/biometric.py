# app/db/models/auth/biometric.py
from sqlmodel import SQLModel, Field
from datetime import datetime
from sqlalchemy import DateTime
from typing import Optional

from ....utils import utcnow

class BiometricAuth(SQLModel, table=True):
    __tablename__ = "biometric_auth"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    device_id: str = Field(max_length=100, unique=True, index=True)
    device_name: Optional[str] = Field(default=None, max_length=100)
    public_key: str
    biometric_type: str = Field(max_length=20)  # fingerprint, face
    platform: str = Field(default="unknown", max_length=20)  # android, ios, web
    is_active: bool = Field(default=True)
    registered_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    last_used_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
