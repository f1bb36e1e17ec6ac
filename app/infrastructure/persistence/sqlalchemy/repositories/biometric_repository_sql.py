from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlmodel import Session, select

from .....db.models import BiometricAuth
from .....application.ports.biometric_repo import BiometricRepository, BiometricDto


class SqlBiometricRepository(BiometricRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, rec: BiometricAuth) -> BiometricDto:
        return BiometricDto(
            id=rec.id,
            user_id=rec.user_id,
            device_id=rec.device_id,
            public_key=rec.public_key,
            biometric_type=rec.biometric_type,
            device_name=rec.device_name,
            platform=rec.platform,
            is_active=rec.is_active,
            registered_at=rec.registered_at,
            last_used_at=rec.last_used_at,
        )

    def get_by_device(self, device_id: str) -> Optional[BiometricDto]:
        rec = self.session.exec(select(BiometricAuth).where(BiometricAuth.device_id == device_id)).first()
        return self._to_dto(rec) if rec else None

    def create(self, record: BiometricDto) -> BiometricDto:
        rec = BiometricAuth(
            user_id=record.user_id,
            device_id=record.device_id,
            device_name=record.device_name,
            public_key=record.public_key,
            biometric_type=record.biometric_type,
            platform=record.platform,
            is_active=record.is_active,
        )
        if record.registered_at is not None:
            rec.registered_at = record.registered_at
        self.session.add(rec)
        self.session.commit()
        self.session.refresh(rec)
        return self._to_dto(rec)

    def touch(self, device_id: str, used_at: datetime) -> None:
        self.session.connection().execute(
            update(BiometricAuth).where(BiometricAuth.device_id == device_id).values(last_used_at=used_at)
        )
        self.session.commit()
