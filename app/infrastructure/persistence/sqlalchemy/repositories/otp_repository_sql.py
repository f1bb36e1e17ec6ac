from datetime import datetime
from typing import Optional
from sqlalchemy import update, false
from sqlmodel import Session, select

from .....db.models import OtpVerification
from .....application.ports.otp_repo import OtpRepository, OtpDto


class SqlOtpRepository(OtpRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, rec: OtpVerification) -> OtpDto:
        return OtpDto(
            verification_id=rec.verification_id,
            user_id=rec.user_id,
            otp_code=rec.otp_code,
            phone_number=rec.phone_number,
            expires_at=rec.expires_at,
            attempts=rec.attempts,
            max_attempts=rec.max_attempts,
            verified=rec.verified,
            created_at=rec.created_at,
            last_resent_at=rec.last_resent_at,
        )

    def create(self, otp: OtpDto) -> OtpDto:
        rec = OtpVerification(
            verification_id=otp.verification_id,
            user_id=otp.user_id,
            otp_code=otp.otp_code,
            phone_number=otp.phone_number,
            expires_at=otp.expires_at,
            attempts=otp.attempts,
            max_attempts=otp.max_attempts,
            verified=otp.verified,
            last_resent_at=otp.last_resent_at,
        )
        if otp.created_at is not None:
            rec.created_at = otp.created_at
        self.session.add(rec)
        self.session.commit()
        self.session.refresh(rec)
        return self._to_dto(rec)

    def get(self, verification_id: str) -> Optional[OtpDto]:
        rec = self.session.exec(
            select(OtpVerification).where(OtpVerification.verification_id == verification_id)
        ).first()
        return self._to_dto(rec) if rec else None

    def consume_attempt(self, verification_id: str) -> Optional[int]:
        result = self.session.connection().execute(
            update(OtpVerification)
            .where(
                OtpVerification.verification_id == verification_id,
                OtpVerification.attempts < OtpVerification.max_attempts,
                OtpVerification.verified == false(),
            )
            .values(attempts=OtpVerification.attempts + 1)
        )
        self.session.commit()
        if result.rowcount != 1:
            return None
        return self.session.exec(
            select(OtpVerification.attempts).where(OtpVerification.verification_id == verification_id)
        ).first()

    def mark_verified(self, verification_id: str) -> bool:
        result = self.session.connection().execute(
            update(OtpVerification)
            .where(OtpVerification.verification_id == verification_id, OtpVerification.verified == false())
            .values(verified=True)
        )
        self.session.commit()
        return result.rowcount == 1

    def replace_code(self, verification_id: str, otp_code: str, expires_at: datetime, resent_at: datetime) -> None:
        self.session.connection().execute(
            update(OtpVerification)
            .where(OtpVerification.verification_id == verification_id)
            .values(otp_code=otp_code, expires_at=expires_at, attempts=0, last_resent_at=resent_at)
        )
        self.session.commit()
