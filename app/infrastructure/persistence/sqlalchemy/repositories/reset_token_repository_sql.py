from typing import Optional
from sqlalchemy import update, delete, false
from sqlmodel import Session, select

from .....db.models import PasswordResetToken
from .....application.ports.reset_token_repo import ResetTokenRepository, ResetTokenDto


class SqlResetTokenRepository(ResetTokenRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, rec: PasswordResetToken) -> ResetTokenDto:
        return ResetTokenDto(
            reset_token=rec.reset_token,
            user_id=rec.user_id,
            otp_code=rec.otp_code,
            expires_at=rec.expires_at,
            is_used=rec.is_used,
            created_at=rec.created_at,
        )

    def create(self, token: ResetTokenDto) -> ResetTokenDto:
        rec = PasswordResetToken(
            reset_token=token.reset_token,
            user_id=token.user_id,
            otp_code=token.otp_code,
            expires_at=token.expires_at,
            is_used=token.is_used,
        )
        if token.created_at is not None:
            rec.created_at = token.created_at
        self.session.add(rec)
        self.session.commit()
        self.session.refresh(rec)
        return self._to_dto(rec)

    def find(self, reset_token: str, otp_code: str) -> Optional[ResetTokenDto]:
        rec = self.session.exec(
            select(PasswordResetToken).where(
                PasswordResetToken.reset_token == reset_token,
                PasswordResetToken.otp_code == otp_code,
            )
        ).first()
        return self._to_dto(rec) if rec else None

    def delete_for_user(self, user_id: int) -> int:
        result = self.session.connection().execute(
            delete(PasswordResetToken).where(PasswordResetToken.user_id == user_id)
        )
        self.session.commit()
        return result.rowcount or 0

    def mark_used(self, reset_token: str) -> bool:
        result = self.session.connection().execute(
            update(PasswordResetToken)
            .where(PasswordResetToken.reset_token == reset_token, PasswordResetToken.is_used == false())
            .values(is_used=True)
        )
        self.session.commit()
        return result.rowcount == 1
