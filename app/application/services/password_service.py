import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Callable

from ..ports.user_repo import UserRepository
from ..ports.reset_token_repo import ResetTokenRepository, ResetTokenDto
from ..ports.password_hasher import PasswordHasher
from ..ports.notifier import Notifier
from ..ports.audit_logger import AuditLogger
from ..results import (
    ErrorKind, Failure, ResetIssued, PasswordReset, PasswordChanged,
    ForgotPasswordResult, ResetPasswordResult, ChangePasswordResult,
)
from .login_service import find_user_by_identifier
from .otp_service import dispatch_code
from ...utils import utcnow, generate_otp, generate_reset_token, is_strong_password, PASSWORD_POLICY_MESSAGE

logger = logging.getLogger(__name__)

RESET_TOKEN_EXPIRY_MINUTES = 15


def check_new_password(new_password: str, confirm_password: str) -> Optional[Failure]:
    """Shared confirmation and strength checks for reset and change."""
    if new_password != confirm_password:
        return Failure(ErrorKind.PASSWORD_MISMATCH, "Passwords do not match")
    if not is_strong_password(new_password):
        return Failure(ErrorKind.WEAK_PASSWORD, PASSWORD_POLICY_MESSAGE)
    return None


@dataclass
class PasswordService:
    user_repo: UserRepository
    reset_repo: ResetTokenRepository
    hasher: PasswordHasher
    notifier: Notifier
    audit: Optional[AuditLogger] = None
    reset_expiry: timedelta = timedelta(minutes=RESET_TOKEN_EXPIRY_MINUTES)
    clock: Callable[[], datetime] = utcnow

    def forgot_password(self, identifier: str) -> ForgotPasswordResult:
        user = find_user_by_identifier(self.user_repo, identifier)
        if user is None or user.account_status == "deleted":
            return Failure(ErrorKind.USER_NOT_FOUND, "No account found with this email/phone")

        # Only one live reset token per user
        removed = self.reset_repo.delete_for_user(user.id)
        if removed:
            logger.info(f"Discarded {removed} previous reset token(s) for user {user.id}")

        now = self.clock()
        token = self.reset_repo.create(ResetTokenDto(
            reset_token=generate_reset_token(),
            user_id=user.id,
            otp_code=generate_otp(),
            expires_at=now + self.reset_expiry,
            is_used=False,
            created_at=now,
        ))

        if user.email:
            sent_to, method = user.email, "email"
        else:
            sent_to, method = user.phone_number, "sms"
        dispatch_code(self.notifier, sent_to, token.otp_code, method)
        self._audit("forgot_password", identifier, user.id, True, {"method": method})

        return ResetIssued(
            reset_token=token.reset_token,
            sent_to=sent_to,
            method=method,
            expires_at=token.expires_at,
        )

    def reset_password(self, reset_token: str, otp_code: str, new_password: str, confirm_password: str) -> ResetPasswordResult:
        invalid = check_new_password(new_password, confirm_password)
        if invalid is not None:
            return invalid

        token = self.reset_repo.find(reset_token, otp_code)
        if token is None:
            return Failure(ErrorKind.INVALID_RESET_TOKEN, "Invalid reset token or OTP code")

        now = self.clock()
        if now > token.expires_at:
            return Failure(ErrorKind.RESET_TOKEN_EXPIRED, "Reset token has expired. Please request a new one.")
        if token.is_used:
            return Failure(ErrorKind.RESET_TOKEN_USED, "Reset token has already been used")

        user = self.user_repo.get_by_id(token.user_id)
        if user is None:
            return Failure(ErrorKind.USER_NOT_FOUND, "User not found")

        if not self.reset_repo.mark_used(token.reset_token):
            return Failure(ErrorKind.RESET_TOKEN_USED, "Reset token has already been used")

        self.user_repo.update_fields(
            user.id,
            password_hash=self.hasher.hash(new_password),
            failed_login_attempts=0,
            is_account_locked=False,
            locked_until=None,
            updated_at=now,
        )
        self._audit("reset_password", user.email or user.phone_number, user.id, True)
        return PasswordReset(user_id=user.id)

    def change_password(self, current_password: str, new_password: str, confirm_password: str, user_id: int) -> ChangePasswordResult:
        invalid = check_new_password(new_password, confirm_password)
        if invalid is not None:
            return invalid

        user = self.user_repo.get_by_id(user_id)
        if user is None:
            return Failure(ErrorKind.USER_NOT_FOUND, "User not found")

        if not self.hasher.verify(current_password, user.password_hash):
            self._audit("change_password", user.email or user.phone_number, user.id, False, {"reason": "bad_current"})
            return Failure(ErrorKind.INVALID_CURRENT_PASSWORD, "Current password is incorrect")
        if self.hasher.verify(new_password, user.password_hash):
            return Failure(ErrorKind.SAME_PASSWORD, "New password must be different from current password")

        self.user_repo.update_fields(user.id, password_hash=self.hasher.hash(new_password), updated_at=self.clock())
        self._audit("change_password", user.email or user.phone_number, user.id, True)
        return PasswordChanged(user_id=user.id)

    def _audit(self, action: str, identifier: Optional[str], user_id: Optional[int], success: bool, details=None) -> None:
        if self.audit is not None:
            self.audit.log(action, identifier, user_id=user_id, success=success, details=details)
