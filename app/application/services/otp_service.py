import logging
import math
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Callable

from ..ports.otp_repo import OtpRepository, OtpDto
from ..ports.user_repo import UserRepository
from ..ports.notifier import Notifier
from ..ports.audit_logger import AuditLogger
from ..results import ErrorKind, Failure, OtpVerified, OtpResent, VerifyOtpResult, ResendOtpResult
from .token_issuer import TokenIssuer
from ...utils import utcnow, generate_otp, generate_verification_id

logger = logging.getLogger(__name__)

OTP_EXPIRY_MINUTES = 5
OTP_MAX_ATTEMPTS = 5
RESEND_COOLDOWN_SECONDS = 60
DEFAULT_METHOD = "sms"


def dispatch_code(notifier: Notifier, destination: str, code: str, channel: str) -> bool:
    """Fire-and-forget delivery; a failed send is logged and never reaches the caller."""
    try:
        notifier.send(destination, code, channel)
        return True
    except Exception:
        logger.exception(f"Failed to deliver code via {channel}")
        return False


@dataclass
class OtpService:
    otp_repo: OtpRepository
    user_repo: UserRepository
    notifier: Notifier
    token_issuer: TokenIssuer
    audit: Optional[AuditLogger] = None
    expiry: timedelta = timedelta(minutes=OTP_EXPIRY_MINUTES)
    max_attempts: int = OTP_MAX_ATTEMPTS
    resend_cooldown: timedelta = timedelta(seconds=RESEND_COOLDOWN_SECONDS)
    clock: Callable[[], datetime] = utcnow

    def issue(self, phone: str, user_id: Optional[int]) -> OtpDto:
        now = self.clock()
        record = self.otp_repo.create(OtpDto(
            verification_id=generate_verification_id(),
            user_id=user_id,
            otp_code=generate_otp(),
            phone_number=phone,
            expires_at=now + self.expiry,
            attempts=0,
            max_attempts=self.max_attempts,
            verified=False,
            created_at=now,
        ))
        dispatch_code(self.notifier, phone, record.otp_code, DEFAULT_METHOD)
        logger.info(f"OTP issued for verification {record.verification_id}")
        return record

    def verify(self, verification_id: str, code: str) -> VerifyOtpResult:
        otp = self.otp_repo.get(verification_id)
        if otp is None:
            return Failure(ErrorKind.INVALID_VERIFICATION_ID, "Invalid verification ID")
        if otp.verified:
            return Failure(ErrorKind.ALREADY_VERIFIED, "OTP already verified")

        now = self.clock()
        if now > otp.expires_at:
            return Failure(ErrorKind.OTP_EXPIRED, "OTP code has expired. Please request a new one.")
        if otp.attempts >= otp.max_attempts:
            return self._attempts_exhausted(now)

        # Counted before comparing, so the correct attempt uses budget too
        attempts = self.otp_repo.consume_attempt(verification_id)
        if attempts is None:
            # Another request verified or exhausted this record in the meantime
            current = self.otp_repo.get(verification_id)
            if current is not None and current.verified:
                return Failure(ErrorKind.ALREADY_VERIFIED, "OTP already verified")
            return self._attempts_exhausted(now)

        if not secrets.compare_digest(otp.otp_code.encode(), (code or "").encode()):
            self._audit("otp_verify", otp.phone_number, otp.user_id, False, {"attempts": attempts})
            return Failure(
                ErrorKind.INVALID_OTP,
                "Invalid or expired OTP code",
                {"attempts_remaining": otp.max_attempts - attempts, "max_attempts": otp.max_attempts},
            )

        if not self.otp_repo.mark_verified(verification_id):
            return Failure(ErrorKind.ALREADY_VERIFIED, "OTP already verified")

        user = self.user_repo.get_by_id(otp.user_id) if otp.user_id is not None else None
        if user is None:
            return Failure(ErrorKind.USER_NOT_FOUND, "User not found")

        self.user_repo.update_fields(user.id, is_phone_verified=True, updated_at=now)
        user.is_phone_verified = True
        self._audit("otp_verify", otp.phone_number, user.id, True)
        return OtpVerified(user=user, tokens=self.token_issuer.issue_pair(user))

    def resend(self, verification_id: str, method: Optional[str] = None) -> ResendOtpResult:
        otp = self.otp_repo.get(verification_id)
        if otp is None:
            return Failure(ErrorKind.INVALID_VERIFICATION_ID, "Invalid verification ID")
        if otp.verified:
            return Failure(ErrorKind.ALREADY_VERIFIED, "Phone number already verified")

        now = self.clock()
        if otp.last_resent_at is not None:
            can_resend_at = otp.last_resent_at + self.resend_cooldown
            if now < can_resend_at:
                retry_after = max(1, math.ceil((can_resend_at - now).total_seconds()))
                return Failure(
                    ErrorKind.RESEND_COOLDOWN,
                    "Please wait before requesting another OTP",
                    {"retry_after": retry_after},
                )

        method = method or DEFAULT_METHOD
        code = generate_otp()
        expires_at = now + self.expiry
        self.otp_repo.replace_code(verification_id, code, expires_at, now)
        dispatch_code(self.notifier, otp.phone_number, code, method)
        logger.info(f"OTP resent for verification {verification_id} via {method}")

        return OtpResent(
            verification_id=verification_id,
            sent_to=otp.phone_number,
            method=method,
            expires_at=expires_at,
            can_resend_at=now + self.resend_cooldown,
        )

    def _attempts_exhausted(self, now: datetime) -> Failure:
        return Failure(
            ErrorKind.MAX_ATTEMPTS_EXCEEDED,
            "Maximum OTP attempts exceeded. Please request a new code.",
            {"can_resend_at": now + self.expiry},
        )

    def _audit(self, action: str, phone: str, user_id: Optional[int], success: bool, details=None) -> None:
        if self.audit is not None:
            self.audit.log(action, phone, user_id=user_id, success=success, details=details)
