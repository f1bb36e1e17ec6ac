import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Callable

from ..ports.user_repo import UserRepository
from ..ports.biometric_repo import BiometricRepository, BiometricDto
from ..ports.biometric_verifier import BiometricVerifier
from ..ports.audit_logger import AuditLogger
from ..results import (
    ErrorKind, Failure, BiometricRegistered, BiometricLoginSuccess,
    BiometricRegisterResult, BiometricLoginResult,
)
from .token_issuer import TokenIssuer
from .login_service import account_locked
from ...utils import utcnow

logger = logging.getLogger(__name__)

UNKNOWN_DEVICE = "Unknown Device"


@dataclass
class BiometricService:
    user_repo: UserRepository
    biometric_repo: BiometricRepository
    verifier: BiometricVerifier
    token_issuer: TokenIssuer
    audit: Optional[AuditLogger] = None
    support_email: str = "support@farmmarket.com"
    clock: Callable[[], datetime] = utcnow

    def register_device(
        self,
        user_id: int,
        device_id: str,
        biometric_type: str,
        public_key: str,
        device_name: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> BiometricRegisterResult:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            return Failure(ErrorKind.USER_NOT_FOUND, "User not found")

        if self.biometric_repo.get_by_device(device_id) is not None:
            return Failure(
                ErrorKind.DEVICE_ALREADY_REGISTERED,
                "Device already registered for biometric authentication",
            )

        now = self.clock()
        record = self.biometric_repo.create(BiometricDto(
            id=None,
            user_id=user.id,
            device_id=device_id,
            public_key=public_key,
            biometric_type=biometric_type,
            device_name=device_name or UNKNOWN_DEVICE,
            platform=platform or "unknown",
            is_active=True,
            registered_at=now,
        ))
        logger.info(f"Registered {biometric_type} device for user {user.id}")
        return BiometricRegistered(biometric_id=record.id, device_id=record.device_id, enabled_at=now)

    def login(self, device_id: str, biometric_token: str, challenge: Optional[str] = None) -> BiometricLoginResult:
        record = self.biometric_repo.get_by_device(device_id)
        if record is None or not record.is_active:
            return Failure(ErrorKind.DEVICE_NOT_REGISTERED, "Device not registered for biometric authentication")

        user = self.user_repo.get_by_id(record.user_id)
        if user is None:
            return Failure(ErrorKind.DEVICE_NOT_REGISTERED, "Device not registered for biometric authentication")

        if not self.verifier.verify(biometric_token, record.public_key, challenge):
            self._audit(device_id, user.id, False, {"reason": "verification_failed"})
            return Failure(ErrorKind.BIOMETRIC_AUTH_FAILED, "Biometric authentication failed")

        now = self.clock()
        if user.effective_locked(now):
            self._audit(device_id, user.id, False, {"reason": "locked"})
            return account_locked(user.locked_until)
        if user.account_status == "suspended":
            self._audit(device_id, user.id, False, {"reason": "suspended"})
            return Failure(
                ErrorKind.ACCOUNT_SUSPENDED,
                "Your account has been suspended. Please contact support.",
                {"support_email": self.support_email},
            )
        if user.account_status == "deleted":
            return Failure(ErrorKind.DEVICE_NOT_REGISTERED, "Device not registered for biometric authentication")

        self.biometric_repo.touch(device_id, now)
        self.user_repo.update_fields(user.id, last_login_at=now)
        user.last_login_at = now
        self._audit(device_id, user.id, True)
        return BiometricLoginSuccess(user=user, tokens=self.token_issuer.issue_pair(user))

    def _audit(self, device_id: str, user_id: Optional[int], success: bool, details=None) -> None:
        if self.audit is not None:
            self.audit.log("biometric_login", device_id, user_id=user_id, success=success, details=details)
