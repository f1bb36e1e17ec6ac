import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Callable, List

from ..ports.user_repo import UserRepository, UserDto
from ..ports.password_hasher import PasswordHasher
from ..ports.audit_logger import AuditLogger
from ..results import ErrorKind, Failure, LoginSuccess, LoginResult
from .token_issuer import TokenIssuer
from ...utils import utcnow, is_email_identifier

logger = logging.getLogger(__name__)

MAX_LOGIN_ATTEMPTS = 5
LOCK_DURATION_MINUTES = 30

PRODUCER_PERMISSIONS = ["create_product", "manage_orders", "view_analytics", "chat_with_users"]
BUYER_PERMISSIONS = ["place_order", "view_products", "chat_with_sellers"]
DEFAULT_PERMISSIONS = ["view_products"]


def permissions_for(user_type: Optional[str]) -> List[str]:
    if user_type in ("producer", "both"):
        return list(PRODUCER_PERMISSIONS)
    if user_type == "buyer":
        return list(BUYER_PERMISSIONS)
    return list(DEFAULT_PERMISSIONS)


def find_user_by_identifier(user_repo: UserRepository, identifier: str) -> Optional[UserDto]:
    if is_email_identifier(identifier):
        return user_repo.get_by_email(identifier)
    return user_repo.get_by_phone(identifier)


def account_locked(locked_until: Optional[datetime]) -> Failure:
    return Failure(
        ErrorKind.ACCOUNT_LOCKED,
        "Your account has been temporarily locked due to multiple failed login attempts",
        {"locked_until": locked_until, "contact_support": True},
    )


@dataclass
class LoginService:
    user_repo: UserRepository
    hasher: PasswordHasher
    token_issuer: TokenIssuer
    audit: Optional[AuditLogger] = None
    max_attempts: int = MAX_LOGIN_ATTEMPTS
    lock_duration: timedelta = timedelta(minutes=LOCK_DURATION_MINUTES)
    support_email: str = "support@farmmarket.com"
    clock: Callable[[], datetime] = utcnow

    def login(self, identifier: str, password: str, remember_me: bool = False) -> LoginResult:
        user = find_user_by_identifier(self.user_repo, identifier)
        if user is None or user.account_status == "deleted":
            self._audit("login", identifier, None, False, {"reason": "unknown_identifier"})
            return self._invalid_credentials(self.max_attempts)

        now = self.clock()
        if user.is_account_locked:
            if user.effective_locked(now):
                self._audit("login", identifier, user.id, False, {"reason": "locked"})
                return account_locked(user.locked_until)
            # Lock expired: clear it lazily on this access
            self.user_repo.update_fields(
                user.id, is_account_locked=False, locked_until=None, failed_login_attempts=0, updated_at=now
            )
            user.is_account_locked = False
            user.locked_until = None
            user.failed_login_attempts = 0
            logger.info(f"Lock expired for user {user.id}, account unlocked")

        if user.account_status == "suspended":
            self._audit("login", identifier, user.id, False, {"reason": "suspended"})
            return Failure(
                ErrorKind.ACCOUNT_SUSPENDED,
                "Your account has been suspended. Please contact support.",
                {"reason": "Terms violation", "support_email": self.support_email},
            )

        if not self.hasher.verify(password, user.password_hash):
            return self._handle_failed_login(user, identifier, now)

        self.user_repo.update_fields(
            user.id,
            failed_login_attempts=0,
            is_account_locked=False,
            locked_until=None,
            last_login_at=now,
        )
        user.failed_login_attempts = 0
        user.is_account_locked = False
        user.locked_until = None
        user.last_login_at = now

        self._audit("login", identifier, user.id, True, {"remember_me": remember_me})
        return LoginSuccess(
            tokens=self.token_issuer.issue_pair(user, remember_me=remember_me),
            user=user,
            permissions=permissions_for(user.user_type),
        )

    def _handle_failed_login(self, user: UserDto, identifier: str, now: datetime) -> Failure:
        attempts = self.user_repo.increment_failed_attempts(user.id)
        if attempts >= self.max_attempts:
            locked_until = now + self.lock_duration
            self.user_repo.update_fields(user.id, is_account_locked=True, locked_until=locked_until, updated_at=now)
            logger.warning(f"User {user.id} locked until {locked_until.isoformat()} after {attempts} failed logins")
            self._audit("account_locked", identifier, user.id, False, {"attempts": attempts})
            return account_locked(locked_until)

        self._audit("login", identifier, user.id, False, {"reason": "bad_password", "attempts": attempts})
        return self._invalid_credentials(self.max_attempts - attempts)

    def _invalid_credentials(self, attempts_remaining: int) -> Failure:
        return Failure(
            ErrorKind.INVALID_CREDENTIALS,
            "Invalid email/phone or password",
            {"attempts_remaining": attempts_remaining},
        )

    def _audit(self, action: str, identifier: str, user_id: Optional[int], success: bool, details=None) -> None:
        if self.audit is not None:
            self.audit.log(action, identifier, user_id=user_id, success=success, details=details)
