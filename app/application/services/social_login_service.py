import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Callable, Dict, Any

from ..ports.user_repo import UserRepository, UserDto, DuplicateUserError
from ..ports.password_hasher import PasswordHasher
from ..ports.identity_resolver import IdentityResolver, SocialIdentity
from ..results import ErrorKind, Failure, SocialLoginSuccess, SocialLoginResult
from .token_issuer import TokenIssuer
from ...utils import utcnow

logger = logging.getLogger(__name__)

COMPLETE_PROFILE_STEP = "complete_profile"


def profile_incomplete(user: UserDto) -> bool:
    return not (user.phone_number and user.province and user.city)


@dataclass
class SocialLoginService:
    user_repo: UserRepository
    hasher: PasswordHasher
    token_issuer: TokenIssuer
    resolver: IdentityResolver
    support_email: str = "support@farmmarket.com"
    clock: Callable[[], datetime] = utcnow

    def social_login(
        self,
        provider: str,
        access_token: Optional[str],
        user_type: Optional[str] = None,
        additional_info: Optional[Dict[str, Any]] = None,
    ) -> SocialLoginResult:
        identity = None
        if access_token and access_token.strip():
            identity = self.resolver.resolve(provider, access_token)
        if identity is None:
            return Failure(
                ErrorKind.SOCIAL_AUTH_FAILED,
                "Failed to authenticate with social provider",
                {"details": "Invalid access token"},
            )

        linked = self.user_repo.get_by_social(provider, identity.social_id)
        if linked is not None:
            return self._check_status(linked) or self._login_existing(linked)

        by_email = self.user_repo.get_by_email(identity.email)
        if by_email is not None:
            return self._check_status(by_email) or self._link_and_login(by_email, provider, identity)

        return self._register_new(provider, identity, user_type, additional_info or {})

    def _check_status(self, user: UserDto) -> Optional[Failure]:
        if user.account_status == "deleted":
            logger.info(f"Social login refused for deleted user {user.id}")
            return Failure(
                ErrorKind.SOCIAL_AUTH_FAILED,
                "Failed to authenticate with social provider",
                {"details": "Account not available"},
            )
        if user.account_status == "suspended":
            return Failure(
                ErrorKind.ACCOUNT_SUSPENDED,
                "Your account has been suspended. Please contact support.",
                {"support_email": self.support_email},
            )
        return None

    def _login_existing(self, user: UserDto) -> SocialLoginSuccess:
        now = self.clock()
        self.user_repo.update_fields(user.id, last_login_at=now)
        user.last_login_at = now
        return SocialLoginSuccess(
            user=user,
            tokens=self.token_issuer.issue_pair(user),
            is_new_user=False,
            requires_profile_completion=False,
        )

    def _link_and_login(self, user: UserDto, provider: str, identity: SocialIdentity) -> SocialLoginSuccess:
        self.user_repo.update_fields(
            user.id,
            social_provider=provider,
            social_provider_id=identity.social_id,
            is_social_account=True,
            is_email_verified=True,
            updated_at=self.clock(),
        )
        user.social_provider = provider
        user.social_provider_id = identity.social_id
        user.is_social_account = True
        user.is_email_verified = True
        logger.info(f"Linked {provider} identity to existing user {user.id}")
        return self._login_existing(user)

    def _register_new(self, provider: str, identity: SocialIdentity, user_type: Optional[str], additional_info: Dict[str, Any]) -> SocialLoginResult:
        if not user_type:
            return Failure(
                ErrorKind.MISSING_USER_TYPE,
                "User type is required for new users",
                {"details": "Please specify user_type: producer, buyer, or both"},
            )

        now = self.clock()
        location = additional_info.get("location") or {}
        try:
            user = self._create_user(provider, identity, user_type, additional_info.get("phone"), location, now)
        except DuplicateUserError as e:
            return Failure(
                ErrorKind.DUPLICATE_USER,
                "An account with this email or phone already exists",
                {"existing_fields": e.fields},
            )
        incomplete = profile_incomplete(user)
        logger.info(f"Created user {user.id} from {provider} login")
        return SocialLoginSuccess(
            user=user,
            tokens=self.token_issuer.issue_pair(user),
            is_new_user=True,
            requires_profile_completion=incomplete,
            next_step=COMPLETE_PROFILE_STEP if incomplete else None,
        )

    def _create_user(self, provider: str, identity: SocialIdentity, user_type: str, phone: Optional[str], location: Dict[str, Any], now: datetime) -> UserDto:
        return self.user_repo.create(UserDto(
            id=None,
            username=identity.email,
            email=identity.email,
            phone_number=phone,
            # Social accounts never log in by password
            password_hash=self.hasher.hash(secrets.token_urlsafe(32)),
            full_name=identity.full_name,
            user_type=user_type,
            province=location.get("province"),
            city=location.get("city"),
            latitude=location.get("latitude"),
            longitude=location.get("longitude"),
            profile_picture=identity.profile_picture,
            is_email_verified=True,
            is_phone_verified=False,
            account_status="active",
            social_provider=provider,
            social_provider_id=identity.social_id,
            is_social_account=True,
            created_at=now,
            updated_at=now,
            last_login_at=now,
        ))
