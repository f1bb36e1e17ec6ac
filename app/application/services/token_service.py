import logging
from dataclasses import dataclass
from typing import Optional

from ..ports.user_repo import UserRepository
from ..results import ErrorKind, Failure, TokensRefreshed, LoggedOut, RefreshResult, LogoutResult
from .token_issuer import TokenIssuer, REFRESH_TOKEN

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def has_bearer_scheme(authorization: Optional[str]) -> bool:
    if not authorization:
        return False
    # Clients may trim the trailing space of an empty "Bearer " header
    return authorization.startswith(BEARER_PREFIX) or authorization.strip() == BEARER_PREFIX.strip()


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


@dataclass
class TokenService:
    """Refresh and logout. Issued tokens are never revoked server-side."""

    user_repo: UserRepository
    token_issuer: TokenIssuer

    def refresh(self, refresh_token: str) -> RefreshResult:
        payload = self.token_issuer.decode(refresh_token, expected_type=REFRESH_TOKEN)
        if payload is None:
            return Failure(ErrorKind.INVALID_REFRESH_TOKEN, "Invalid or expired refresh token")

        user_id = payload.get("user_id")
        if isinstance(user_id, int):
            user = self.user_repo.get_by_id(user_id)
        else:
            user = self.user_repo.get_by_email(payload.get("sub"))
        if user is None:
            return Failure(ErrorKind.USER_NOT_FOUND, "User not found")
        if user.account_status != "active":
            return Failure(ErrorKind.ACCOUNT_INACTIVE, "Account is not active")

        logger.info(f"Refreshed tokens for user {user.id}")
        return TokensRefreshed(tokens=self.token_issuer.issue_pair(user))

    def logout(self, authorization: Optional[str], logout_all_devices: bool = False) -> LogoutResult:
        if not has_bearer_scheme(authorization):
            return Failure(ErrorKind.MISSING_TOKEN, "Authorization header missing or invalid")
        token = extract_bearer(authorization)
        if token is None:
            return Failure(ErrorKind.INVALID_TOKEN, "Invalid token")

        payload = self.token_issuer.decode(token)
        if payload is None:
            return Failure(ErrorKind.INVALID_TOKEN, "Invalid token")

        logger.info(f"User {payload.get('user_id')} logged out (all_devices={logout_all_devices})")
        return LoggedOut(all_devices=logout_all_devices)
