from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Callable
import logging
import jwt

from ..results import TokenPair
from ..ports.user_repo import UserDto
from ...utils import utcnow, external_user_id

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

ACCESS_TOKEN_VALIDITY = timedelta(hours=1)
REMEMBER_ME_VALIDITY = timedelta(days=30)
REFRESH_TOKEN_VALIDITY = timedelta(days=7)


@dataclass
class TokenIssuer:
    """Signs and verifies the access/refresh JWTs handed out by every login path."""

    secret_key: str
    algorithm: str = "HS256"
    access_validity: timedelta = ACCESS_TOKEN_VALIDITY
    remember_me_validity: timedelta = REMEMBER_ME_VALIDITY
    refresh_validity: timedelta = REFRESH_TOKEN_VALIDITY
    clock: Callable[[], datetime] = utcnow

    def access_lifetime(self, remember_me: bool = False) -> timedelta:
        return self.remember_me_validity if remember_me else self.access_validity

    def _encode(self, user: UserDto, token_type: str, validity: timedelta) -> str:
        issued_at = self.clock()
        to_encode = {
            "sub": user.email or external_user_id(user.id),
            "user_id": user.id,
            "type": token_type,
            "iat": issued_at,
            "exp": issued_at + validity,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def create_access_token(self, user: UserDto, remember_me: bool = False) -> str:
        return self._encode(user, ACCESS_TOKEN, self.access_lifetime(remember_me))

    def create_refresh_token(self, user: UserDto) -> str:
        return self._encode(user, REFRESH_TOKEN, self.refresh_validity)

    def issue_pair(self, user: UserDto, remember_me: bool = False) -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(user, remember_me),
            refresh_token=self.create_refresh_token(user),
            expires_in=int(self.access_lifetime(remember_me).total_seconds()),
        )

    def is_expired(self, payload: Dict[str, Any]) -> bool:
        try:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc).replace(tzinfo=None)
        except (KeyError, TypeError, ValueError):
            return True
        return not self.clock() < expires_at

    def decode(self, token: str, expected_type: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Return the claims of a valid token, or None for expired, tampered or malformed tokens."""
        try:
            # Expiry is checked against our own clock below
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "type"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            return None

        if self.is_expired(payload):
            logger.info("Token has expired")
            return None

        if expected_type is not None and payload.get("type") != expected_type:
            logger.warning(f"Token type mismatch: expected {expected_type}, got {payload.get('type')}")
            return None
        return payload
