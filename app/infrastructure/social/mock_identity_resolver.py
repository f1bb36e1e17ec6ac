import hashlib
from typing import Optional

from ...application.ports.identity_resolver import IdentityResolver, SocialIdentity

AVATAR_PLACEHOLDER = "https://example.com/avatar.jpg"


class MockIdentityResolver(IdentityResolver):
    """Stand-in for provider token introspection.

    Any non-empty token resolves, and the same provider/token pair always yields
    the same identity so repeated logins hit the same account.
    """

    def resolve(self, provider: str, access_token: str) -> Optional[SocialIdentity]:
        if not access_token or not access_token.strip():
            return None
        digest = hashlib.sha256(f"{provider}:{access_token}".encode()).hexdigest()
        return SocialIdentity(
            social_id=f"{provider}_{digest[:24]}",
            email=f"user_{digest[:8]}@{provider}.com",
            full_name="Social User",
            profile_picture=AVATAR_PLACEHOLDER,
        )
