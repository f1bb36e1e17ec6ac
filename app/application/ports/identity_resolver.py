from dataclasses import dataclass
from typing import Protocol, Optional


@dataclass(frozen=True)
class SocialIdentity:
    social_id: str
    email: str
    full_name: Optional[str] = None
    profile_picture: Optional[str] = None


class IdentityResolver(Protocol):
    def resolve(self, provider: str, access_token: str) -> Optional[SocialIdentity]:
        ...
