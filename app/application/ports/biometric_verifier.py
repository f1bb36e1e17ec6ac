from typing import Protocol, Optional


class BiometricVerifier(Protocol):
    def verify(self, biometric_token: str, public_key: str, challenge: Optional[str]) -> bool:
        ...
