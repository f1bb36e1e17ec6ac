from typing import Optional

from ...application.ports.biometric_verifier import BiometricVerifier


class MockBiometricVerifier(BiometricVerifier):
    # TODO: verify the token as a signature over the challenge with the stored public key
    def verify(self, biometric_token: str, public_key: str, challenge: Optional[str]) -> bool:
        return bool(biometric_token)
