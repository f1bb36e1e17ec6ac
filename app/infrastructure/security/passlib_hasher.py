from typing import List, Optional
import logging

from passlib.context import CryptContext

from ...application.ports.password_hasher import PasswordHasher

logger = logging.getLogger(__name__)


class PasslibPasswordHasher(PasswordHasher):
    def __init__(self, schemes: Optional[List[str]] = None):
        self._context = CryptContext(schemes=schemes or ["bcrypt"], deprecated="auto")

    def hash(self, plaintext: str) -> str:
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, digest: str) -> bool:
        if not digest:
            return False
        try:
            return self._context.verify(plaintext, digest)
        except (ValueError, TypeError) as e:
            # Unknown or corrupt hash format counts as a mismatch
            logger.warning(f"Password hash could not be verified: {e}")
            return False
