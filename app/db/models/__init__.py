# Models package (re-export feature modules for stable imports)
from .users.user import User
from .auth.otp import OtpVerification
from .auth.password_reset import PasswordResetToken
from .auth.biometric import BiometricAuth

__all__ = [
    "User",
    "OtpVerification",
    "PasswordResetToken",
    "BiometricAuth",
]
