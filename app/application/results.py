"""Typed outcomes returned by the application services.

Every service operation returns either a success dataclass or a ``Failure``.
Expected business failures never raise; the HTTP layer maps ``ErrorKind`` to a
status code in ``app.exceptions``.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .ports.user_repo import UserDto
from .ports.otp_repo import OtpDto


class ErrorKind(str, Enum):
    # input
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DUPLICATE_USER = "DUPLICATE_USER"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    # login
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    ACCOUNT_SUSPENDED = "ACCOUNT_SUSPENDED"
    # otp
    INVALID_OTP = "INVALID_OTP"
    OTP_EXPIRED = "OTP_EXPIRED"
    MAX_ATTEMPTS_EXCEEDED = "MAX_ATTEMPTS_EXCEEDED"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    INVALID_VERIFICATION_ID = "INVALID_VERIFICATION_ID"
    RESEND_COOLDOWN = "RESEND_COOLDOWN"
    # passwords
    INVALID_RESET_TOKEN = "INVALID_RESET_TOKEN"
    RESET_TOKEN_EXPIRED = "RESET_TOKEN_EXPIRED"
    RESET_TOKEN_USED = "RESET_TOKEN_USED"
    PASSWORD_MISMATCH = "PASSWORD_MISMATCH"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    INVALID_CURRENT_PASSWORD = "INVALID_CURRENT_PASSWORD"
    SAME_PASSWORD = "SAME_PASSWORD"
    # social
    SOCIAL_AUTH_FAILED = "SOCIAL_AUTH_FAILED"
    MISSING_USER_TYPE = "MISSING_USER_TYPE"
    # tokens
    INVALID_TOKEN = "INVALID_TOKEN"
    MISSING_TOKEN = "MISSING_TOKEN"
    INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    UNAUTHORIZED = "UNAUTHORIZED"
    # biometric
    DEVICE_ALREADY_REGISTERED = "DEVICE_ALREADY_REGISTERED"
    DEVICE_NOT_REGISTERED = "DEVICE_NOT_REGISTERED"
    BIOMETRIC_AUTH_FAILED = "BIOMETRIC_AUTH_FAILED"


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"


@dataclass(frozen=True)
class LoginSuccess:
    tokens: TokenPair
    user: UserDto
    permissions: List[str]


@dataclass(frozen=True)
class Registered:
    user: UserDto
    otp: OtpDto


@dataclass(frozen=True)
class OtpVerified:
    user: UserDto
    tokens: TokenPair


@dataclass(frozen=True)
class OtpResent:
    verification_id: str
    sent_to: str
    method: str
    expires_at: datetime
    can_resend_at: datetime


@dataclass(frozen=True)
class ResetIssued:
    reset_token: str
    sent_to: str
    method: str
    expires_at: datetime


@dataclass(frozen=True)
class PasswordReset:
    user_id: int


@dataclass(frozen=True)
class PasswordChanged:
    user_id: int


@dataclass(frozen=True)
class SocialLoginSuccess:
    user: UserDto
    tokens: TokenPair
    is_new_user: bool
    requires_profile_completion: bool
    next_step: Optional[str] = None


@dataclass(frozen=True)
class TokensRefreshed:
    tokens: TokenPair


@dataclass(frozen=True)
class LoggedOut:
    all_devices: bool


@dataclass(frozen=True)
class BiometricRegistered:
    biometric_id: int
    device_id: str
    enabled_at: datetime


@dataclass(frozen=True)
class BiometricLoginSuccess:
    user: UserDto
    tokens: TokenPair


LoginResult = Union[LoginSuccess, Failure]
RegisterResult = Union[Registered, Failure]
VerifyOtpResult = Union[OtpVerified, Failure]
ResendOtpResult = Union[OtpResent, Failure]
ForgotPasswordResult = Union[ResetIssued, Failure]
ResetPasswordResult = Union[PasswordReset, Failure]
ChangePasswordResult = Union[PasswordChanged, Failure]
SocialLoginResult = Union[SocialLoginSuccess, Failure]
RefreshResult = Union[TokensRefreshed, Failure]
LogoutResult = Union[LoggedOut, Failure]
BiometricRegisterResult = Union[BiometricRegistered, Failure]
BiometricLoginResult = Union[BiometricLoginSuccess, Failure]


@dataclass(frozen=True)
class Profile:
    user: UserDto
    data: Dict[str, Any]


ProfileResult = Union[Profile, Failure]
