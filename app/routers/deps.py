from datetime import timedelta
from functools import lru_cache
import logging

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session
from typing import Optional

from ..core.config import settings
from ..database import get_session
from ..exceptions import ServiceError
from ..application.results import ErrorKind, Failure
from ..application.ports.user_repo import UserDto
from ..application.ports.password_hasher import PasswordHasher
from ..application.ports.notifier import Notifier
from ..application.ports.audit_logger import AuditLogger
from ..application.services.token_issuer import TokenIssuer, ACCESS_TOKEN
from ..application.services.login_service import LoginService
from ..application.services.otp_service import OtpService
from ..application.services.password_service import PasswordService
from ..application.services.registration_service import RegistrationService
from ..application.services.social_login_service import SocialLoginService
from ..application.services.token_service import TokenService
from ..application.services.biometric_service import BiometricService
from ..application.services.profile_service import ProfileService
from ..infrastructure.audit.std_logger import StdAuditLogger
from ..infrastructure.security.passlib_hasher import PasslibPasswordHasher
from ..infrastructure.notifications.log_notifier import LoggingNotifier
from ..infrastructure.notifications.twilio_notifier import TwilioNotifier, ChannelNotifier
from ..infrastructure.social.mock_identity_resolver import MockIdentityResolver
from ..infrastructure.biometric.mock_verifier import MockBiometricVerifier
from ..infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from ..infrastructure.persistence.sqlalchemy.repositories.otp_repository_sql import SqlOtpRepository
from ..infrastructure.persistence.sqlalchemy.repositories.reset_token_repository_sql import SqlResetTokenRepository
from ..infrastructure.persistence.sqlalchemy.repositories.biometric_repository_sql import SqlBiometricRepository

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_hasher() -> PasswordHasher:
    return PasslibPasswordHasher(settings.password_hash_schemes_list)


@lru_cache()
def get_notifier() -> Notifier:
    log_notifier = LoggingNotifier()
    if settings.NOTIFIER_BACKEND.lower() != "twilio":
        return log_notifier
    twilio = TwilioNotifier(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, settings.TWILIO_PHONE_NUMBER)
    logger.info("Twilio notifier initialized")
    # Email delivery is not wired up yet, so email codes only reach the log
    return ChannelNotifier({"sms": twilio, "whatsapp": twilio, "call": twilio}, default=log_notifier)


@lru_cache()
def get_audit_logger() -> AuditLogger:
    return StdAuditLogger()


def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        access_validity=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        remember_me_validity=timedelta(days=settings.REMEMBER_ME_ACCESS_TOKEN_DAYS),
        refresh_validity=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def get_otp_service(
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    audit: AuditLogger = Depends(get_audit_logger),
) -> OtpService:
    return OtpService(
        otp_repo=SqlOtpRepository(session),
        user_repo=SqlUserRepository(session),
        notifier=notifier,
        token_issuer=token_issuer,
        audit=audit,
        expiry=timedelta(minutes=settings.OTP_EXPIRY_MINUTES),
        max_attempts=settings.OTP_MAX_ATTEMPTS,
        resend_cooldown=timedelta(seconds=settings.OTP_RESEND_COOLDOWN_SECONDS),
    )


def get_registration_service(
    session: Session = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
    otp_service: OtpService = Depends(get_otp_service),
) -> RegistrationService:
    return RegistrationService(user_repo=SqlUserRepository(session), hasher=hasher, otp_service=otp_service)


def get_login_service(
    session: Session = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    audit: AuditLogger = Depends(get_audit_logger),
) -> LoginService:
    return LoginService(
        user_repo=SqlUserRepository(session),
        hasher=hasher,
        token_issuer=token_issuer,
        audit=audit,
        max_attempts=settings.MAX_LOGIN_ATTEMPTS,
        lock_duration=timedelta(minutes=settings.LOCK_DURATION_MINUTES),
        support_email=settings.SUPPORT_EMAIL,
    )


def get_password_service(
    session: Session = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
    notifier: Notifier = Depends(get_notifier),
    audit: AuditLogger = Depends(get_audit_logger),
) -> PasswordService:
    return PasswordService(
        user_repo=SqlUserRepository(session),
        reset_repo=SqlResetTokenRepository(session),
        hasher=hasher,
        notifier=notifier,
        audit=audit,
        reset_expiry=timedelta(minutes=settings.RESET_TOKEN_EXPIRY_MINUTES),
    )


def get_social_login_service(
    session: Session = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> SocialLoginService:
    return SocialLoginService(
        user_repo=SqlUserRepository(session),
        hasher=hasher,
        token_issuer=token_issuer,
        resolver=MockIdentityResolver(),
        support_email=settings.SUPPORT_EMAIL,
    )


def get_token_service(
    session: Session = Depends(get_session),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenService:
    return TokenService(user_repo=SqlUserRepository(session), token_issuer=token_issuer)


def get_biometric_service(
    session: Session = Depends(get_session),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    audit: AuditLogger = Depends(get_audit_logger),
) -> BiometricService:
    return BiometricService(
        user_repo=SqlUserRepository(session),
        biometric_repo=SqlBiometricRepository(session),
        verifier=MockBiometricVerifier(),
        token_issuer=token_issuer,
        audit=audit,
        support_email=settings.SUPPORT_EMAIL,
    )


def get_profile_service(session: Session = Depends(get_session)) -> ProfileService:
    return ProfileService(user_repo=SqlUserRepository(session))


def _unauthorized(message: str) -> ServiceError:
    return ServiceError(Failure(ErrorKind.UNAUTHORIZED, message))


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> UserDto:
    if not credentials or not credentials.credentials:
        raise _unauthorized("Authentication required")
    payload = token_issuer.decode(credentials.credentials, expected_type=ACCESS_TOKEN)
    if not payload:
        logger.warning("JWT token decode failed - invalid or expired token")
        raise _unauthorized("Invalid or expired token")
    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        logger.warning("JWT token missing user ID")
        raise _unauthorized("Invalid token: missing user ID")
    user = SqlUserRepository(session).get_by_id(user_id)
    if user is None or user.account_status != "active":
        raise _unauthorized("User not found or inactive")
    return user
