import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Callable, Dict, Any, List

from ..ports.user_repo import UserRepository, UserDto, DuplicateUserError
from ..ports.password_hasher import PasswordHasher
from ..results import ErrorKind, Failure, Registered, RegisterResult
from .otp_service import OtpService
from ...utils import utcnow, is_strong_password, PASSWORD_POLICY_MESSAGE

logger = logging.getLogger(__name__)


@dataclass
class RegistrationData:
    user_type: str
    full_name: str
    email: str
    country_code: str
    phone: str
    password: str
    confirm_password: str
    terms_accepted: bool
    location: Dict[str, Any] = field(default_factory=dict)
    profile_picture: Optional[str] = None
    marketing_consent: bool = False
    referral_code: Optional[str] = None

    @property
    def full_phone(self) -> str:
        return f"{self.country_code}{self.phone}"


@dataclass
class RegistrationService:
    user_repo: UserRepository
    hasher: PasswordHasher
    otp_service: OtpService
    clock: Callable[[], datetime] = utcnow

    def validate(self, data: RegistrationData) -> Dict[str, List[str]]:
        errors: Dict[str, List[str]] = {}
        if not is_strong_password(data.password):
            errors.setdefault("password", []).append(PASSWORD_POLICY_MESSAGE)
        if data.password != data.confirm_password:
            errors.setdefault("confirm_password", []).append("Passwords do not match")
        if not data.terms_accepted:
            errors.setdefault("terms_accepted", []).append("Terms must be accepted")
        if self.user_repo.exists_by_email(data.email):
            errors.setdefault("email", []).append("Email is already registered")
        if self.user_repo.exists_by_phone(data.full_phone):
            errors.setdefault("phone", []).append("Phone number is already in use")
        return errors

    def register(self, data: RegistrationData) -> RegisterResult:
        errors = self.validate(data)
        if errors:
            logger.info(f"Registration rejected: {sorted(errors)}")
            return Failure(ErrorKind.VALIDATION_ERROR, "Validation failed", {"errors": errors})

        now = self.clock()
        location = data.location or {}
        try:
            user = self.user_repo.create(UserDto(
                id=None,
                username=data.email,
                email=data.email,
                phone_number=data.full_phone,
                password_hash=self.hasher.hash(data.password),
                full_name=data.full_name,
                user_type=data.user_type,
                province=location.get("province"),
                city=location.get("city"),
                district=location.get("district"),
                detailed_address=location.get("detailed_address"),
                postal_code=location.get("postal_code"),
                latitude=location.get("latitude"),
                longitude=location.get("longitude"),
                profile_picture=data.profile_picture,
                marketing_consent=bool(data.marketing_consent),
                referral_code=data.referral_code,
                created_at=now,
                updated_at=now,
            ))
        except DuplicateUserError as e:
            return Failure(
                ErrorKind.DUPLICATE_USER,
                "An account with this email or phone already exists",
                {"existing_fields": e.fields},
            )

        otp = self.otp_service.issue(user.phone_number, user.id)
        logger.info(f"Registered user {user.id}, verification {otp.verification_id} pending")
        return Registered(user=user, otp=otp)
