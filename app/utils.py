import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional

OTP_LENGTH = 6
EXTERNAL_USER_ID_PREFIX = "usr_"

# =========================
# Time
# =========================
def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the database columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =========================
# OTP / identifier generation
# =========================
def generate_otp() -> str:
    """Generate a secure 6-digit OTP."""
    return str(100000 + secrets.randbelow(900000))

def generate_verification_id() -> str:
    return "ver_" + uuid.uuid4().hex[:16]

def generate_reset_token() -> str:
    return "reset_" + uuid.uuid4().hex

def is_otp_code(value: Optional[str]) -> bool:
    return value is not None and len(value) == OTP_LENGTH and value.isascii() and value.isdigit()


# =========================
# User identifiers
# =========================
def external_user_id(user_id: int) -> str:
    return f"{EXTERNAL_USER_ID_PREFIX}{user_id}"

def is_email_identifier(identifier: str) -> bool:
    """Login identifiers containing '@' are emails, everything else is a phone number."""
    return "@" in identifier


# =========================
# Password policy
# =========================
PASSWORD_MIN_LENGTH = 8
PASSWORD_POLICY_MESSAGE = (
    "Password must contain at least one uppercase letter, one lowercase letter, "
    "one number, and one special character"
)

def is_strong_password(password: Optional[str]) -> bool:
    if password is None or len(password) < PASSWORD_MIN_LENGTH:
        return False
    has_upper = any(ch.isupper() for ch in password)
    has_lower = any(ch.islower() for ch in password)
    has_digit = any(ch.isdigit() for ch in password)
    has_special = any(not ch.isalnum() for ch in password)
    return has_upper and has_lower and has_digit and has_special
