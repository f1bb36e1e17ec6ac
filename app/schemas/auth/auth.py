# app/schemas/auth.py
from pydantic import BaseModel, Field, validator
from typing import Optional
import re

from ...utils import is_otp_code

USER_TYPES = ("producer", "buyer", "both")
SOCIAL_PROVIDERS = ("google", "facebook", "apple")
OTP_METHODS = ("sms", "whatsapp", "call")
BIOMETRIC_TYPES = ("fingerprint", "face", "iris")

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def _check_user_type(v):
    if v is not None and v not in USER_TYPES:
        raise ValueError('User type must be producer, buyer, or both')
    return v


class PhoneIn(BaseModel):
    country_code: str = Field(..., description="Country code with + prefix", examples=["+62"])
    number: str = Field(..., description="Phone number without country code", examples=["81234567890"])

    @validator('country_code')
    def validate_country_code(cls, v):
        if not re.match(r'^\+\d{1,4}$', v):
            raise ValueError('Country code must look like +62')
        return v

    @validator('number')
    def validate_number(cls, v):
        if not re.match(r'^\d{9,15}$', v):
            raise ValueError('Phone number must be between 9 and 15 digits')
        return v


class LocationIn(BaseModel):
    province: str = Field(..., min_length=1, max_length=100)
    province_id: Optional[int] = None
    city: str = Field(..., min_length=1, max_length=100)
    city_id: Optional[int] = None
    district: Optional[str] = Field(None, max_length=100)
    district_id: Optional[int] = None
    detailed_address: Optional[str] = Field(None, max_length=255)
    postal_code: Optional[str] = Field(None, max_length=10)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class DeviceInfo(BaseModel):
    device_name: Optional[str] = None
    os_version: Optional[str] = None
    fcm_token: Optional[str] = None


class RegisterRequest(BaseModel):
    user_type: str = Field(..., description="producer, buyer or both")
    full_name: str = Field(..., min_length=3, max_length=100, description="User's full name")
    email: str = Field(..., description="User's email address")
    phone: PhoneIn
    password: str = Field(..., description="Min 8 chars with upper, lower, digit and special character")
    confirm_password: str
    location: LocationIn
    profile_picture: Optional[str] = None
    terms_accepted: bool = Field(..., description="Must be true")
    marketing_consent: Optional[bool] = False
    referral_code: Optional[str] = Field(None, max_length=50)

    @validator('user_type')
    def validate_user_type(cls, v):
        return _check_user_type(v)

    @validator('full_name')
    def validate_full_name(cls, v):
        if not re.match(r'^[A-Za-z ]+$', v):
            raise ValueError('Full name must contain only letters and spaces')
        return v.strip()

    @validator('email')
    def validate_email(cls, v):
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError('Email must be valid')
        return v


class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1, description="Email or phone number")
    password: str = Field(..., min_length=1)
    remember_me: Optional[bool] = False
    device_info: Optional[DeviceInfo] = None


class VerifyOTPRequest(BaseModel):
    verification_id: str = Field(..., description="Verification ID from the registration response")
    otp_code: str = Field(..., description="6-digit OTP code")

    @validator('otp_code')
    def validate_otp_code(cls, v):
        if not is_otp_code(v):
            raise ValueError('OTP code must be exactly 6 digits')
        return v


class ResendOTPRequest(BaseModel):
    verification_id: str
    method: Optional[str] = Field("sms", description="sms, whatsapp or call")

    @validator('method')
    def validate_method(cls, v):
        if v is not None and v not in OTP_METHODS:
            raise ValueError('Method must be sms, whatsapp, or call')
        return v


class SocialLocation(BaseModel):
    province: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class AdditionalInfo(BaseModel):
    phone: Optional[str] = Field(None, description="Phone number with country code")
    location: Optional[SocialLocation] = None

    @validator('phone')
    def validate_phone(cls, v):
        if v is None:
            return v
        phone_clean = re.sub(r'[^\d+]', '', v)
        if not re.match(r'^\+\d{1,4}\d{6,14}$', phone_clean):
            raise ValueError('Invalid phone number format. Must include country code (e.g., +6281234567890)')
        return phone_clean


class SocialLoginRequest(BaseModel):
    provider: str
    access_token: str
    user_type: Optional[str] = None
    additional_info: Optional[AdditionalInfo] = None

    @validator('provider')
    def validate_provider(cls, v):
        if v not in SOCIAL_PROVIDERS:
            raise ValueError('Provider must be google, facebook, or apple')
        return v

    @validator('user_type')
    def validate_user_type(cls, v):
        return _check_user_type(v)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    logout_all_devices: Optional[bool] = False


class ForgotPasswordRequest(BaseModel):
    identifier: str = Field(..., min_length=1, description="Email or phone number")


class ResetPasswordRequest(BaseModel):
    reset_token: str
    otp_code: str
    new_password: str
    confirm_password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


class BiometricRegisterRequest(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=100)
    biometric_type: str
    public_key: str = Field(..., min_length=1, description="Base64-encoded public key")
    device_info: Optional[DeviceInfo] = None

    @validator('biometric_type')
    def validate_biometric_type(cls, v):
        if v not in BIOMETRIC_TYPES:
            raise ValueError('Biometric type must be fingerprint, face, or iris')
        return v


class BiometricLoginRequest(BaseModel):
    device_id: str
    biometric_token: str
    challenge: Optional[str] = None

