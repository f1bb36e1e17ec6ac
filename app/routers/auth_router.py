from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from typing import Optional, Dict, Any
import logging

from ..exceptions import unwrap, create_success_response
from ..schemas.auth.auth import (
    RegisterRequest, LoginRequest, VerifyOTPRequest, ResendOTPRequest, SocialLoginRequest,
    RefreshTokenRequest, LogoutRequest, ForgotPasswordRequest, ResetPasswordRequest,
    ChangePasswordRequest, BiometricRegisterRequest, BiometricLoginRequest,
)
from ..schemas.users.user import UserSummary
from ..schemas.common.common import ErrorResponse
from ..application.results import TokenPair
from ..application.ports.user_repo import UserDto
from ..application.services.login_service import LoginService, permissions_for
from ..application.services.otp_service import OtpService
from ..application.services.password_service import PasswordService
from ..application.services.registration_service import RegistrationService, RegistrationData
from ..application.services.social_login_service import SocialLoginService
from ..application.services.token_service import TokenService
from ..application.services.biometric_service import BiometricService
from ..utils import external_user_id
from .deps import (
    get_current_user, get_login_service, get_otp_service, get_password_service,
    get_registration_service, get_social_login_service, get_token_service, get_biometric_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/auth",
    tags=["Authentication"],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


def _token_data(tokens: TokenPair) -> Dict[str, Any]:
    return {
        "access_token": tokens.access_token,
        "refresh_token": tokens.refresh_token,
        "token_type": tokens.token_type,
        "expires_in": tokens.expires_in,
    }


def _with_user(tokens: TokenPair, user: UserDto, **extra) -> Dict[str, Any]:
    data = _token_data(tokens)
    summary = UserSummary.from_dto(user).model_dump(exclude_none=True)
    summary["is_profile_complete"] = user.is_profile_complete()
    data["user"] = summary
    data.update(extra)
    return data


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, service: RegistrationService = Depends(get_registration_service)):
    result = unwrap(service.register(RegistrationData(
        user_type=payload.user_type,
        full_name=payload.full_name,
        email=payload.email,
        country_code=payload.phone.country_code,
        phone=payload.phone.number,
        password=payload.password,
        confirm_password=payload.confirm_password,
        terms_accepted=payload.terms_accepted,
        location=payload.location.model_dump(),
        profile_picture=payload.profile_picture,
        marketing_consent=bool(payload.marketing_consent),
        referral_code=payload.referral_code,
    )))
    user, otp = result.user, result.otp
    return create_success_response("Registration successful. Please verify your phone number.", {
        "user_id": external_user_id(user.id),
        "email": user.email,
        "phone": user.phone_number,
        "full_name": user.full_name,
        "user_type": user.user_type,
        "verification_required": True,
        "verification_method": "sms",
        "verification_id": otp.verification_id,
        "otp_sent_to": otp.phone_number,
        "otp_expires_at": otp.expires_at,
        "session_token": f"temp_{otp.verification_id}",
        "created_at": user.created_at,
    })


@router.post("/verify-otp")
def verify_otp(payload: VerifyOTPRequest, service: OtpService = Depends(get_otp_service)):
    result = unwrap(service.verify(payload.verification_id, payload.otp_code))
    data = _with_user(result.tokens, result.user, user_id=external_user_id(result.user.id), verified=True)
    return create_success_response("Phone number verified successfully", data)


@router.post("/resend-otp")
def resend_otp(payload: ResendOTPRequest, service: OtpService = Depends(get_otp_service)):
    result = unwrap(service.resend(payload.verification_id, payload.method))
    return create_success_response("OTP resent successfully", {
        "verification_id": result.verification_id,
        "sent_to": result.sent_to,
        "method": result.method,
        "expires_at": result.expires_at,
        "can_resend_at": result.can_resend_at,
    })


@router.post("/login")
def login(payload: LoginRequest, service: LoginService = Depends(get_login_service)):
    result = unwrap(service.login(payload.identifier, payload.password, bool(payload.remember_me)))
    if payload.device_info and payload.device_info.device_name:
        logger.info(f"Login from device {payload.device_info.device_name}")
    data = _with_user(result.tokens, result.user, permissions=result.permissions)
    return create_success_response("Login successful", data)


@router.post("/social-login")
def social_login(payload: SocialLoginRequest, service: SocialLoginService = Depends(get_social_login_service)):
    additional_info = payload.additional_info.model_dump(exclude_none=True) if payload.additional_info else None
    result = unwrap(service.social_login(payload.provider, payload.access_token, payload.user_type, additional_info))
    body = create_success_response(
        "Account created successfully" if result.is_new_user else "Login successful",
        _with_user(result.tokens, result.user, next_step=result.next_step),
    )
    body["is_new_user"] = result.is_new_user
    body["requires_profile_completion"] = result.requires_profile_completion
    return JSONResponse(status_code=201 if result.is_new_user else 200, content=body)


@router.post("/refresh-token")
def refresh_token(payload: RefreshTokenRequest, service: TokenService = Depends(get_token_service)):
    result = unwrap(service.refresh(payload.refresh_token))
    return create_success_response("Token refreshed successfully", _token_data(result.tokens))


@router.post("/logout")
def logout(
    payload: Optional[LogoutRequest] = None,
    authorization: Optional[str] = Header(None),
    service: TokenService = Depends(get_token_service),
):
    all_devices = bool(payload and payload.logout_all_devices)
    result = unwrap(service.logout(authorization, all_devices))
    message = "Logged out from all devices" if result.all_devices else "Logout successful"
    return create_success_response(message)


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordRequest, service: PasswordService = Depends(get_password_service)):
    result = unwrap(service.forgot_password(payload.identifier))
    return create_success_response(f"Password reset code sent to your {result.method}", {
        "reset_token": result.reset_token,
        "sent_to": result.sent_to,
        "method": result.method,
        "expires_at": result.expires_at,
    })


@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest, service: PasswordService = Depends(get_password_service)):
    result = unwrap(service.reset_password(
        payload.reset_token, payload.otp_code, payload.new_password, payload.confirm_password
    ))
    return create_success_response("Password reset successfully", {"user_id": external_user_id(result.user_id)})


@router.post("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    current_user: UserDto = Depends(get_current_user),
    service: PasswordService = Depends(get_password_service),
):
    unwrap(service.change_password(
        payload.current_password, payload.new_password, payload.confirm_password, current_user.id
    ))
    return create_success_response("Password changed successfully")


@router.post("/biometric/register", status_code=201)
def biometric_register(
    payload: BiometricRegisterRequest,
    current_user: UserDto = Depends(get_current_user),
    service: BiometricService = Depends(get_biometric_service),
):
    device_name = payload.device_info.device_name if payload.device_info else None
    result = unwrap(service.register_device(
        current_user.id, payload.device_id, payload.biometric_type, payload.public_key, device_name
    ))
    return create_success_response("Biometric authentication registered successfully", {
        "biometric_id": str(result.biometric_id),
        "device_id": result.device_id,
        "enabled_at": result.enabled_at,
    })


@router.post("/biometric/login")
def biometric_login(payload: BiometricLoginRequest, service: BiometricService = Depends(get_biometric_service)):
    result = unwrap(service.login(payload.device_id, payload.biometric_token, payload.challenge))
    data = _with_user(result.tokens, result.user, permissions=permissions_for(result.user.user_type))
    return create_success_response("Biometric login successful", data)
