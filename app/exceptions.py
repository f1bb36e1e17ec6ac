from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional, TypeVar, Union
import logging

from .application.results import ErrorKind, Failure

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.DUPLICATE_USER: 409,
    ErrorKind.USER_NOT_FOUND: 404,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.ACCOUNT_LOCKED: 403,
    ErrorKind.ACCOUNT_SUSPENDED: 403,
    ErrorKind.INVALID_OTP: 400,
    ErrorKind.OTP_EXPIRED: 410,
    ErrorKind.MAX_ATTEMPTS_EXCEEDED: 403,
    ErrorKind.ALREADY_VERIFIED: 400,
    ErrorKind.INVALID_VERIFICATION_ID: 400,
    ErrorKind.RESEND_COOLDOWN: 429,
    ErrorKind.INVALID_RESET_TOKEN: 400,
    ErrorKind.RESET_TOKEN_EXPIRED: 410,
    ErrorKind.RESET_TOKEN_USED: 400,
    ErrorKind.PASSWORD_MISMATCH: 400,
    ErrorKind.WEAK_PASSWORD: 400,
    ErrorKind.INVALID_CURRENT_PASSWORD: 400,
    ErrorKind.SAME_PASSWORD: 400,
    ErrorKind.SOCIAL_AUTH_FAILED: 400,
    ErrorKind.MISSING_USER_TYPE: 400,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.MISSING_TOKEN: 401,
    ErrorKind.INVALID_REFRESH_TOKEN: 401,
    ErrorKind.ACCOUNT_INACTIVE: 403,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.DEVICE_ALREADY_REGISTERED: 409,
    ErrorKind.DEVICE_NOT_REGISTERED: 404,
    ErrorKind.BIOMETRIC_AUTH_FAILED: 401,
}


class ServiceError(Exception):
    """Carries a service ``Failure`` out of a route so the handler can render it."""

    def __init__(self, failure: Failure):
        super().__init__(failure.message)
        self.failure = failure


def unwrap(result: Union[T, Failure]) -> T:
    if isinstance(result, Failure):
        raise ServiceError(result)
    return result


def status_for(kind: ErrorKind) -> int:
    return ERROR_STATUS[kind]


def create_error_response(message: str, error_code: str, details: Optional[Dict[str, Any]] = None) -> dict:
    """Create a standardized error response"""
    body = {"status": "error", "message": message, "error_code": error_code}
    for key, value in (details or {}).items():
        body.setdefault(key, value)
    return jsonable_encoder(body)


def create_success_response(message: str, data: Optional[Any] = None) -> dict:
    """Create a standardized success response"""
    return jsonable_encoder({"status": "success", "message": message, "data": data})


def failure_response(failure: Failure) -> JSONResponse:
    status_code = status_for(failure.kind)
    headers = None
    if failure.kind == ErrorKind.RESEND_COOLDOWN and "retry_after" in failure.details:
        headers = {"Retry-After": str(failure.details["retry_after"])}
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(failure.message, failure.kind.value, failure.details),
        headers=headers,
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> {exc.failure.kind.value}")
    return failure_response(exc.failure)


def _field_errors(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    fields: Dict[str, List[str]] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        name = ".".join(loc) or "body"
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        fields.setdefault(name, []).append(message)
    return fields


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=create_error_response(
            "Validation failed",
            ErrorKind.VALIDATION_ERROR.value,
            {"errors": _field_errors(exc.errors())},
        ),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", ErrorKind.UNAUTHORIZED.value),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail), f"HTTP_{exc.status_code}"),
        headers=getattr(exc, "headers", None),
    )
