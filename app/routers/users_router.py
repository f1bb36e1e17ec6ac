from fastapi import APIRouter, Depends

from ..exceptions import unwrap, create_success_response
from ..schemas.common.common import ErrorResponse
from ..application.ports.user_repo import UserDto
from ..application.services.profile_service import ProfileService
from .deps import get_current_user, get_profile_service

router = APIRouter(prefix="/api/users", tags=["Users"], responses={401: {"model": ErrorResponse}})


@router.get("/me")
def read_me(
    current_user: UserDto = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    profile = unwrap(service.get_profile(current_user.id))
    return create_success_response("Profile retrieved successfully", profile.data)
