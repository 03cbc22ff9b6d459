"""
Profile Routes
Authenticated parking user profile and password management
"""

from fastapi import APIRouter, HTTPException, status
import structlog

from parking_auth.exceptions import AuthServiceError
from parking_auth.models.schemas import ProfileUpdateSchema, PasswordChangeSchema
from parking_auth.utils.dependencies import CurrentUser, ProfileServiceDep
from parking_auth.utils.responses import success_response

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/profile", response_model=dict)
async def get_profile(current_user: CurrentUser, profile_service: ProfileServiceDep):
    """Get the caller's own profile"""
    try:
        profile = await profile_service.get_profile(current_user.id)
        return success_response("Profile retrieved successfully", {"user": profile})

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Get profile error", user_id=current_user.id, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching profile"
        )


@router.put("/profile", response_model=dict)
async def update_profile(
    profile_data: ProfileUpdateSchema,
    current_user: CurrentUser,
    profile_service: ProfileServiceDep
):
    """Update name and email"""
    try:
        profile = await profile_service.update_profile(current_user.id, profile_data)
        return success_response("Profile updated successfully", {"user": profile})

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Update profile error", user_id=current_user.id, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating profile"
        )


@router.put("/change-password", response_model=dict)
async def change_password(
    password_data: PasswordChangeSchema,
    current_user: CurrentUser,
    profile_service: ProfileServiceDep
):
    """
    Change password

    Requires current password verification
    """
    try:
        await profile_service.change_password(current_user.id, password_data)
        return success_response("Password changed successfully")

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Change password error", user_id=current_user.id, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error changing password"
        )
