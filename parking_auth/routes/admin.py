"""
Admin Authentication Routes
"""

from fastapi import APIRouter, HTTPException, status
import structlog

from parking_auth.exceptions import AuthServiceError
from parking_auth.models.schemas import (
    Role, AdminRegisterSchema, LoginSchema, EmailVerificationSchema
)
from parking_auth.utils.dependencies import AuthServiceDep
from parking_auth.utils.responses import success_response

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin")


@router.post("/register", response_model=dict)
async def register_admin(admin_data: AdminRegisterSchema, auth_service: AuthServiceDep):
    """Register new admin and email a verification code"""
    try:
        admin_id = await auth_service.register_admin(admin_data)

        return success_response(
            "Admin registration successful. Please verify your email.",
            {"adminId": admin_id}
        )

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Admin registration error", email=admin_data.email, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error in admin registration"
        )


@router.post("/login", response_model=dict)
async def login_admin(login_data: LoginSchema, auth_service: AuthServiceDep):
    """Admin login endpoint"""
    try:
        result = await auth_service.authenticate_admin(login_data.email, login_data.password)
        return success_response("Login successful", result)

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Admin login error", email=login_data.email, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error in admin login"
        )


@router.post("/verify-email", response_model=dict)
async def verify_admin_email(verification_data: EmailVerificationSchema, auth_service: AuthServiceDep):
    try:
        await auth_service.verify_email(Role.ADMIN, verification_data.email, verification_data.code)
        return success_response("Email verified successfully")

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Admin email verification error", email=verification_data.email, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error in admin email verification"
        )
