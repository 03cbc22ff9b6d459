"""
Authentication Routes
Parking user registration, login, email verification and password reset
"""

from fastapi import APIRouter, HTTPException, status
import structlog

from parking_auth.exceptions import AuthServiceError
from parking_auth.models.schemas import (
    Role, UserRegisterSchema, LoginSchema, EmailVerificationSchema,
    ForgotPasswordSchema, ResetPasswordSchema, ResendVerificationSchema
)
from parking_auth.utils.dependencies import AuthServiceDep
from parking_auth.utils.responses import success_response

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/register", response_model=dict)
async def register_user(user_data: UserRegisterSchema, auth_service: AuthServiceDep):
    """
    Register new parking user

    Creates a pending account and emails a verification code
    """
    try:
        user_id = await auth_service.register_user(user_data)

        return success_response(
            "Registration successful. Please verify your email.",
            {"userId": user_id}
        )

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Registration error", email=user_data.email, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error in registration"
        )


@router.post("/login", response_model=dict)
async def login_user(login_data: LoginSchema, auth_service: AuthServiceDep):
    """
    Parking user login

    Only verified, approved users receive a token
    """
    try:
        result = await auth_service.authenticate_user(login_data.email, login_data.password)
        return success_response("Login successful", result)

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Login error", email=login_data.email, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error in login"
        )


@router.post("/verify-email", response_model=dict)
async def verify_user_email(verification_data: EmailVerificationSchema, auth_service: AuthServiceDep):
    """Verify parking user email with a one-time code"""
    try:
        await auth_service.verify_email(Role.USER, verification_data.email, verification_data.code)
        return success_response("Email verified successfully")

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Email verification error", email=verification_data.email, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error in email verification"
        )


@router.post("/resend-verification", response_model=dict)
async def resend_verification(resend_data: ResendVerificationSchema, auth_service: AuthServiceDep):
    """
    Resend a verification code

    Answers the same way whether or not the account exists
    """
    try:
        await auth_service.resend_verification(resend_data.role, resend_data.email)
        return success_response(
            "If the account exists and is unverified, a verification code has been sent"
        )

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Resend verification error", email=resend_data.email, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error in resending verification code"
        )


@router.post("/forgot-password", response_model=dict)
async def forgot_password(reset_data: ForgotPasswordSchema, auth_service: AuthServiceDep):
    """Email a password reset code to a verified user or admin"""
    try:
        await auth_service.request_password_reset(reset_data.role, reset_data.email)
        return success_response("Password reset code sent to your email")

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Forgot password error", email=reset_data.email, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error in forgot password process"
        )


@router.post("/reset-password", response_model=dict)
async def reset_password(reset_data: ResetPasswordSchema, auth_service: AuthServiceDep):
    """Set a new password using a reset code"""
    try:
        await auth_service.reset_password(reset_data)
        return success_response("Password reset successful")

    except AuthServiceError:
        raise
    except Exception as e:
        logger.error("Reset password error", email=reset_data.email, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error in password reset"
        )
