"""
Authentication Service
Registration, login, email verification and password reset for users and admins
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any

import asyncpg
import structlog

from parking_auth.config import settings
from parking_auth.exceptions import AuthError, ConflictError, InvalidCodeError, NotFoundError
from parking_auth.models.schemas import (
    Role, AccountStatus, OtpType, TokenClaims,
    UserRegisterSchema, AdminRegisterSchema, ResetPasswordSchema,
    UserPublicSchema, AdminPublicSchema, project
)
from parking_auth.utils.database import AuthDatabase
from parking_auth.utils.email_client import EmailClient
from parking_auth.utils.security import (
    hash_password, verify_password, create_access_token, generate_otp
)

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
EMAIL_NOT_VERIFIED = "Please verify your email first"
PENDING_APPROVAL = "Your account is pending approval"

NOT_FOUND_MESSAGES = {
    Role.USER: "User not found",
    Role.ADMIN: "Admin not found",
}


class AuthService:
    """Authentication workflows over the auth database and the email client"""

    def __init__(self, db: AuthDatabase, mailer: EmailClient):
        self.db = db
        self.mailer = mailer

    async def _issue_code(self, email: str, otp_type: OtpType, role: Role) -> str:
        """Generate, persist and return a new one-time code"""
        code = generate_otp()
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.otp_expire_minutes)
        await self.db.create_otp(email, code, otp_type, role, expires_at)
        logger.info("One-time code issued", email=email, type=otp_type.value, role=role.value)
        return code

    async def _consume_code(self, email: str, code: str, otp_type: OtpType, role: Role,
                            invalid_message: str) -> Dict[str, Any]:
        otp = await self.db.find_valid_otp(email, code, otp_type, role)
        if not otp:
            logger.warning("Invalid one-time code", email=email, type=otp_type.value, role=role.value)
            raise InvalidCodeError(invalid_message)
        return otp

    # ===== REGISTRATION =====

    async def register_user(self, data: UserRegisterSchema) -> int:
        """
        Register a parking user

        The account starts unverified and pending approval; a verification
        code is emailed. The two inserts and the email are not transactional.

        Returns:
            int: New user ID
        """
        if await self.db.get_account_by_email(Role.USER, data.email):
            raise ConflictError("Email already registered")

        password_hash = await hash_password(data.password)
        try:
            user_id = await self.db.create_user(
                name=data.name,
                email=data.email,
                password_hash=password_hash,
                plate_number=data.plate_number,
                preferred_entry_time=data.preferred_entry_time,
                preferred_exit_time=data.preferred_exit_time
            )
        except asyncpg.UniqueViolationError:
            # A concurrent registration won the insert
            raise ConflictError("Email already registered")

        code = await self._issue_code(data.email, OtpType.VERIFICATION, Role.USER)
        await self.mailer.send_verification_code(data.email, code, Role.USER)

        logger.info("User registered", user_id=user_id, email=data.email)
        return user_id

    async def register_admin(self, data: AdminRegisterSchema) -> int:
        if await self.db.get_account_by_email(Role.ADMIN, data.email):
            raise ConflictError("Admin with this email already exists")

        password_hash = await hash_password(data.password)
        try:
            admin_id = await self.db.create_admin(data.name, data.email, password_hash)
        except asyncpg.UniqueViolationError:
            raise ConflictError("Admin with this email already exists")

        code = await self._issue_code(data.email, OtpType.VERIFICATION, Role.ADMIN)
        await self.mailer.send_verification_code(data.email, code, Role.ADMIN)

        logger.info("Admin registered", admin_id=admin_id, email=data.email)
        return admin_id

    # ===== LOGIN =====

    async def _authenticate(self, role: Role, email: str, password: str) -> Dict[str, Any]:
        account = await self.db.get_account_by_email(role, email)
        if not account or not await verify_password(password, account['password']):
            logger.warning("Login rejected", email=email, role=role.value, reason="credentials")
            raise AuthError(INVALID_CREDENTIALS)

        if not account['is_email_verified']:
            logger.warning("Login rejected", email=email, role=role.value, reason="unverified")
            raise AuthError(EMAIL_NOT_VERIFIED)

        return account

    @staticmethod
    def _issue_token(account: Dict[str, Any], role: Role) -> str:
        claims = TokenClaims(id=account['id'], email=account['email'], role=role)
        return create_access_token(claims.model_dump(mode='json'))

    async def authenticate_user(self, email: str, password: str) -> Dict[str, Any]:
        """
        Authenticate a parking user

        Returns:
            dict: {'token', 'user'} with the public user projection
        """
        user = await self._authenticate(Role.USER, email, password)

        if user['status'] != AccountStatus.APPROVED.value:
            logger.warning("Login rejected", email=email, role=Role.USER.value, reason="not approved")
            raise AuthError(PENDING_APPROVAL)

        logger.info("User authenticated", user_id=user['id'])
        return {
            'token': self._issue_token(user, Role.USER),
            'user': project(UserPublicSchema, user)
        }

    async def authenticate_admin(self, email: str, password: str) -> Dict[str, Any]:
        admin = await self._authenticate(Role.ADMIN, email, password)

        logger.info("Admin authenticated", admin_id=admin['id'])
        return {
            'token': self._issue_token(admin, Role.ADMIN),
            'admin': project(AdminPublicSchema, admin)
        }

    # ===== EMAIL VERIFICATION =====

    async def verify_email(self, role: Role, email: str, code: str) -> None:
        """
        Verify an account email with a one-time code

        Raises:
            InvalidCodeError: no unused, unexpired code matches
            NotFoundError: the code matched but the account is gone
        """
        otp = await self._consume_code(
            email, code, OtpType.VERIFICATION, role,
            "Invalid or expired verification code"
        )

        if not await self.db.get_account_by_email(role, email):
            raise NotFoundError(NOT_FOUND_MESSAGES[role])

        await self.db.mark_email_verified(role, email)
        await self.db.mark_otp_used(otp['id'])

        logger.info("Email verified", email=email, role=role.value)

    async def resend_verification(self, role: Role, email: str) -> None:
        """
        Issue a fresh verification code for an unverified account

        Unknown and already verified accounts are skipped silently so the
        caller cannot tell them apart from a successful resend.
        """
        account = await self.db.get_account_by_email(role, email)
        if not account or account['is_email_verified']:
            logger.info("Verification resend skipped", email=email, role=role.value)
            return

        code = await self._issue_code(email, OtpType.VERIFICATION, role)
        await self.mailer.send_verification_code(email, code, role)

    # ===== PASSWORD RESET =====

    async def request_password_reset(self, role: Role, email: str) -> None:
        account = await self.db.get_account_by_email(role, email)
        if not account:
            raise NotFoundError("Account not found")

        if not account['is_email_verified']:
            raise AuthError(EMAIL_NOT_VERIFIED)

        code = await self._issue_code(email, OtpType.RESET, role)
        await self.mailer.send_password_reset_code(email, code)

        logger.info("Password reset requested", email=email, role=role.value)

    async def reset_password(self, data: ResetPasswordSchema) -> None:
        """
        Reset a password with a one-time reset code

        The confirmation email is sent after the password is stored; a
        delivery failure surfaces as an error but the new password stays.
        """
        otp = await self._consume_code(
            data.email, data.code, OtpType.RESET, data.role,
            "Invalid or expired reset code"
        )

        if not await self.db.get_account_by_email(data.role, data.email):
            raise NotFoundError("Account not found")

        password_hash = await hash_password(data.new_password)
        await self.db.update_password_by_email(data.role, data.email, password_hash)
        await self.db.mark_otp_used(otp['id'])

        logger.info("Password reset", email=data.email, role=data.role.value)

        await self.mailer.send_password_reset_confirmation(data.email)
