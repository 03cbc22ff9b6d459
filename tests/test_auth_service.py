"""
Authentication Service Tests
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import asyncpg
import pytest

from parking_auth.exceptions import (
    AuthError, ConflictError, InvalidCodeError, NotFoundError, EmailDeliveryError
)
from parking_auth.models.schemas import (
    Role, OtpType, AccountStatus, UserRegisterSchema, AdminRegisterSchema, ResetPasswordSchema
)
from parking_auth.services.auth_service import AuthService
from parking_auth.utils.security import decode_access_token


@pytest.fixture
def auth_service(fake_db, mock_mailer) -> AuthService:
    return AuthService(fake_db, mock_mailer)


@pytest.fixture
def registration(user_payload) -> UserRegisterSchema:
    return UserRegisterSchema.model_validate(user_payload)


async def _register_and_verify(auth_service, fake_db, registration) -> int:
    user_id = await auth_service.register_user(registration)
    code = fake_db.latest_code(registration.email, OtpType.VERIFICATION, Role.USER)
    await auth_service.verify_email(Role.USER, registration.email, code)
    return user_id


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_user_creates_pending_account_and_sends_code(
        self, auth_service, fake_db, mock_mailer, registration
    ):
        user_id = await auth_service.register_user(registration)

        user = await fake_db.get_user_by_id(user_id)
        assert user['status'] == AccountStatus.PENDING.value
        assert user['is_email_verified'] is False
        assert user['password'] != registration.password

        code = fake_db.latest_code(registration.email, OtpType.VERIFICATION, Role.USER)
        mock_mailer.send_verification_code.assert_awaited_once_with(registration.email, code, Role.USER)

    @pytest.mark.asyncio
    async def test_verification_code_expires_in_ten_minutes(self, auth_service, fake_db, registration):
        before = datetime.now(timezone.utc)
        await auth_service.register_user(registration)

        otp = fake_db.otps[0]
        assert otp['type'] == OtpType.VERIFICATION.value
        assert timedelta(minutes=9) < otp['expires_at'] - before <= timedelta(minutes=10, seconds=5)

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, auth_service, fake_db, registration):
        await auth_service.register_user(registration)

        with pytest.raises(ConflictError) as excinfo:
            await auth_service.register_user(registration)

        assert excinfo.value.message == "Email already registered"
        assert excinfo.value.status_code == 400
        assert len(fake_db.users) == 1

    @pytest.mark.asyncio
    async def test_same_email_allowed_across_roles(self, auth_service, fake_db, registration):
        await auth_service.register_user(registration)
        await auth_service.register_admin(AdminRegisterSchema(
            name="Alice", email=registration.email, password="admin-pass"
        ))

        assert len(fake_db.users) == 1
        assert len(fake_db.admins) == 1

    @pytest.mark.asyncio
    async def test_duplicate_admin_rejected(self, auth_service, fake_db):
        data = AdminRegisterSchema(name="Root", email="root@x.com", password="admin-pass")
        await auth_service.register_admin(data)

        with pytest.raises(ConflictError) as excinfo:
            await auth_service.register_admin(data)

        assert excinfo.value.message == "Admin with this email already exists"
        assert len(fake_db.admins) == 1

    @pytest.mark.asyncio
    async def test_concurrent_insert_conflict_rejected(
        self, auth_service, fake_db, mock_mailer, registration
    ):
        fake_db.create_user = AsyncMock(
            side_effect=asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
        )

        with pytest.raises(ConflictError) as excinfo:
            await auth_service.register_user(registration)

        assert excinfo.value.message == "Email already registered"
        assert fake_db.otps == []
        mock_mailer.send_verification_code.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_admin_insert_conflict_rejected(self, auth_service, fake_db):
        fake_db.create_admin = AsyncMock(
            side_effect=asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
        )

        with pytest.raises(ConflictError) as excinfo:
            await auth_service.register_admin(
                AdminRegisterSchema(name="Root", email="root@x.com", password="admin-pass")
            )

        assert excinfo.value.message == "Admin with this email already exists"

    @pytest.mark.asyncio
    async def test_email_failure_leaves_unverified_account(
        self, auth_service, fake_db, mock_mailer, registration
    ):
        mock_mailer.send_verification_code.side_effect = EmailDeliveryError("smtp down")

        with pytest.raises(EmailDeliveryError):
            await auth_service.register_user(registration)

        assert len(fake_db.users) == 1
        assert fake_db.users[0]['is_email_verified'] is False


class TestEmailVerification:
    @pytest.mark.asyncio
    async def test_wrong_code_rejected(self, auth_service, fake_db, registration):
        await auth_service.register_user(registration)

        with pytest.raises(InvalidCodeError) as excinfo:
            await auth_service.verify_email(Role.USER, registration.email, "not-the-code")

        assert excinfo.value.message == "Invalid or expired verification code"
        assert fake_db.users[0]['is_email_verified'] is False

    @pytest.mark.asyncio
    async def test_correct_code_verifies_and_is_consumed(self, auth_service, fake_db, registration):
        await auth_service.register_user(registration)
        code = fake_db.latest_code(registration.email, OtpType.VERIFICATION, Role.USER)

        await auth_service.verify_email(Role.USER, registration.email, code)

        assert fake_db.users[0]['is_email_verified'] is True
        assert fake_db.otps[0]['is_used'] is True

        with pytest.raises(InvalidCodeError):
            await auth_service.verify_email(Role.USER, registration.email, code)

    @pytest.mark.asyncio
    async def test_expired_code_rejected(self, auth_service, fake_db, registration):
        await auth_service.register_user(registration)
        fake_db.otps[0]['expires_at'] = datetime.now(timezone.utc) - timedelta(seconds=1)
        code = fake_db.otps[0]['code']

        with pytest.raises(InvalidCodeError):
            await auth_service.verify_email(Role.USER, registration.email, code)

        assert fake_db.otps[0]['is_used'] is False

    @pytest.mark.asyncio
    async def test_code_is_scoped_to_role(self, auth_service, fake_db, registration):
        await auth_service.register_user(registration)
        code = fake_db.latest_code(registration.email, OtpType.VERIFICATION, Role.USER)

        with pytest.raises(InvalidCodeError):
            await auth_service.verify_email(Role.ADMIN, registration.email, code)

    @pytest.mark.asyncio
    async def test_code_without_account_is_not_found(self, auth_service, fake_db):
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=10)
        await fake_db.create_otp("ghost@x.com", "123456", OtpType.VERIFICATION, Role.ADMIN, expires_at)

        with pytest.raises(NotFoundError) as excinfo:
            await auth_service.verify_email(Role.ADMIN, "ghost@x.com", "123456")

        assert excinfo.value.message == "Admin not found"
        assert fake_db.otps[0]['is_used'] is False

    @pytest.mark.asyncio
    async def test_resend_issues_fresh_code(self, auth_service, fake_db, mock_mailer, registration):
        await auth_service.register_user(registration)

        await auth_service.resend_verification(Role.USER, registration.email)

        assert len(fake_db.otps) == 2
        assert mock_mailer.send_verification_code.await_count == 2

    @pytest.mark.asyncio
    async def test_resend_for_verified_account_sends_nothing(
        self, auth_service, fake_db, mock_mailer, registration
    ):
        await _register_and_verify(auth_service, fake_db, registration)

        await auth_service.resend_verification(Role.USER, registration.email)

        assert len(fake_db.otps) == 1
        assert mock_mailer.send_verification_code.await_count == 1

    @pytest.mark.asyncio
    async def test_resend_for_unknown_email_is_silent(self, auth_service, fake_db, mock_mailer):
        await auth_service.resend_verification(Role.USER, "nobody@x.com")

        assert fake_db.otps == []
        mock_mailer.send_verification_code.assert_not_awaited()


class TestLogin:
    @pytest.mark.asyncio
    async def test_unknown_email_rejected(self, auth_service):
        with pytest.raises(AuthError) as excinfo:
            await auth_service.authenticate_user("nobody@x.com", "whatever1")
        assert excinfo.value.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_wrong_password_rejected(self, auth_service, fake_db, registration):
        await _register_and_verify(auth_service, fake_db, registration)
        fake_db.set_user_status(registration.email, AccountStatus.APPROVED)

        with pytest.raises(AuthError) as excinfo:
            await auth_service.authenticate_user(registration.email, "wrong-password")
        assert excinfo.value.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_unverified_account_gets_distinct_message(self, auth_service, registration):
        await auth_service.register_user(registration)

        with pytest.raises(AuthError) as excinfo:
            await auth_service.authenticate_user(registration.email, registration.password)

        assert excinfo.value.status_code == 401
        assert excinfo.value.message != "Invalid credentials"
        assert excinfo.value.message == "Please verify your email first"

    @pytest.mark.asyncio
    async def test_pending_account_rejected(self, auth_service, fake_db, registration):
        await _register_and_verify(auth_service, fake_db, registration)

        with pytest.raises(AuthError) as excinfo:
            await auth_service.authenticate_user(registration.email, registration.password)
        assert "pending approval" in excinfo.value.message

    @pytest.mark.asyncio
    async def test_approved_user_gets_token_and_projection(self, auth_service, fake_db, registration):
        user_id = await _register_and_verify(auth_service, fake_db, registration)
        fake_db.set_user_status(registration.email, AccountStatus.APPROVED)

        result = await auth_service.authenticate_user(registration.email, registration.password)

        assert result['user'] == {
            'id': user_id,
            'name': registration.name,
            'email': registration.email,
            'plateNumber': registration.plate_number,
        }
        claims = decode_access_token(result['token'])
        assert claims['id'] == user_id
        assert claims['email'] == registration.email
        assert claims['role'] == 'user'

    @pytest.mark.asyncio
    async def test_admin_login_skips_approval(self, auth_service, fake_db):
        data = AdminRegisterSchema(name="Root", email="root@x.com", password="admin-pass")
        admin_id = await auth_service.register_admin(data)
        code = fake_db.latest_code(data.email, OtpType.VERIFICATION, Role.ADMIN)
        await auth_service.verify_email(Role.ADMIN, data.email, code)

        result = await auth_service.authenticate_admin(data.email, data.password)

        assert result['admin'] == {'id': admin_id, 'name': 'Root', 'email': 'root@x.com', 'role': 'admin'}
        assert decode_access_token(result['token'])['role'] == 'admin'

    @pytest.mark.asyncio
    async def test_unverified_admin_rejected(self, auth_service):
        data = AdminRegisterSchema(name="Root", email="root@x.com", password="admin-pass")
        await auth_service.register_admin(data)

        with pytest.raises(AuthError) as excinfo:
            await auth_service.authenticate_admin(data.email, data.password)
        assert excinfo.value.message == "Please verify your email first"


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_forgot_password_unknown_account(self, auth_service):
        with pytest.raises(NotFoundError) as excinfo:
            await auth_service.request_password_reset(Role.USER, "nobody@x.com")
        assert excinfo.value.message == "Account not found"

    @pytest.mark.asyncio
    async def test_forgot_password_requires_verified_email(self, auth_service, fake_db, registration):
        await auth_service.register_user(registration)

        with pytest.raises(AuthError):
            await auth_service.request_password_reset(Role.USER, registration.email)

        assert all(otp['type'] != OtpType.RESET.value for otp in fake_db.otps)

    @pytest.mark.asyncio
    async def test_reset_changes_password(self, auth_service, fake_db, mock_mailer, registration):
        await _register_and_verify(auth_service, fake_db, registration)
        fake_db.set_user_status(registration.email, AccountStatus.APPROVED)

        await auth_service.request_password_reset(Role.USER, registration.email)
        code = fake_db.latest_code(registration.email, OtpType.RESET, Role.USER)
        mock_mailer.send_password_reset_code.assert_awaited_once_with(registration.email, code)

        await auth_service.reset_password(ResetPasswordSchema(
            email=registration.email, code=code, new_password="brand-new-pass", role=Role.USER
        ))

        with pytest.raises(AuthError):
            await auth_service.authenticate_user(registration.email, registration.password)
        result = await auth_service.authenticate_user(registration.email, "brand-new-pass")
        assert result['token']
        mock_mailer.send_password_reset_confirmation.assert_awaited_once_with(registration.email)

    @pytest.mark.asyncio
    async def test_reset_code_is_single_use(self, auth_service, fake_db, registration):
        await _register_and_verify(auth_service, fake_db, registration)
        await auth_service.request_password_reset(Role.USER, registration.email)
        code = fake_db.latest_code(registration.email, OtpType.RESET, Role.USER)
        data = ResetPasswordSchema(
            email=registration.email, code=code, new_password="brand-new-pass", role=Role.USER
        )

        await auth_service.reset_password(data)

        with pytest.raises(InvalidCodeError) as excinfo:
            await auth_service.reset_password(data)
        assert excinfo.value.message == "Invalid or expired reset code"

    @pytest.mark.asyncio
    async def test_verification_code_cannot_reset_password(self, auth_service, fake_db, registration):
        await auth_service.register_user(registration)
        code = fake_db.latest_code(registration.email, OtpType.VERIFICATION, Role.USER)

        with pytest.raises(InvalidCodeError):
            await auth_service.reset_password(ResetPasswordSchema(
                email=registration.email, code=code, new_password="brand-new-pass", role=Role.USER
            ))

    @pytest.mark.asyncio
    async def test_confirmation_failure_keeps_new_password(
        self, auth_service, fake_db, mock_mailer, registration
    ):
        await _register_and_verify(auth_service, fake_db, registration)
        await auth_service.request_password_reset(Role.USER, registration.email)
        code = fake_db.latest_code(registration.email, OtpType.RESET, Role.USER)
        old_hash = fake_db.users[0]['password']
        mock_mailer.send_password_reset_confirmation.side_effect = EmailDeliveryError("smtp down")

        with pytest.raises(EmailDeliveryError):
            await auth_service.reset_password(ResetPasswordSchema(
                email=registration.email, code=code, new_password="brand-new-pass", role=Role.USER
            ))

        assert fake_db.users[0]['password'] != old_hash
        assert all(otp['is_used'] for otp in fake_db.otps)
