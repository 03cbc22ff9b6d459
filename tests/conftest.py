"""
Pytest fixtures for auth service tests
"""

import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import bcrypt
import pytest

from parking_auth.models.schemas import Role, OtpType, AccountStatus
from parking_auth.utils.email_client import EmailClient

# Configure pytest-asyncio mode for version 1.x
pytest_plugins = ('pytest_asyncio',)

_original_gensalt = bcrypt.gensalt


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test."
    )


class InMemoryAuthDatabase:
    """Stand-in for AuthDatabase keeping rows in lists"""

    def __init__(self):
        self.users: List[Dict[str, Any]] = []
        self.admins: List[Dict[str, Any]] = []
        self.otps: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)
        self._sequence = itertools.count(1)

    def _table(self, role: Role) -> List[Dict[str, Any]]:
        return self.admins if role == Role.ADMIN else self.users

    async def ping(self) -> bool:
        return True

    async def get_account_by_email(self, role: Role, email: str) -> Optional[Dict[str, Any]]:
        for row in self._table(role):
            if row['email'] == email:
                return dict(row)
        return None

    async def mark_email_verified(self, role: Role, email: str) -> bool:
        rows = [r for r in self._table(role) if r['email'] == email]
        for row in rows:
            row['is_email_verified'] = True
        return bool(rows)

    async def update_password_by_email(self, role: Role, email: str, password_hash: str) -> bool:
        rows = [r for r in self._table(role) if r['email'] == email]
        for row in rows:
            row['password'] = password_hash
        return bool(rows)

    async def create_user(self, name, email, password_hash, plate_number,
                          preferred_entry_time, preferred_exit_time) -> int:
        user_id = next(self._ids)
        self.users.append({
            'id': user_id,
            'name': name,
            'email': email,
            'password': password_hash,
            'plate_number': plate_number,
            'preferred_entry_time': preferred_entry_time,
            'preferred_exit_time': preferred_exit_time,
            'status': AccountStatus.PENDING.value,
            'is_email_verified': False,
            'role': Role.USER.value,
        })
        return user_id

    async def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        for row in self.users:
            if row['id'] == user_id:
                return dict(row)
        return None

    async def email_taken_by_other_user(self, email: str, user_id: int) -> bool:
        return any(r['email'] == email and r['id'] != user_id for r in self.users)

    async def update_user_profile(self, user_id: int, name: str, email: str) -> bool:
        for row in self.users:
            if row['id'] == user_id:
                row.update(name=name, email=email)
                return True
        return False

    async def update_user_password(self, user_id: int, password_hash: str) -> bool:
        for row in self.users:
            if row['id'] == user_id:
                row['password'] = password_hash
                return True
        return False

    async def create_admin(self, name: str, email: str, password_hash: str) -> int:
        admin_id = next(self._ids)
        self.admins.append({
            'id': admin_id,
            'name': name,
            'email': email,
            'password': password_hash,
            'role': Role.ADMIN.value,
            'is_email_verified': False,
        })
        return admin_id

    async def create_otp(self, email, code, otp_type: OtpType, role: Role, expires_at) -> int:
        otp_id = next(self._ids)
        self.otps.append({
            'id': otp_id,
            'email': email,
            'code': code,
            'type': otp_type.value,
            'role': role.value,
            'is_used': False,
            'expires_at': expires_at,
            'created_at': next(self._sequence),
        })
        return otp_id

    async def find_valid_otp(self, email, code, otp_type: OtpType, role: Role) -> Optional[Dict[str, Any]]:
        now = datetime.now(timezone.utc)
        matches = [
            r for r in self.otps
            if r['email'] == email and r['code'] == code
            and r['type'] == otp_type.value and r['role'] == role.value
            and not r['is_used'] and r['expires_at'] > now
        ]
        if not matches:
            return None
        return dict(max(matches, key=lambda r: (r['created_at'], r['id'])))

    async def mark_otp_used(self, otp_id: int) -> bool:
        for row in self.otps:
            if row['id'] == otp_id:
                row['is_used'] = True
                return True
        return False

    # Test helpers

    def latest_code(self, email: str, otp_type: OtpType, role: Role) -> str:
        rows = [
            r for r in self.otps
            if r['email'] == email and r['type'] == otp_type.value and r['role'] == role.value
        ]
        return max(rows, key=lambda r: r['created_at'])['code']

    def set_user_status(self, email: str, status: AccountStatus):
        for row in self.users:
            if row['email'] == email:
                row['status'] = status.value


@pytest.fixture(autouse=True)
def fast_bcrypt():
    """Lower bcrypt cost so hashing does not dominate the test run"""
    with patch("bcrypt.gensalt", lambda: _original_gensalt(rounds=4)):
        yield


@pytest.fixture
def fake_db() -> InMemoryAuthDatabase:
    return InMemoryAuthDatabase()


@pytest.fixture
def mock_mailer():
    """Email client whose sends succeed without touching SMTP"""
    mailer = MagicMock(spec=EmailClient)
    mailer.send_verification_code = AsyncMock(return_value={"success": True})
    mailer.send_password_reset_code = AsyncMock(return_value={"success": True})
    mailer.send_password_reset_confirmation = AsyncMock(return_value={"success": True})
    return mailer


@pytest.fixture
def mock_db_pool():
    """Mock asyncpg database pool"""
    pool = MagicMock()
    conn = AsyncMock()

    # Configure connection context manager
    pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    pool.acquire.return_value.__aexit__ = AsyncMock(return_value=None)

    return pool, conn


@pytest.fixture
def user_payload() -> Dict[str, Any]:
    """Valid registration body in wire format"""
    return {
        "name": "Alice",
        "email": "a@x.com",
        "password": "s3cret-pass",
        "plateNumber": "ABC-123",
        "preferredEntryTime": "2026-10-20T08:00:00",
        "preferredExitTime": "2026-10-20T17:00:00",
    }
