"""
Database utilities for the auth service
Connection pool lifecycle and the SQL behind every auth operation
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any

import asyncpg
import structlog
from asyncpg import Pool

from parking_auth.config import settings
from parking_auth.models.schemas import Role, OtpType, AccountStatus


logger = structlog.get_logger(__name__)


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        email VARCHAR(255) NOT NULL UNIQUE,
        password VARCHAR(255) NOT NULL,
        plate_number VARCHAR(32) NOT NULL,
        preferred_entry_time TIMESTAMPTZ NOT NULL,
        preferred_exit_time TIMESTAMPTZ NOT NULL,
        status VARCHAR(20) NOT NULL DEFAULT 'pending',
        is_email_verified BOOLEAN NOT NULL DEFAULT false,
        role VARCHAR(20) NOT NULL DEFAULT 'user',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS admins (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        email VARCHAR(255) NOT NULL UNIQUE,
        password VARCHAR(255) NOT NULL,
        role VARCHAR(20) NOT NULL DEFAULT 'admin',
        is_email_verified BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS otps (
        id SERIAL PRIMARY KEY,
        email VARCHAR(255) NOT NULL,
        code VARCHAR(16) NOT NULL,
        type VARCHAR(20) NOT NULL,
        role VARCHAR(20) NOT NULL,
        is_used BOOLEAN NOT NULL DEFAULT false,
        expires_at TIMESTAMPTZ NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS ix_otps_lookup
        ON otps (email, type, role, created_at DESC)
    """,
)


@dataclass(frozen=True)
class AccountStatements:
    """Literal SQL for one identity table"""
    select_by_email: str
    mark_verified: str
    update_password: str


# Role is resolved to a fixed statement set; table names never reach SQL text at runtime
ACCOUNT_STATEMENTS: Dict[Role, AccountStatements] = {
    Role.USER: AccountStatements(
        select_by_email="SELECT * FROM users WHERE email = $1 AND role = 'user'",
        mark_verified="""
            UPDATE users SET is_email_verified = true, updated_at = NOW()
            WHERE email = $1 AND role = 'user'
        """,
        update_password="""
            UPDATE users SET password = $1, updated_at = NOW()
            WHERE email = $2
        """,
    ),
    Role.ADMIN: AccountStatements(
        select_by_email="SELECT * FROM admins WHERE email = $1",
        mark_verified="""
            UPDATE admins SET is_email_verified = true, updated_at = NOW()
            WHERE email = $1
        """,
        update_password="""
            UPDATE admins SET password = $1, updated_at = NOW()
            WHERE email = $2
        """,
    ),
}


def _affected_rows(command_status: str) -> int:
    """Parse asyncpg's command tag, e.g. 'UPDATE 1'"""
    try:
        return int(command_status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class AuthDatabase:
    """Database connection and operations for the auth service"""

    def __init__(self, dsn: Optional[str] = None):
        self.pool: Optional[Pool] = None
        self.dsn = dsn or settings.database_url

    async def initialize(self):
        """Initialize database connection pool"""
        try:
            self.pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                command_timeout=settings.db_command_timeout
            )
            logger.info("Database pool created", database=settings.db_name)

            # Test connection
            async with self.pool.acquire() as conn:
                await conn.execute('SELECT 1')
                logger.info("Database connection test successful")

            if settings.db_create_schema:
                await self.create_schema()

        except Exception as e:
            logger.error("Failed to initialize database", error=str(e))
            raise

    async def close(self):
        """Close database connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")

    def _get_pool(self) -> Pool:
        if not self.pool:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")
        return self.pool

    async def create_schema(self):
        """Create tables and indexes if they do not exist"""
        async with self._get_pool().acquire() as conn:
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)
        logger.info("Database schema ensured")

    async def ping(self) -> bool:
        async with self._get_pool().acquire() as conn:
            return await conn.fetchval('SELECT 1') == 1

    # ===== ACCOUNT OPERATIONS (both roles) =====

    async def get_account_by_email(self, role: Role, email: str) -> Optional[Dict[str, Any]]:
        """Get a user or admin row by email"""
        statements = ACCOUNT_STATEMENTS[role]
        async with self._get_pool().acquire() as conn:
            row = await conn.fetchrow(statements.select_by_email, email)
            return dict(row) if row else None

    async def mark_email_verified(self, role: Role, email: str) -> bool:
        statements = ACCOUNT_STATEMENTS[role]
        async with self._get_pool().acquire() as conn:
            result = await conn.execute(statements.mark_verified, email)
            return _affected_rows(result) > 0

    async def update_password_by_email(self, role: Role, email: str, password_hash: str) -> bool:
        statements = ACCOUNT_STATEMENTS[role]
        async with self._get_pool().acquire() as conn:
            result = await conn.execute(statements.update_password, password_hash, email)
            return _affected_rows(result) > 0

    # ===== USER OPERATIONS =====

    async def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        plate_number: str,
        preferred_entry_time: datetime,
        preferred_exit_time: datetime
    ) -> int:
        """Create a pending, unverified parking user and return its ID"""
        async with self._get_pool().acquire() as conn:
            user_id = await conn.fetchval(
                """
                INSERT INTO users (name, email, password, plate_number,
                                   preferred_entry_time, preferred_exit_time,
                                   status, is_email_verified, role)
                VALUES ($1, $2, $3, $4, $5, $6, $7, false, 'user')
                RETURNING id
                """,
                name,
                email,
                password_hash,
                plate_number,
                preferred_entry_time,
                preferred_exit_time,
                AccountStatus.PENDING.value
            )

            logger.info("User created", user_id=user_id)
            return user_id

    async def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        async with self._get_pool().acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM users WHERE id = $1",
                user_id
            )
            return dict(row) if row else None

    async def email_taken_by_other_user(self, email: str, user_id: int) -> bool:
        """Check whether another user already owns this email"""
        async with self._get_pool().acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id FROM users WHERE email = $1 AND id != $2",
                email,
                user_id
            )
            return row is not None

    async def update_user_profile(self, user_id: int, name: str, email: str) -> bool:
        async with self._get_pool().acquire() as conn:
            result = await conn.execute(
                """
                UPDATE users SET name = $1, email = $2, updated_at = NOW()
                WHERE id = $3
                """,
                name,
                email,
                user_id
            )
            return result == "UPDATE 1"

    async def update_user_password(self, user_id: int, password_hash: str) -> bool:
        async with self._get_pool().acquire() as conn:
            result = await conn.execute(
                "UPDATE users SET password = $1, updated_at = NOW() WHERE id = $2",
                password_hash,
                user_id
            )
            return result == "UPDATE 1"

    # ===== ADMIN OPERATIONS =====

    async def create_admin(self, name: str, email: str, password_hash: str) -> int:
        """Create an unverified admin and return its ID"""
        async with self._get_pool().acquire() as conn:
            admin_id = await conn.fetchval(
                """
                INSERT INTO admins (name, email, password, role, is_email_verified)
                VALUES ($1, $2, $3, 'admin', false)
                RETURNING id
                """,
                name,
                email,
                password_hash
            )

            logger.info("Admin created", admin_id=admin_id)
            return admin_id

    # ===== ONE-TIME CODE OPERATIONS =====

    async def create_otp(
        self,
        email: str,
        code: str,
        otp_type: OtpType,
        role: Role,
        expires_at: datetime
    ) -> int:
        async with self._get_pool().acquire() as conn:
            return await conn.fetchval(
                """
                INSERT INTO otps (email, code, type, role, is_used, expires_at)
                VALUES ($1, $2, $3, $4, false, $5)
                RETURNING id
                """,
                email,
                code,
                otp_type.value,
                role.value,
                expires_at
            )

    async def find_valid_otp(
        self,
        email: str,
        code: str,
        otp_type: OtpType,
        role: Role
    ) -> Optional[Dict[str, Any]]:
        """Newest unused, unexpired code matching all four keys"""
        async with self._get_pool().acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT * FROM otps
                WHERE email = $1 AND code = $2 AND type = $3 AND role = $4
                  AND is_used = false AND expires_at > NOW()
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                email,
                code,
                otp_type.value,
                role.value
            )
            return dict(row) if row else None

    async def mark_otp_used(self, otp_id: int) -> bool:
        async with self._get_pool().acquire() as conn:
            result = await conn.execute(
                "UPDATE otps SET is_used = true WHERE id = $1",
                otp_id
            )
            return result == "UPDATE 1"
