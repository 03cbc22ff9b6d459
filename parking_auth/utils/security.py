"""
Security utilities

Password hashing, access tokens and one-time code generation.
"""

import asyncio
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import bcrypt
import jwt
import structlog

from parking_auth.config import settings

logger = structlog.get_logger(__name__)


def _sync_hash_password(password: str) -> str:
    """Synchronous bcrypt hash (CPU-bound)"""
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


async def hash_password(password: str) -> str:
    """Hash password using bcrypt in thread pool to avoid blocking"""
    return await asyncio.to_thread(_sync_hash_password, password)


def _sync_verify_password(password: str, hashed_password: str) -> bool:
    """Synchronous bcrypt verify (CPU-bound)"""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        # Stored value is not a bcrypt hash
        logger.warning("Password hash could not be parsed")
        return False


async def verify_password(password: str, hashed_password: str) -> bool:
    """Verify password against hash in thread pool to avoid blocking"""
    return await asyncio.to_thread(_sync_verify_password, password, hashed_password)


def create_access_token(
    claims: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Generate a signed JWT

    Args:
        claims: Identity claims ({id, email, role})
        expires_delta: Lifetime, defaults to the configured access token lifetime

    Returns:
        Encoded token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    payload = claims.copy()
    payload["iat"] = now
    payload["exp"] = now + expires_delta

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a JWT

    Returns:
        Decoded payload or None if invalid or expired
    """
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.warning("Token has expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token", error=str(e))
        return None


def generate_otp(length: Optional[int] = None) -> str:
    """Generate a zero-padded numeric one-time code"""
    length = length or settings.otp_length
    return f"{secrets.randbelow(10 ** length):0{length}d}"
