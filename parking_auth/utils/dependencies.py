"""
FastAPI Dependencies
Database handle, services and authentication dependencies
"""

from typing import Annotated, Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError as ClaimsError

from parking_auth.exceptions import AuthError
from parking_auth.models.schemas import Role, TokenClaims
from parking_auth.services.auth_service import AuthService
from parking_auth.services.profile_service import ProfileService
from parking_auth.utils.database import AuthDatabase
from parking_auth.utils.email_client import EmailClient, get_email_client
from parking_auth.utils.security import decode_access_token

logger = structlog.get_logger(__name__)

# Missing credentials are reported as 401 by get_current_user
security = HTTPBearer(auto_error=False)


def get_database(request: Request) -> AuthDatabase:
    """Dependency to get the database opened in the app lifespan"""
    return request.app.state.db


def get_auth_service(
    db: AuthDatabase = Depends(get_database),
    mailer: EmailClient = Depends(get_email_client)
) -> AuthService:
    return AuthService(db, mailer)


def get_profile_service(db: AuthDatabase = Depends(get_database)) -> ProfileService:
    return ProfileService(db)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenClaims:
    """
    Get the authenticated parking user from the bearer token

    Raises:
        AuthError: missing, invalid or expired token, or a non-user role
    """
    if not credentials:
        raise AuthError("Authentication required")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise AuthError("Invalid or expired token")

    try:
        claims = TokenClaims.model_validate(payload)
    except ClaimsError:
        logger.warning("Token is missing identity claims")
        raise AuthError("Invalid or expired token")

    if claims.role != Role.USER:
        raise AuthError("Not authorized")

    return claims


# Type aliases for cleaner dependency injection
DatabaseDep = Annotated[AuthDatabase, Depends(get_database)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]
CurrentUser = Annotated[TokenClaims, Depends(get_current_user)]
