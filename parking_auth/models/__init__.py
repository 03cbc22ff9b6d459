"""
Data models for the auth service
"""

from .schemas import Role, AccountStatus, OtpType, TokenClaims

__all__ = [
    "Role",
    "AccountStatus",
    "OtpType",
    "TokenClaims"
]
