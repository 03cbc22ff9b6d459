"""
Auth data schemas

Pydantic models for request validation and response projections.
Wire format uses camelCase keys; Python code uses snake_case attributes.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
MIN_RESET_PASSWORD_LENGTH = 8


class Role(str, Enum):
    """Account role enumeration"""
    USER = "user"
    ADMIN = "admin"


class AccountStatus(str, Enum):
    """User approval status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OtpType(str, Enum):
    """One-time code purpose"""
    VERIFICATION = "verification"
    RESET = "reset"


def _normalize_email(v: str) -> str:
    return v.strip().lower()


def _validate_email(v: str) -> str:
    v = _normalize_email(v)
    if not EMAIL_PATTERN.match(v):
        raise ValueError('Invalid email format')
    return v


def _as_utc(v: datetime) -> datetime:
    # Naive times are taken as UTC so entry and exit always compare
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


def _require_text(v: str) -> str:
    if not v or not v.strip():
        raise ValueError('All fields are required')
    return v


def _validate_role(v: Any) -> Any:
    if v not in (Role.USER.value, Role.ADMIN.value, Role.USER, Role.ADMIN):
        raise ValueError('Invalid role specified')
    return v


def _code_to_text(v: Any) -> Any:
    # Clients sometimes send the numeric code as a JSON number
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return v


class CamelModel(BaseModel):
    """Base model accepting and emitting camelCase keys"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


# ===== REQUESTS =====

class UserRegisterSchema(CamelModel):
    """Schema for parking user registration"""
    name: str
    email: str
    password: str
    plate_number: str
    preferred_entry_time: datetime
    preferred_exit_time: datetime

    @field_validator('name', 'password', 'plate_number')
    @classmethod
    def validate_required(cls, v):
        return _require_text(v)

    @field_validator('preferred_entry_time', 'preferred_exit_time')
    @classmethod
    def validate_times(cls, v):
        return _as_utc(v)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_email(v)

    @model_validator(mode='after')
    def validate_time_window(self):
        """Exit must come strictly after entry"""
        if self.preferred_exit_time <= self.preferred_entry_time:
            raise ValueError('Exit time must be after entry time')
        return self


class AdminRegisterSchema(CamelModel):
    """Schema for admin registration"""
    name: str
    email: str
    password: str

    @field_validator('name', 'password')
    @classmethod
    def validate_required(cls, v):
        return _require_text(v)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_email(v)


class LoginSchema(CamelModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _normalize_email(v)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _require_text(v)


class EmailVerificationSchema(CamelModel):
    email: str
    code: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_email(v)

    @field_validator('code', mode='before')
    @classmethod
    def validate_code(cls, v):
        return _code_to_text(v)


class ForgotPasswordSchema(CamelModel):
    role: Role
    email: str

    @field_validator('role', mode='before')
    @classmethod
    def validate_role(cls, v):
        return _validate_role(v)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_email(v)


class ResendVerificationSchema(ForgotPasswordSchema):
    """Same shape as a forgot-password request"""
    pass


class ResetPasswordSchema(CamelModel):
    role: Role
    email: str
    code: str
    new_password: str

    @field_validator('role', mode='before')
    @classmethod
    def validate_role(cls, v):
        return _validate_role(v)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_email(v)

    @field_validator('code', mode='before')
    @classmethod
    def validate_code(cls, v):
        return _code_to_text(v)

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        if len(v) < MIN_RESET_PASSWORD_LENGTH:
            raise ValueError('Password must be at least 8 characters long')
        return v


class ProfileUpdateSchema(CamelModel):
    name: str
    email: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _require_text(v)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_email(v)


class PasswordChangeSchema(CamelModel):
    """No length policy on the new password, unlike a reset"""
    current_password: str
    new_password: str

    @field_validator('current_password', 'new_password')
    @classmethod
    def validate_required(cls, v):
        return _require_text(v)


# ===== RESPONSE PROJECTIONS =====

class UserPublicSchema(CamelModel):
    """User fields returned on login"""
    id: int
    name: str
    email: str
    plate_number: str


class AdminPublicSchema(CamelModel):
    """Admin fields returned on login"""
    id: int
    name: str
    email: str
    role: Role = Role.ADMIN


class UserProfileSchema(CamelModel):
    """Safe projection of the caller's own user row"""
    id: int
    name: str
    email: str
    role: Role
    plate_number: str
    status: str


class TokenClaims(BaseModel):
    """Identity carried by an access token"""
    id: int
    email: str
    role: Role


def project(schema: type[CamelModel], row: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a database row against a projection and dump it in wire format"""
    return schema.model_validate(row).model_dump(by_alias=True, mode='json')
