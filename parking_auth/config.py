from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    # App config
    app_name: str = "Parking Auth Service"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = True
    api_prefix: str = "/api/auth"

    # Database - full URL wins over the individual parameters
    auth_database_url: Optional[str] = None
    db_service_user: str = "auth_service"
    db_service_password: str = "auth_service_secure_pass_change_me"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    db_name: str = "parking_auth"
    db_pool_min_size: int = 5
    db_pool_max_size: int = 20
    db_command_timeout: int = 60
    db_create_schema: bool = False

    # JWT
    jwt_secret_key: str = "your_super_secret_jwt_key_change_me"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 1440

    # One-time codes
    otp_length: int = 6
    otp_expire_minutes: int = 10

    # SMTP
    smtp_host: str = "localhost"
    smtp_port: int = 1025
    smtp_use_tls: bool = False
    smtp_timeout: int = 30
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    default_from_email: str = "noreply@parking.local"
    default_from_name: str = "Parking Management"

    # CORS
    cors_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator('smtp_port')
    @classmethod
    def validate_smtp_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError('SMTP port must be between 1 and 65535')
        return v

    @field_validator('jwt_access_token_expire_minutes', 'otp_expire_minutes', 'otp_length')
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError('Value must be a positive integer')
        return v

    @property
    def database_url(self) -> str:
        """Build PostgreSQL connection string"""
        if self.auth_database_url:
            return self.auth_database_url
        return (
            f"postgresql://{self.db_service_user}:{self.db_service_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.db_name}"
        )


settings = Settings()
