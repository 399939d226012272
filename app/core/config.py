"""
Configuration management for the attendance & compensation core
"""
from datetime import time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Required settings
    DATABASE_URL: str = Field(..., description="Database URL (PostgreSQL in production, SQLite locally)")
    JWT_SECRET_KEY: str = Field(..., description="Shared secret used to verify tokens issued by the auth service")

    # Optional settings with defaults
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="JWT token expiration in minutes")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Organisation calendar: all day boundaries and thresholds are evaluated in this zone
    ORG_TIMEZONE: str = Field(default="Asia/Kolkata", description="Organisation time zone (DB stores UTC)")

    # Attendance thresholds
    STANDARD_CHECK_IN_TIME: str = Field(default="09:00", description="Standard check-in time (HH:MM, organisation TZ)")
    STANDARD_CHECK_OUT_TIME: str = Field(default="18:00", description="Standard check-out time (HH:MM, organisation TZ)")
    DEFAULT_GRACE_MINUTES: int = Field(default=30, description="Grace minutes used when a grace period is set without minutes")
    WEEKLY_OFF_DAYS: str = Field(
        default="",
        description="Comma-separated ISO weekdays (1=Mon .. 7=Sun) treated as weekoff without a record",
    )
    LATE_MINUTES_WITHOUT_CHECK_IN: int = Field(
        default=10,
        description="Late minutes charged for a late day that has no check-in time (e.g. 'L' import cell)",
    )

    # Bulk upload
    BULK_UPLOAD_MAX_ROWS: int = Field(default=1000, description="Maximum employee rows accepted in one upload")

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("ORG_TIMEZONE")
    @classmethod
    def validate_org_timezone(cls, v: str) -> str:
        """Validate ORG_TIMEZONE is a known IANA zone"""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"'{v}' is not a known time zone")
        return v

    @field_validator("STANDARD_CHECK_IN_TIME", "STANDARD_CHECK_OUT_TIME")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        """Validate HH:MM threshold strings"""
        try:
            time.fromisoformat(v)
        except ValueError:
            raise ValueError(f"'{v}' is not a valid HH:MM time")
        return v

    @field_validator("WEEKLY_OFF_DAYS")
    @classmethod
    def validate_weekly_off_days(cls, v: str) -> str:
        """Validate WEEKLY_OFF_DAYS (ISO weekday numbers)"""
        for part in v.split(","):
            part = part.strip()
            if not part:
                continue
            if not part.isdigit() or not 1 <= int(part) <= 7:
                raise ValueError("WEEKLY_OFF_DAYS must contain ISO weekdays 1-7")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            # JWT_SECRET_KEY must be at least 32 characters in production
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )

            # ALLOWED_ORIGINS must not be wildcard in production
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def get_weekly_off_days(self) -> List[int]:
        """ISO weekday numbers of the recurring weekoff pattern"""
        return [int(p.strip()) for p in self.WEEKLY_OFF_DAYS.split(",") if p.strip()]

    def get_check_in_time(self) -> time:
        return time.fromisoformat(self.STANDARD_CHECK_IN_TIME)

    def get_check_out_time(self) -> time:
        return time.fromisoformat(self.STANDARD_CHECK_OUT_TIME)


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
