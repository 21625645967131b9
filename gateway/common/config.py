from pydantic_settings import BaseSettings
from pydantic import EmailStr, Field, field_validator
import json


class Settings(BaseSettings):
    # Application
    app_name: str = "Vendor Data Gateway"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    app_port: int = 8000

    # Database
    database_url: str

    # IP level rate limiting (slowapi)
    rate_limit_per_minute: int = 600
    admin_login_rate_limit: str = "10/minute"

    # Admin sessions
    session_ttl_hours: int = 24
    session_cookie_secure: bool = False

    # Token defaults applied when a ceiling is omitted on create
    default_rate_limit_per_minute: int = 100
    default_rate_limit_per_hour: int = 5000
    default_rate_limit_per_day: int = 100000
    allow_unscoped_tokens: bool = True

    # Quota windows
    quota_day_timezone: str = "UTC"

    # Data queries
    default_page_size: int = 100
    max_page_size: int = 500
    max_unpaged_rows: int = 500
    admin_column_overrides: dict[str, str] = {}
    metadata_cache_ttl_seconds: int = 3600

    # Seed administrator, created only when no admin exists
    bootstrap_admin_username: str | None = None
    bootstrap_admin_password: str | None = None
    bootstrap_admin_email: EmailStr | None = None

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"], validate_default=True
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("admin_column_overrides", mode="before")
    @classmethod
    def parse_admin_column_overrides(cls, v):
        if isinstance(v, str):
            if not v.strip():
                return {}
            return json.loads(v)
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields from .env


settings = Settings()
