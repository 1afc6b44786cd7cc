from pydantic_settings import BaseSettings
from pydantic import field_validator
import json


class Settings(BaseSettings):
    # Application
    app_name: str = "Review Gate"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    app_port: int = 8000
    app_url: str = "http://localhost:3000"

    # Database
    database_url: str
    store_timeout_seconds: float = 10.0

    # JWT Security (session verification only)
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60

    # Bearer tokens
    token_issue_max_attempts: int = 3
    client_access_ttl_days: int = 3650
    review_link_ttl_days: int = 3650

    # Blob storage
    upload_dir: str = "uploads"

    # Reminders
    reminder_inactivity_days: int = 2
    reminder_min_interval_hours: int = 24
    reminder_max_stage: int = 3

    # Rate Limiting
    rate_limit_per_minute: int = 60
    forgot_password_rate_limit: str = "5/minute"
    token_validation_rate_limit: str = "30/minute"

    # CORS
    cors_origins: list[str] | str = '["http://localhost:3000","http://localhost:8000"]'

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [v]
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields from .env


settings = Settings()
