"""
Application configuration settings
"""
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import Optional

class Settings(BaseSettings):
    """Application settings"""

    PROJECT_NAME: str = "Client Intake API"
    VERSION: str = "1.0.0"
    DATABASE_URL: str = "sqlite+aiosqlite:///./client_intake.db"
    LOG_LEVEL: str = "INFO"

    # Document storage
    BUCKET_DIR: Path = Path("./bucket")
    UPLOAD_PREFIX: str = "intake-uploads"
    MAX_FILE_SIZE: int = 10 * 1024 * 1024
    ALLOWED_CONTENT_TYPES: set = {"application/pdf", "image/jpeg", "image/png", "image/heic"}

    # Intake links
    APP_URL: str = "http://localhost:3000"
    API_URL: str = "http://localhost:8000"
    INTAKE_LINK_EXPIRY_DAYS: int = 30
    SELF_SERVICE_TOKEN: str = "self-service"

    # PII
    SSN_ENCRYPTION_KEY: str = "default-key-change-in-production-32"

    # Notifications
    FIRM_NAME: str = "Harvey & Co Financial Services"
    EMAIL_PROVIDER: str = "null"
    EMAIL_FROM: str = "onboarding@example.com"
    STAFF_NOTIFICATION_EMAIL: Optional[str] = None
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    # Wizard timings (seconds)
    DEMO_SUBMIT_DELAY: float = 1.0
    DEMO_UPLOAD_DELAY: float = 1.0
    UPLOAD_ERROR_DISMISS_SECONDS: float = 3.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
settings.BUCKET_DIR.mkdir(parents=True, exist_ok=True)
