import os
from typing import List
from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings

# Load environment variables from the matching .env file
os.environ.setdefault("APP_ENV", "development")
env_file = ".env" if os.getenv("APP_ENV") == "development" else ".env.production"
load_dotenv(env_file)

class Settings(BaseSettings):
    APP_ENV: str = "development"
    DEBUG: bool = False
    FRONTEND_URL: str = "http://localhost:8080"
    DATABASE_URL: str
    ALEMBIC_DATABASE_URL: str = ""
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 60
    ALLOWED_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "info"

    # Realtime / chat
    MARK_READ_DELAY_SECONDS: float = 1.0

    # Email settings (booking emails are off unless explicitly enabled)
    EMAIL_NOTIFICATIONS_ENABLED: bool = False
    EMAIL_SENDER: str = ""
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""

    # Support comma-separated ALLOWED_ORIGINS strings
    @field_validator("ALLOWED_ORIGINS", mode="before")
    def split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

settings = Settings()
