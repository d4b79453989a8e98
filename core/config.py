"""
MEALY Configuration

Environment variables and application settings.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "MEALY"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Firebase
    FIREBASE_PROJECT_ID: str = "w-306-mealy"
    FIREBASE_CREDENTIALS_PATH: str = "service-account.json"
    # Alternative to the credentials file (hosted deployments)
    FIREBASE_CLIENT_EMAIL: Optional[str] = None
    FIREBASE_PRIVATE_KEY: Optional[str] = None

    # CORS
    CORS_ORIGINS: List[str] = ["https://w-306-mealy.vercel.app", "http://localhost:3000"]

    # Daily reset
    TIMEZONE: str = "UTC"
    RESET_SCHEDULER_ENABLED: bool = True

    # Household
    MAX_USERS: int = 0  # 0 = unlimited

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
