from pydantic import EmailStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Shop Admin API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database settings
    DATABASE_URL: str = "sqlite:///./database.sqlite"

    # Uploads
    UPLOAD_DIR: str = "./uploads"
    UPLOAD_URL_PATH: str = "/uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_IMAGE_EXTENSIONS: List[str] = ["jpeg", "jpg", "png", "gif", "webp"]
    PUBLIC_BASE_URL: Optional[str] = None

    # Sessions
    SESSION_SECRET: str = "change-me-to-a-long-random-secret"  # Change in production
    SESSION_COOKIE_NAME: str = "shop_admin.sid"
    SESSION_TTL_SECONDS: int = 24 * 60 * 60  # 24 hours
    SESSION_BACKEND: str = "file"  # "file" or "memory"
    SESSION_DIR: str = "./sessions"
    SESSION_COOKIE_SECURE: bool = False
    SESSION_COOKIE_SAMESITE: str = "lax"

    # Security
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"  # Change after first login
    DEFAULT_ADMIN_EMAIL: EmailStr = "admin@example.com"
    MIN_PASSWORD_LENGTH: int = 8
    BCRYPT_ROUNDS: int = 12

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5500",
        "http://localhost:8000",
    ]

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

@lru_cache()
def get_settings() -> Settings:
    return Settings()
