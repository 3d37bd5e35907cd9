"""
Kodein Configuration Settings
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Kodein"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database - MySQL
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = "kodein"
    DB_POOL_SIZE: int = 10
    DB_CONNECT_TIMEOUT: int = 5

    # JWT Settings
    JWT_SECRET_KEY: str = "kodein-super-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # CORS
    CORS_ORIGINS: list = ["http://localhost", "http://127.0.0.1", "http://localhost:5173"]

    # Gamification
    LEVEL_XP_STEP: int = 100
    QUIZ_PASS_RATIO: float = 0.7
    LEADERBOARD_LIMIT: int = 100

    # Remote calls to the data store
    REMOTE_CALL_TIMEOUT_SECONDS: Optional[float] = 5.0
    REMOTE_CALL_WORKERS: int = 8

    # Caches and ephemeral state
    ROLE_CACHE_TTL_SECONDS: int = 300
    QUIZ_SESSION_TTL_SECONDS: int = 3600

    # User-facing messages
    DEFAULT_LOCALE: str = "id"
    SUPPORTED_LOCALES: list = ["id", "en"]

    class Config:
        env_file = ".env"
        extra = "allow"

settings = Settings()
