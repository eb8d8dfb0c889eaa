# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    RESET_TOKEN_EXPIRE_MINUTES: int = 30
    DATABASE_URL: str = "sqlite:///./storefront.db"

    FRONTEND_URL: str = "http://localhost:5173"
    # Public backend URL used to build object storage links
    BACKEND_URL: str = "http://127.0.0.1:8000"

    # Object storage (buckets are subdirectories)
    STORAGE_DIR: str = "static/storage"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    BCRYPT_ROUNDS: int = 12
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
