"""
Configuration module for the pastebin service.
Loads environment variables and provides config objects.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "redis").lower()
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB: str = os.getenv("MONGODB_DB", "pastebin")
    MONGODB_COLLECTION: str = os.getenv("MONGODB_COLLECTION", "pastes")

    # Prefix of the links handed out after an upload.
    APP_DOMAIN: str = os.getenv("APP_DOMAIN", "http://localhost:8000")
    DEFAULT_TTL_SECONDS: int = int(os.getenv("DEFAULT_TTL_SECONDS", str(7 * 24 * 3600)))

    TEMPLATES_DIR: str = os.getenv("TEMPLATES_DIR", str(PACKAGE_DIR / "templates"))
    STATIC_DIR: str = os.getenv("STATIC_DIR", str(PACKAGE_DIR / "static"))

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    # 0 = errors only, 1 = warnings, 2 = info, 3 and more = debug
    VERBOSITY: int = int(os.getenv("VERBOSITY", "0"))
    DEBUG: bool = _flag("DEBUG", "False")


settings = Settings()
