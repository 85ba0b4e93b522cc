"""Application configuration.

Environment variables override all defaults.
SECRET_KEY has no default: the app refuses to start without it.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv


_BACKEND_DIR = Path(__file__).resolve().parents[2]

# Load .env for local development; real environment variables win
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./hcc.db")

    # JWT signing - must come from the environment
    # Generate with: python -c "import secrets; print(secrets.token_urlsafe(32))"
    SECRET_KEY: str = os.getenv("SECRET_KEY", "")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "24"))

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = _env_list(
        "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    )

    # Password Policy
    MIN_PASSWORD_LENGTH: int = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))
    REQUIRE_NUMBERS: bool = _env_bool("REQUIRE_NUMBERS", False)

    # Roles a visitor may pick on /auth/register. Staff accounts are created
    # by a receptionist through /users.
    SELF_REGISTRATION_ROLES: List[str] = _env_list("SELF_REGISTRATION_ROLES", "student,doctor")

    # First-boot receptionist. Password is generated, never configured.
    BOOTSTRAP_RECEPTIONIST_EMAIL: str = os.getenv("BOOTSTRAP_RECEPTIONIST_EMAIL", "")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"

    def validate(self) -> None:
        """Fail fast on configuration the app cannot run without."""
        if not self.SECRET_KEY:
            raise ValueError(
                "SECRET_KEY must be set in the environment. "
                "Generate with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )
        if self.ACCESS_TOKEN_EXPIRE_HOURS <= 0:
            raise ValueError("ACCESS_TOKEN_EXPIRE_HOURS must be positive")


settings = Settings()
