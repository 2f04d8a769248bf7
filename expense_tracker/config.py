# expense_tracker/config.py
from decimal import Decimal
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

    # Tokens are issued by the identity provider and signed with a shared secret
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    DATABASE_URL: str = "sqlite:///./expense_tracker.db"
    FRONTEND_URL: str = "http://localhost:5173"

    # Administrator created on startup while no admin account exists
    DEFAULT_ADMIN_ID: str = "local-admin"
    DEFAULT_ADMIN_EMAIL: str = "admin@example.com"
    DEFAULT_ADMIN_FIRST_NAME: str = "Local"
    DEFAULT_ADMIN_LAST_NAME: str = "Admin"

    # Expense rules
    MAX_EXPENSE_AMOUNT: Decimal = Decimal("10000")
    DESCRIPTION_MAX_LENGTH: int = 500
    DEFAULT_CATEGORY_COLOR: str = "#6366F1"

    # Receipt uploads
    UPLOAD_DIR: str = "static/uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    LOG_LEVEL: str = "INFO"


settings = Settings()
