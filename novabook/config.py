import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_key: str = os.getenv("API_KEY", "super-secret-key")

    # Database settings
    database_file: str = os.getenv("LIBRARY_DB_FILE", "novabook.db")

    # Lending rules
    default_loan_period_days: int = int(os.getenv("DEFAULT_LOAN_PERIOD_DAYS", "14"))
    fine_per_day: float = float(os.getenv("FINE_PER_DAY", "0.50"))
    regular_loan_limit: int = int(os.getenv("REGULAR_LOAN_LIMIT", "3"))
    premium_loan_limit: int = int(os.getenv("PREMIUM_LOAN_LIMIT", "5"))

    # Bootstrap administrator (created only when the users table is empty)
    admin_email: Optional[str] = os.getenv("ADMIN_EMAIL")
    admin_password: Optional[str] = os.getenv("ADMIN_PASSWORD")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "NovaBook Library")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    debug: bool = _env_bool("DEBUG")


settings = Settings()
