import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


class Config(BaseModel):
    app_name: str = "Attendance & Payroll"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")
    db_timeout_seconds: int = int(os.getenv("DB_TIMEOUT_SECONDS", "10"))
    store_retry_attempts: int = int(os.getenv("STORE_RETRY_ATTEMPTS", "3"))

    # Auth
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    access_token_expire_minutes: int = 60 * 24  # 24 hours
    cron_secret: Optional[str] = os.getenv("CRON_SECRET")

    # Civil calendar. Every "today" in the system is a date in this zone.
    timezone: str = os.getenv("APP_TIMEZONE", "Asia/Taipei")
    default_work_start: str = os.getenv("DEFAULT_WORK_START", "09:00:00")
    default_work_end: str = os.getenv("DEFAULT_WORK_END", "18:00:00")

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    _critical_missing = []
    if "dev-only" in settings.secret_key:
        _critical_missing.append("SECRET_KEY")
    if not settings.cron_secret:
        _critical_missing.append("CRON_SECRET")
    if _critical_missing:
        raise RuntimeError(
            f"FATAL: The following secrets must be set for non-development environments: "
            f"{', '.join(_critical_missing)}. Set them as environment variables."
        )
elif "dev-only" in settings.secret_key:
    _logger.warning("Using insecure default SECRET_KEY, only acceptable in development.")
