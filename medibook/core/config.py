from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_ssl: bool = False

    # JWT (tokens are issued by the auth service, we only verify them)
    secret_key: str
    access_token_expire_minutes: int = 60
    algorithm: str = "HS256"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Booking rules
    clinic_timezone: str = "UTC"
    default_duration_minutes: int = 30
    slot_stride_minutes: int = 30
    max_duration_minutes: int = 240
    max_notes_length: int = 1000

    # Paging
    appointments_page_limit: int = 20
    notifications_page_limit: int = 20

    # Env
    env: str = "development"
    create_tables_on_startup: bool = False

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def today(self) -> date:
        """Current calendar date in the clinic's timezone."""
        return datetime.now(ZoneInfo(self.clinic_timezone)).date()


settings = Settings()
