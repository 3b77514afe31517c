# slot_engine/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    database_url: str
    redis_url: str | None = None

    # Horizon maintainer
    maintenance_enabled: bool = True
    maintenance_interval_seconds: int = 6 * 60 * 60
    maintenance_business_delay_seconds: float = 0.5

    # Slot engine policy (see services/slots/config.py)
    horizon_days: int = 400
    min_future_days: int = 350
    cleanup_threshold_days: int = 30
    insert_batch_size: int = 1000
    page_size: int = 10
    travel_buffer_minutes: int = 30
    session_ttl_seconds: int = 1800

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
