import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        session_secret: str,
        session_max_age_hours: int,
        items_per_page: int,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.session_secret = session_secret
        self.session_max_age_hours = session_max_age_hours
        self.items_per_page = items_per_page
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("LEDGER_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "ledger.db"
    database_url = os.getenv("LEDGER_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("LEDGER_TIMEZONE", "Europe/Berlin")
    session_secret = os.getenv(
        "LEDGER_SESSION_SECRET",
        "5c1f7a0e9b2d48d6a3e0f4b7c8d91e2a6f3b0c5d7e8a9b1c2d3e4f5a6b7c8d9e",
    )
    session_max_age_hours = int(os.getenv("LEDGER_SESSION_MAX_AGE_HOURS", "336"))
    items_per_page = int(os.getenv("LEDGER_ITEMS_PER_PAGE", "10"))
    log_level = os.getenv("LEDGER_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        session_secret=session_secret,
        session_max_age_hours=session_max_age_hours,
        items_per_page=items_per_page,
        log_level=log_level,
    )
