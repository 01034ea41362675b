from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "MorFlash"
    data_dir: Path = PROJECT_ROOT / "data"
    database_url: str = f"sqlite+aiosqlite:///{PROJECT_ROOT / 'data' / 'morflash.db'}"
    decks_dir: Path = PROJECT_ROOT / "decks"
    mcq_option_count: int = 4  # correct answer + distractors
    max_cards_per_session: int = 50
    debug: bool = False

    model_config = {"env_prefix": "MORFLASH_", "env_file": ".env"}


settings = Settings()
