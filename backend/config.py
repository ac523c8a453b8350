from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "TreeDeck"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'treedeck.db'}"
    # Fixed shift applied to server UTC when deciding what is "due today".
    # Assumes a single UTC+7 audience; not per-user.
    business_day_offset_hours: float = 7.0
    again_requeue_position: int = 10
    hard_requeue_position: int = 20
    hard_due_hours: float = 1.0
    public_id_max_attempts: int = 10
    cli_owner_id: str = "local"
    debug: bool = False

    model_config = {"env_prefix": "TREEDECK_", "env_file": ".env"}


settings = Settings()


def business_now(now: datetime | None = None, offset_hours: float | None = None) -> datetime:
    """Return ``now`` shifted by the configured business-day offset."""
    now = now or utcnow()
    if offset_hours is None:
        offset_hours = settings.business_day_offset_hours
    return now + timedelta(hours=offset_hours)
