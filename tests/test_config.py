import pytest
from pydantic import ValidationError

from app.config import Settings
from app.services import aggregation


def test_window_defaults_follow_engine():
    settings = Settings(_env_file=None)
    assert settings.DEFAULT_ACTIVITY_DAYS == aggregation.DEFAULT_ACTIVITY_DAYS
    assert settings.DEFAULT_RECENT_LIMIT == aggregation.DEFAULT_RECENT_LIMIT


def test_negative_window_defaults_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, DEFAULT_ACTIVITY_DAYS=-1)


def test_async_database_url():
    settings = Settings(_env_file=None, DATABASE_URL="postgresql://u:p@db/formloop")
    assert settings.async_database_url == "postgresql+asyncpg://u:p@db/formloop"
