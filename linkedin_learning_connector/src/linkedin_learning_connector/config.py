# linkedin_learning_connector/config.py

from functools import lru_cache

from connector_commons.config import ConnectorSettings, load_settings


class Settings(ConnectorSettings):
    # === LinkedIn Learning queries ===
    COURSE_COUNT: int = 3
    COURSE_LANGUAGE: str = "en"
    COURSE_COUNTRY: str = "US"
    NEW_COURSES_LOOKBACK_DAYS: int = 30


@lru_cache
def get_settings() -> Settings:
    return load_settings(Settings)
