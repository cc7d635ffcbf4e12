# saba_connector/config.py

from functools import lru_cache

from connector_commons.config import ConnectorSettings, load_settings

from .backend_auth import CERTIFICATE_TTL_SECONDS


class Settings(ConnectorSettings):
    SABA_CERTIFICATE_TTL_SECONDS: int = CERTIFICATE_TTL_SECONDS


@lru_cache
def get_settings() -> Settings:
    return load_settings(Settings)
