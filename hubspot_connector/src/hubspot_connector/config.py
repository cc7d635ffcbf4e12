# hubspot_connector/config.py

from functools import lru_cache
from typing import Optional

from connector_commons.config import ConnectorSettings, load_settings

from .cards import CARDS_CONFIG_PATH


class Settings(ConnectorSettings):
    # Overrides the packaged card template, e.g. to restyle cards without a release
    CARDS_CONFIG_PATH: Optional[str] = None

    @property
    def cards_config_path(self) -> str:
        return self.CARDS_CONFIG_PATH or str(CARDS_CONFIG_PATH)


@lru_cache
def get_settings() -> Settings:
    return load_settings(Settings)
