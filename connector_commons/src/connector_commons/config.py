# connector_commons/config.py

import logging
import sys
from pathlib import Path
from typing import Type, TypeVar

from dotenv import load_dotenv
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# connector_commons/src/connector_commons/config.py -> repository root
PROJECT_ROOT_DIR = Path(__file__).resolve().parent.parent.parent.parent
ENV_FILE_PATH = PROJECT_ROOT_DIR / ".env"

# Process environment wins over the .env file
if ENV_FILE_PATH.exists():
    load_dotenv(dotenv_path=ENV_FILE_PATH, override=False)

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class ConnectorSettings(BaseSettings):
    """Settings shared by every connector service."""

    # === Mobile Flows identity ===
    MF_JWT_PUB_KEY_URI: str
    PUBLIC_KEY_TTL_SECONDS: int = 3600

    # === Server ===
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # === Backend calls ===
    BACKEND_TIMEOUT_SECONDS: float = 30.0

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("MF_JWT_PUB_KEY_URI")
    @classmethod
    def check_pub_key_uri(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("MF_JWT_PUB_KEY_URI must not be empty")
        return v.strip()

    @field_validator("LOG_LEVEL")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid LOG_LEVEL {v}. Valid: {', '.join(sorted(VALID_LOG_LEVELS))}"
            )
        return level


SettingsT = TypeVar("SettingsT", bound=ConnectorSettings)


def load_settings(settings_cls: Type[SettingsT]) -> SettingsT:
    """
    Instantiate the settings of a connector, or stop the process.

    A connector cannot validate any request without the public key URL,
    so a missing MF_JWT_PUB_KEY_URI is fatal at startup.
    """
    try:
        return settings_cls()
    except ValidationError as e:
        logger.critical(
            "Invalid configuration for %s: %s. "
            "Please provide the Mobile Flows public key URL at MF_JWT_PUB_KEY_URI.",
            settings_cls.__module__,
            e,
        )
        sys.exit(1)
