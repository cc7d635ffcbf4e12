# jira_servicedesk_connector/config.py

from functools import lru_cache
from typing import Optional

from connector_commons.config import ConnectorSettings, load_settings


class Settings(ConnectorSettings):
    ATLASSIAN_API_SERVER: str = "https://api.atlassian.com"
    # Overrides the Service Desk API URL built from the cloud id
    SERVICEDESK_REQUEST_API: Optional[str] = None
    PAGE_SIZE: int = 50

    def servicedesk_api(self, cloud_id: str) -> str:
        if self.SERVICEDESK_REQUEST_API:
            return self.SERVICEDESK_REQUEST_API.rstrip("/")
        return f"{self.ATLASSIAN_API_SERVER.rstrip('/')}/ex/jira/{cloud_id}/rest/servicedeskapi"


@lru_cache
def get_settings() -> Settings:
    return load_settings(Settings)
