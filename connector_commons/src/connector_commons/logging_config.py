# connector_commons/logging_config.py

"""
Structured JSON logging for the connectors.

Every record carries the service name and the id of the request being
served, so log lines from concurrent requests can be told apart.

    configure_logging(level="INFO", service_name="zendesk-connector")
    logger = logging.getLogger(__name__)
    logger.info("Fetched %d tickets", len(tickets))

Credentials and tokens must never be passed to a logger.
"""

import logging
from contextvars import ContextVar
from typing import Callable, Optional

from pythonjsonlogger.json import JsonFormatter

REQUEST_ID_CTX: ContextVar[str] = ContextVar("request_id", default="")

LOG_FIELDS = ("asctime", "levelname", "name", "message", "request_id", "service")

FIELD_RENAME_MAP = {
    "levelname": "level",
    "name": "logger",
}


def get_request_id() -> str:
    return REQUEST_ID_CTX.get()


class RequestIdFilter(logging.Filter):
    """Adds request_id and service to each record. Never drops a record."""

    def __init__(
        self,
        service_name: str,
        request_id_getter: Optional[Callable[[], str]] = None,
    ) -> None:
        super().__init__()
        self._service_name = service_name
        self._get_request_id = request_id_getter or get_request_id

    def filter(self, record: logging.LogRecord) -> bool:
        # A request_id passed through `extra` is kept as is
        existing = getattr(record, "request_id", None)
        record.request_id = existing if existing else self._get_request_id()
        record.service = self._service_name
        return True


def create_json_formatter() -> JsonFormatter:
    format_string = " ".join(f"%({field})s" for field in LOG_FIELDS)
    return JsonFormatter(format_string, rename_fields=FIELD_RENAME_MAP)


def configure_logging(level: str = "INFO", service_name: str = "connector") -> None:
    """Install a single JSON stream handler on the root logger."""
    handler = logging.StreamHandler()
    handler.setLevel(level.upper())
    handler.setFormatter(create_json_formatter())
    handler.addFilter(RequestIdFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers = [handler]
