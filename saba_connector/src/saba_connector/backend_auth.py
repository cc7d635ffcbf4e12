# saba_connector/backend_auth.py

"""
Saba API authorization.

The hub sends the tenant's service credentials as "username:password" in
X-Connector-Authorization. They are exchanged for a SabaCertificate that
is reused for every call of the same tenant until it expires or Saba
reports it as invalid.
"""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

import httpx
from fastapi import Depends, HTTPException, Request, status

from connector_commons.backend import BackendClient
from connector_commons.context import ConnectorContext, connector_context
from connector_commons.errors import BackendError

logger = logging.getLogger(__name__)

CERTIFICATE_TTL_SECONDS = 24 * 60 * 60
INVALID_CERTIFICATE_ERROR_CODE = 123

BASE_URL_REQUIRED = "Backend API base URL is required"
CERTIFICATE_FAILED = (
    "Failed to acquire Saba certificate. Please Confirm service credentials are correct"
)


class InvalidServiceCredentials(ValueError):
    pass


class CertificateCache:
    """SabaCertificates per tenant, each valid for a fixed time."""

    def __init__(
        self,
        ttl_seconds: int = CERTIFICATE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Optional[str], Tuple[str, float]] = {}

    def get(self, tenant_id: Optional[str]) -> Optional[str]:
        entry = self._entries.get(tenant_id)
        if entry and entry[1] > self._clock():
            return entry[0]
        return None

    def put(self, tenant_id: Optional[str], certificate: str) -> None:
        self._entries[tenant_id] = (certificate, self._clock() + self.ttl_seconds)

    def clear(self, tenant_id: Optional[str] = None) -> None:
        if tenant_id is None:
            self._entries.clear()
        else:
            self._entries.pop(tenant_id, None)


def is_saba_unauthorized(response: httpx.Response) -> bool:
    """Saba reports an expired or revoked certificate as a 500 with error code 123."""
    if response.status_code != 500:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    return isinstance(body, dict) and body.get("errorCode") == INVALID_CERTIFICATE_ERROR_CODE


def read_service_credentials(credentials: Optional[str]) -> Tuple[str, str]:
    parts = (credentials or "").split(":")
    if len(parts) != 2:
        raise InvalidServiceCredentials(
            "Invalid service credentials configuration. Please use the format <username>:<password>"
        )
    return parts[0], parts[1]


async def retrieve_new_certificate(
    backend: BackendClient, base_url: str, username: str, password: str
) -> str:
    logger.info("Retrieving a new Saba certificate")
    body = await backend.get_json(
        f"{base_url}/v1/login", headers={"user": username, "password": password}
    )
    certificate = (body or {}).get("certificate")
    if not certificate:
        raise InvalidServiceCredentials("Saba login answered without a certificate")
    return certificate


async def get_certificate(
    backend: BackendClient, ctx: ConnectorContext, cache: CertificateCache
) -> str:
    certificate = cache.get(ctx.tenant_id)
    if certificate:
        return certificate

    username, password = read_service_credentials(ctx.backend_authorization)
    certificate = await retrieve_new_certificate(backend, ctx.backend_base_url, username, password)
    cache.put(ctx.tenant_id, certificate)
    return certificate


# Saba answers for missing headers itself, with its own messages
get_saba_context = connector_context(require_base_url=False, require_authorization=False)


def saba_certificate(get_backend: Callable) -> Callable:
    """Builds the dependency resolving the tenant's SabaCertificate."""

    async def dependency(
        request: Request,
        ctx: ConnectorContext = Depends(get_saba_context),
        backend: BackendClient = Depends(get_backend),
    ) -> str:
        if not ctx.backend_base_url:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=BASE_URL_REQUIRED)
        try:
            return await get_certificate(backend, ctx, request.app.state.certificate_cache)
        except (InvalidServiceCredentials, BackendError) as e:
            logger.warning("Failed to acquire Saba certificate for API authorization. %s", e)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=CERTIFICATE_FAILED
            ) from e

    return dependency
