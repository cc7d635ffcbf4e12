# connector_commons/context.py

from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict

from .auth_utils import MfTokenClaims, get_mf_claims
from .discovery import derived_base_url, routing_prefix
from .logging_config import get_request_id


class ConnectorContext(BaseModel):
    """Everything a connector route needs to know about the current request."""

    model_config = ConfigDict(frozen=True)

    claims: MfTokenClaims
    backend_base_url: Optional[str] = None
    backend_authorization: Optional[str] = None
    request_id: str = ""
    base_url: str = ""
    routing_prefix: str = ""
    routing_template: str = ""

    @property
    def tenant_id(self) -> Optional[str]:
        return self.claims.tenant_id

    @property
    def email(self) -> Optional[str]:
        return self.claims.email

    @property
    def username(self) -> str:
        return self.claims.username


def _require_header(request: Request, name: str) -> str:
    value = request.headers.get(name)
    if not value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"The {name} is required",
        )
    return value


def build_context(
    request: Request,
    claims: MfTokenClaims,
    require_base_url: bool = True,
    require_authorization: bool = True,
) -> ConnectorContext:
    if require_base_url:
        backend_base_url = _require_header(request, "x-connector-base-url")
    else:
        backend_base_url = request.headers.get("x-connector-base-url")
    if require_authorization:
        backend_authorization = _require_header(request, "x-connector-authorization")
    else:
        backend_authorization = request.headers.get("x-connector-authorization")

    base_url = derived_base_url(request)
    return ConnectorContext(
        claims=claims,
        backend_base_url=backend_base_url.rstrip("/") if backend_base_url else None,
        backend_authorization=backend_authorization,
        request_id=get_request_id(),
        base_url=base_url,
        routing_prefix=routing_prefix(request),
        routing_template=request.headers.get("x-routing-template") or "",
    )


def connector_context(
    require_base_url: bool = True, require_authorization: bool = True
) -> Callable[..., ConnectorContext]:
    """
    Builds a dependency that validates the JWT first and then reads the
    backend headers. Routes that talk to a fixed backend host can relax
    the base URL requirement.
    """

    def dependency(
        request: Request, claims: MfTokenClaims = Depends(get_mf_claims)
    ) -> ConnectorContext:
        return build_context(request, claims, require_base_url, require_authorization)

    return dependency


get_connector_context = connector_context()
