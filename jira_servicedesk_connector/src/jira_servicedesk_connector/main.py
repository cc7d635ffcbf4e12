# jira_servicedesk_connector/main.py

import logging
from typing import Any, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status

from connector_commons.app import create_connector_app, serve
from connector_commons.auth_utils import MfTokenClaims, PublicKeyCache, get_mf_claims
from connector_commons.backend import BackendClient, backend_client
from connector_commons.context import ConnectorContext, connector_context
from connector_commons.discovery import card_discovery, prepare_url
from connector_commons.errors import BackendError, prepare_error_response
from connector_commons.payloads import read_payload

from . import services
from .cards import IMAGE_URL, create_request_card, customer_request_card
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

# All calls go to the Atlassian API server, the hub does not send a backend URL
get_jira_context = connector_context(require_base_url=False)
get_backend = backend_client()

router = APIRouter()


async def get_servicedesk_api(
    request: Request,
    ctx: ConnectorContext = Depends(get_jira_context),
    backend: BackendClient = Depends(get_backend),
) -> str:
    """Service Desk API root of the Atlassian site the connector token grants access to."""
    settings: Settings = request.app.state.settings
    try:
        cloud_id = await services.get_cloud_id(backend, ctx, settings.ATLASSIAN_API_SERVER)
    except BackendError as e:
        raise prepare_error_response(e, "getCloudId") from e
    if not cloud_id:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Could not find a valid cloud ID for this account"},
        )
    return settings.servicedesk_api(cloud_id)


@router.get("/")
async def discovery(request: Request) -> Dict[str, Any]:
    return card_discovery(request, IMAGE_URL)


@router.post("/cards")
async def cards(
    request: Request,
    ctx: ConnectorContext = Depends(get_jira_context),
    backend: BackendClient = Depends(get_backend),
    api: str = Depends(get_servicedesk_api),
) -> Dict[str, Any]:
    settings: Settings = request.app.state.settings
    try:
        pending = await services.get_requests_pending_approval(
            backend, ctx, api, settings.PAGE_SIZE
        )
    except BackendError as e:
        raise prepare_error_response(e, "handleCards") from e

    create_url = prepare_url(request, "/createCustomerRequest")
    action_url = prepare_url(request, "/approvalAction")
    objects = [create_request_card(create_url, request.app.state.create_card_hash)]
    objects.extend(customer_request_card(r, action_url) for r in pending)
    logger.info("Sending %d cards", len(objects))
    return {"objects": objects}


@router.post("/approvalAction")
async def approval_action(
    request: Request,
    ctx: ConnectorContext = Depends(get_jira_context),
    backend: BackendClient = Depends(get_backend),
    api: str = Depends(get_servicedesk_api),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    issue_key = payload.get("issueKey")
    decision = payload.get("decision")
    comment = payload.get("comment")
    try:
        approval = await services.get_approval_detail(backend, ctx, api, issue_key)
        if not approval:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail={"error": "no approval found"}
            )
        if comment:
            await services.post_comment_on_request(backend, ctx, api, issue_key, comment)
        result = await services.approve_or_deny(
            backend, ctx, api, issue_key, approval["id"], decision
        )
    except BackendError as e:
        raise prepare_error_response(e, "handleApprovalAction") from e

    logger.info("Decision %s on %s resulted in %s", decision, issue_key, result)
    return {"status": result}


@router.post("/createCustomerRequest")
async def create_customer_request(
    request: Request,
    ctx: ConnectorContext = Depends(get_jira_context),
    backend: BackendClient = Depends(get_backend),
    api: str = Depends(get_servicedesk_api),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    # Service desk 1 and request type 1 until the card lets the user pick them
    service_desk_id = payload.get("serviceDeskId") or 1
    request_type_id = payload.get("requestTypeId") or 1
    summary = payload.get("summary") or "Request for Assistance"
    description = payload.get("description") or payload.get("details") or "Default description here"
    try:
        result = await services.create_customer_request(
            backend, ctx, api, service_desk_id, request_type_id, summary, description
        )
    except BackendError as e:
        raise prepare_error_response(e, "handleCreateCustomerRequest") from e
    return {"issueId": result.get("issueId"), "issueKey": result.get("issueKey")}


@router.post("/listRequestTypes")
async def list_request_types(
    request: Request,
    ctx: ConnectorContext = Depends(get_jira_context),
    backend: BackendClient = Depends(get_backend),
    api: str = Depends(get_servicedesk_api),
) -> List[Dict[str, Any]]:
    payload = await read_payload(request)
    try:
        return await services.list_request_types(
            backend, ctx, api, payload.get("serviceDeskId") or 1
        )
    except BackendError as e:
        raise prepare_error_response(e, "handleListRequestTypes") from e


@router.post("/listServiceDesks")
async def list_service_desks(
    ctx: ConnectorContext = Depends(get_jira_context),
    backend: BackendClient = Depends(get_backend),
    api: str = Depends(get_servicedesk_api),
) -> List[Dict[str, Any]]:
    try:
        return await services.list_service_desks(backend, ctx, api)
    except BackendError as e:
        raise prepare_error_response(e, "handleListServiceDesks") from e


@router.post("/setHash")
async def set_hash(request: Request, claims: MfTokenClaims = Depends(get_mf_claims)) -> Dict[str, Any]:
    """Changes the create card's identity so the hub shows it again."""
    payload = await read_payload(request)
    new_hash = payload.get("hash")
    if new_hash:
        request.app.state.create_card_hash = new_hash
        logger.info("Create card hash changed by %s", claims.email)
    return {"new_hash": new_hash}


def create_app(
    settings: Settings,
    public_key_cache: Optional[PublicKeyCache] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    app = create_connector_app(
        title="Jira Service Desk Connector",
        description="Service desk requests awaiting the user's approval, plus request creation.",
        settings=settings,
        routers=[router],
        public_key_cache=public_key_cache,
        http_transport=http_transport,
    )
    app.state.create_card_hash = None
    return app


def run() -> None:
    serve(create_app, get_settings(), "jira-servicedesk-connector")


if __name__ == "__main__":
    run()
