# salesforce_connector/main.py

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, FastAPI, Request

from connector_commons.app import create_connector_app, serve
from connector_commons.auth_utils import PublicKeyCache
from connector_commons.backend import BackendClient, backend_client
from connector_commons.cards import CardTemplate
from connector_commons.context import ConnectorContext, get_connector_context
from connector_commons.discovery import card_discovery, routing_prefix
from connector_commons.errors import BackendError, prepare_error_response
from connector_commons.payloads import read_payload, require_fields

from . import services
from .bot_objects import SALESFORCE_LOGO_URL, capabilities, for_bot_objects
from .cards import generate_cards
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

get_backend = backend_client(unauthorized=services.is_salesforce_unauthorized)

router = APIRouter()


async def _with_names(
    backend: BackendClient, ctx: ConnectorContext, case: Dict[str, Any]
) -> Dict[str, Any]:
    contact_id = case.get("ContactId")
    account_id = case.get("AccountId")
    contact, account = await asyncio.gather(
        services.get_contact_name(backend, ctx, contact_id) if contact_id else _none(),
        services.get_account_name(backend, ctx, account_id) if account_id else _none(),
    )
    return {**case, "contact": contact or "", "account": account or ""}


async def _none() -> None:
    return None


@router.get("/")
async def discovery(request: Request) -> Dict[str, Any]:
    document = card_discovery(request, SALESFORCE_LOGO_URL)
    document["objects"] = capabilities(routing_prefix(request))
    return document


@router.api_route("/bot/actions/pendingCases", methods=["GET", "POST"])
async def pending_cases(
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    logger.info("Fetching pending cases for the chatbot")
    try:
        user_info = await services.get_user_info(backend, ctx)
        cases = []
        if user_info.get("user_id"):
            cases = await services.get_my_open_cases(backend, ctx, user_info["user_id"])
    except BackendError as e:
        raise prepare_error_response(e, "getPendingCases") from e
    return {"objects": for_bot_objects(cases, ctx.backend_base_url)}


@router.post("/cards")
async def cards(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    try:
        user_info = await services.get_user_info(backend, ctx)
        if not user_info.get("user_id"):
            return {"objects": []}

        cases = await services.get_my_open_cases(backend, ctx, user_info["user_id"])
        if not cases:
            return {"objects": []}

        named = await asyncio.gather(*(_with_names(backend, ctx, case) for case in cases))
    except BackendError as e:
        raise prepare_error_response(e, "cardsController") from e

    logger.info("Generating %d case cards", len(named))
    return generate_cards(
        request.app.state.card_template,
        list(named),
        ctx.email,
        ctx.backend_base_url,
        f"{ctx.routing_prefix}actions",
    )


@router.post("/actions/addComment")
async def post_comment(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    require_fields(payload, "caseId", "comments")
    try:
        result = await services.post_feed_item_to_case(
            backend, ctx, payload["caseId"], payload["comments"]
        )
    except BackendError as e:
        raise prepare_error_response(e, "postComment") from e
    logger.info("Posted comment on case %s, status is %s", payload["caseId"], result)
    return {}


@router.post("/actions/updateStatus")
async def update_status(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    require_fields(payload, "caseId", "actionType")
    try:
        result = await services.update_case_status(
            backend, ctx, payload["caseId"], payload["actionType"]
        )
    except BackendError as e:
        raise prepare_error_response(e, "updateStatus") from e
    logger.info("Moved case %s to %s, status is %s", payload["caseId"], payload["actionType"], result)
    return {}


def create_app(
    settings: Settings,
    public_key_cache: Optional[PublicKeyCache] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    app = create_connector_app(
        title="Salesforce Case Connector",
        description="New Salesforce cases owned by the user, with comment and status actions.",
        settings=settings,
        routers=[router],
        public_key_cache=public_key_cache,
        http_transport=http_transport,
    )
    app.state.card_template = CardTemplate(settings.cards_config_path)
    return app


def run() -> None:
    serve(create_app, get_settings(), "salesforce-connector")


if __name__ == "__main__":
    run()
