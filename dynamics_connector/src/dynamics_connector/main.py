# dynamics_connector/main.py

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
from .bot_objects import DYNAMICS_LOGO_URL, capabilities, for_bot_objects
from .cards import generate_cards
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

get_backend = backend_client()

router = APIRouter()


def _comments(payload: Dict[str, Any]) -> str:
    return payload.get("comments") or payload.get("comment") or ""


@router.get("/")
async def discovery(request: Request) -> Dict[str, Any]:
    document = card_discovery(request, DYNAMICS_LOGO_URL)
    document["objects"] = capabilities(routing_prefix(request))
    return document


@router.api_route("/bot/actions/pendingCases", methods=["GET", "POST"])
async def pending_cases(
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    try:
        user_info = await services.get_user_info(backend, ctx)
        cases = []
        if user_info.get("UserId"):
            cases = await services.get_pending_cases(backend, ctx, user_info["UserId"])
    except BackendError as e:
        raise prepare_error_response(e, "getPendingCases") from e
    logger.info("Found %d pending cases", len(cases))
    return {"objects": for_bot_objects(cases, ctx.backend_base_url)}


@router.post("/cards")
async def cards(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    settings: Settings = request.app.state.settings
    try:
        user_info = await services.get_user_info(backend, ctx)
        if not user_info.get("UserId"):
            return {"objects": []}
        cases = await services.get_active_cases(
            backend,
            ctx,
            user_info["UserId"],
            services.lookup_date(hours=settings.CASE_LOOKBACK_HOURS),
        )
    except BackendError as e:
        raise prepare_error_response(e, "cardsController") from e

    if not cases:
        return {"objects": []}
    return generate_cards(
        request.app.state.card_template, cases, ctx.email, f"{ctx.routing_prefix}action"
    )


@router.post("/action/addNotes")
async def add_note_about_case(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    require_fields(payload, "caseId")
    try:
        result = await services.add_notes_to_case(backend, ctx, payload["caseId"], _comments(payload))
    except BackendError as e:
        raise prepare_error_response(e, "addNoteAboutCase") from e
    logger.info("Status for adding notes is %s", result)
    return {}


@router.post("/action/resolveCase")
async def mark_case_as_resolved(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    require_fields(payload, "caseId")
    try:
        result = await services.resolve_case(
            backend, ctx, payload["caseId"], _comments(payload)
        )
    except BackendError as e:
        raise prepare_error_response(e, "MarkCaseAsResolved") from e
    logger.info("Status for resolving case is %s", result)
    return {}


@router.post("/action/cancelCase")
async def mark_case_as_cancelled(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    require_fields(payload, "caseId")
    try:
        result = await services.cancel_case(backend, ctx, payload["caseId"])
    except BackendError as e:
        raise prepare_error_response(e, "MarkCaseAsCancelled") from e
    logger.info("Status for cancelling case is %s", result)
    return {}


def create_app(
    settings: Settings,
    public_key_cache: Optional[PublicKeyCache] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    app = create_connector_app(
        title="Microsoft Dynamics Case Connector",
        description="New Dynamics 365 cases owned by the user, with notes, resolve and cancel actions.",
        settings=settings,
        routers=[router],
        public_key_cache=public_key_cache,
        http_transport=http_transport,
    )
    app.state.card_template = CardTemplate(settings.cards_config_path)
    return app


def run() -> None:
    serve(create_app, get_settings(), "dynamics-connector")


if __name__ == "__main__":
    run()
