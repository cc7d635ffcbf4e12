# zendesk_connector/main.py

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request

from connector_commons.app import create_connector_app, serve
from connector_commons.auth_utils import PublicKeyCache
from connector_commons.backend import BackendClient, backend_client
from connector_commons.cards import CardTemplate
from connector_commons.context import ConnectorContext, get_connector_context
from connector_commons.discovery import card_discovery, connector_image_url
from connector_commons.errors import BackendError, prepare_error_response
from connector_commons.payloads import read_payload, require_fields

from . import services
from .cards import generate_cards
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

get_backend = backend_client()

router = APIRouter()


def _ticket_id(payload: Dict[str, Any]) -> int:
    try:
        return int(payload["ticketId"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="ticketId must be a number")


def _unique(values):
    return list(dict.fromkeys(v for v in values if v is not None))


@router.get("/")
async def discovery(request: Request) -> Dict[str, Any]:
    return card_discovery(request, connector_image_url("hub-zendesk.png"))


@router.post("/cards")
async def cards(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    try:
        user_info = await services.get_user_info(backend, ctx)
        if not user_info:
            logger.info("No Zendesk user matches the hub user")
            return {"objects": []}

        tickets = await services.get_user_tickets(backend, ctx, user_info["id"])
        if not tickets:
            return {"objects": []}

        user_ids = _unique(
            [t.get("requester_id") for t in tickets] + [t.get("submitter_id") for t in tickets]
        )
        users, groups, *comments = await asyncio.gather(
            services.get_users(backend, ctx, user_ids),
            services.get_groups(backend, ctx),
            *(services.get_ticket_comments(backend, ctx, t["id"]) for t in tickets),
        )
    except BackendError as e:
        raise prepare_error_response(e, "cardsController") from e

    tickets = [{**t, "comments": c} for t, c in zip(tickets, comments)]
    return generate_cards(
        request.app.state.card_template,
        tickets,
        ctx.email,
        user_info.get("email"),
        users,
        groups,
        f"{ctx.routing_prefix}actions",
    )


@router.post("/actions/addTicketComment")
async def add_ticket_comment(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    require_fields(payload, "ticketId", "comments")
    ticket_id = _ticket_id(payload)
    try:
        result = await services.add_ticket_comment(backend, ctx, ticket_id, payload["comments"])
    except BackendError as e:
        raise prepare_error_response(e, "addTicketComment") from e

    events = (result.get("audit") or {}).get("events") or [{}]
    logger.info("Added comment to ticket %s", ticket_id)
    return {"commentId": events[0].get("id")}


@router.post("/actions/updateTicketStatus")
async def update_ticket_status(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    require_fields(payload, "ticketId", "actionType")
    ticket_id = _ticket_id(payload)
    try:
        result = await services.update_ticket_status(
            backend, ctx, ticket_id, payload["actionType"], payload.get("comments")
        )
    except BackendError as e:
        raise prepare_error_response(e, "updateTicketStatus") from e

    logger.info("Moved ticket %s to %s", ticket_id, payload["actionType"])
    return {"ticketId": (result.get("audit") or {}).get("ticket_id", ticket_id)}


def create_app(
    settings: Settings,
    public_key_cache: Optional[PublicKeyCache] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    app = create_connector_app(
        title="Zendesk Ticket Connector",
        description="Open Zendesk problem tickets assigned to the user, with comment and status actions.",
        settings=settings,
        routers=[router],
        public_key_cache=public_key_cache,
        http_transport=http_transport,
    )
    app.state.card_template = CardTemplate(settings.cards_config_path)
    return app


def run() -> None:
    serve(create_app, get_settings(), "zendesk-connector")


if __name__ == "__main__":
    run()
