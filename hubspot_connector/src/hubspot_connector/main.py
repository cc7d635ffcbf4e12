# hubspot_connector/main.py

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, FastAPI, Request

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

get_backend = backend_client(unauthorized=services.is_hubspot_unauthorized)

router = APIRouter()


async def _resolve_associations(
    backend: BackendClient, ctx: ConnectorContext, ticket: Dict[str, Any]
) -> Dict[str, Any]:
    associations = ticket.get("associations") or {}
    companies = (associations.get("companies") or {}).get("results") or []
    contacts = (associations.get("contacts") or {}).get("results") or []

    ticket = dict(ticket)
    ticket["company"] = (
        await services.get_company_name(backend, ctx, companies[0]["id"]) if companies else ""
    )
    if contacts:
        found = await services.get_ticket_contacts(backend, ctx, [c["id"] for c in contacts])
        ticket["contact"] = max(found, key=lambda c: int(c["time"] or 0)) if found else {}
        ticket["contacts"] = [c["email"] for c in found if c["email"]]
    else:
        ticket["contact"] = {}
        ticket["contacts"] = []
    return ticket


@router.get("/")
async def discovery(request: Request) -> Dict[str, Any]:
    return card_discovery(request, connector_image_url("hub-hubspot.png"))


@router.post("/cards")
async def cards(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    try:
        user_info = await services.get_user_info(backend, ctx)
        logger.info("Received cards request for HubSpot user %s", user_info.get("user"))
        if not user_info.get("user"):
            return {"objects": []}

        owner = await services.get_owner_by_email(backend, ctx, user_info["user"])
        if not owner:
            logger.info("No HubSpot owner matches the token user")
            return {"objects": []}

        tickets = await services.get_assigned_tickets(backend, ctx, owner["id"])
        stages = await services.get_ticket_stages(backend, ctx)
        open_tickets = [
            t
            for t in tickets
            if t["properties"].get("hs_pipeline_stage") in stages
            and stages[t["properties"]["hs_pipeline_stage"]]["isClosed"] != "true"
        ]
        if not open_tickets:
            return {"objects": []}

        resolved = await asyncio.gather(
            *(_resolve_associations(backend, ctx, t) for t in open_tickets)
        )
    except BackendError as e:
        raise prepare_error_response(e, "cardsController") from e

    return generate_cards(
        request.app.state.card_template,
        resolved,
        ctx.email,
        user_info,
        stages,
        f"{ctx.routing_prefix}actions",
    )


@router.post("/actions/performAction")
async def perform_action(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    require_fields(payload, "ticketId", "actionType")
    try:
        result = await services.perform_action_on_ticket(
            backend,
            ctx,
            payload["ticketId"],
            payload.get("ownerId"),
            payload.get("sourceId"),
            payload.get("comments") or "",
            payload["actionType"],
            int(time.time() * 1000),
        )
    except BackendError as e:
        raise prepare_error_response(e, "performAction") from e
    logger.info("Performed action %s, status is %s", payload["actionType"], result)
    return {}


@router.post("/actions/updateStatus")
async def update_status(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    payload = await read_payload(request)
    require_fields(payload, "ticketId", "actionType")
    try:
        result = await services.update_ticket_status(
            backend, ctx, payload["ticketId"], payload["actionType"]
        )
    except BackendError as e:
        raise prepare_error_response(e, "updateStatus") from e
    logger.info("Updated status of ticket %s, status is %s", payload["ticketId"], result)
    return {}


def create_app(
    settings: Settings,
    public_key_cache: Optional[PublicKeyCache] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    app = create_connector_app(
        title="HubSpot Tickets Connector",
        description="Open HubSpot tickets assigned to the user, with comment and status actions.",
        settings=settings,
        routers=[router],
        public_key_cache=public_key_cache,
        http_transport=http_transport,
    )
    app.state.card_template = CardTemplate(settings.cards_config_path)
    return app


def run() -> None:
    serve(create_app, get_settings(), "hubspot-connector")


if __name__ == "__main__":
    run()
