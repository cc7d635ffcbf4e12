# linkedin_learning_connector/main.py

import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, FastAPI, Request

from connector_commons.app import create_connector_app, serve
from connector_commons.auth_utils import PublicKeyCache
from connector_commons.backend import BackendClient, backend_client
from connector_commons.context import ConnectorContext, get_connector_context
from connector_commons.discovery import card_discovery, routing_prefix
from connector_commons.errors import BackendError, prepare_error_response
from connector_commons.payloads import read_payload

from . import services
from .bot_objects import (
    WORKFLOW_KEYWORD_SEARCH,
    WORKFLOW_NEW_COURSES,
    WORKFLOW_USER_TOP_PICKS,
    capabilities,
    for_bot_objects,
    options_catalog,
)
from .card_objects import LINKEDIN_LOGO_URL, for_card_objects
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

get_backend = backend_client()

router = APIRouter()


def _settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/")
async def discovery(request: Request) -> Dict[str, Any]:
    document = card_discovery(request, LINKEDIN_LOGO_URL)
    document["objects"] = capabilities(routing_prefix(request))
    return document


@router.api_route("/bot/actions/options-catalog", methods=["GET", "POST"])
async def bot_options_catalog(
    ctx: ConnectorContext = Depends(get_connector_context),
) -> Dict[str, Any]:
    return {"objects": options_catalog(ctx.routing_template or ctx.routing_prefix)}


@router.api_route("/bot/actions/top-picks", methods=["GET", "POST"])
async def user_top_picks(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    logger.info("Sending user top pick course request")
    try:
        courses = await services.get_user_top_picks(backend, ctx, _settings(request))
    except BackendError as e:
        logger.error("Top picks request failed error: %s", e.message)
        raise prepare_error_response(e, "userTopPicks") from e
    return {"objects": for_bot_objects(courses, WORKFLOW_USER_TOP_PICKS)}


@router.api_route("/bot/actions/new-courses", methods=["GET", "POST"])
async def new_courses(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    logger.info("Sending new course request")
    try:
        courses = await services.get_new_courses(backend, ctx, _settings(request))
    except BackendError as e:
        logger.error("New courses request failed error: %s", e.message)
        raise prepare_error_response(e, "newCourses") from e
    return {"objects": for_bot_objects(courses, WORKFLOW_NEW_COURSES)}


@router.post("/bot/actions/keyword-search")
async def keyword_search(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    logger.info("Sending keyword search request")
    payload = await read_payload(request)
    keyword = payload.get("description") or ""
    try:
        courses = await services.keyword_search(backend, ctx, _settings(request), keyword)
    except BackendError as e:
        logger.error("Keyword search request failed error: %s", e.message)
        raise prepare_error_response(e, "keywordSearch") from e
    return {"objects": for_bot_objects(courses, WORKFLOW_KEYWORD_SEARCH)}


@router.post("/cards")
async def cards(
    request: Request,
    ctx: ConnectorContext = Depends(get_connector_context),
    backend: BackendClient = Depends(get_backend),
) -> Dict[str, Any]:
    try:
        courses = await services.get_new_courses(backend, ctx, _settings(request))
    except BackendError as e:
        logger.error("New course cards request failed error: %s", e.message)
        raise prepare_error_response(e, "cards") from e
    return {"objects": for_card_objects(courses)}


def create_app(
    settings: Settings,
    public_key_cache: Optional[PublicKeyCache] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    return create_connector_app(
        title="LinkedIn Learning Connector",
        description="Course recommendations from LinkedIn Learning as chatbot objects and cards.",
        settings=settings,
        routers=[router],
        public_key_cache=public_key_cache,
        http_transport=http_transport,
    )


def run() -> None:
    serve(create_app, get_settings(), "linkedin-learning-connector")


if __name__ == "__main__":
    run()
