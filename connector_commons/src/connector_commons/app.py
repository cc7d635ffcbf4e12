# connector_commons/app.py

import logging
import uuid
from typing import Callable, Iterable, Optional

import httpx
import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .auth_utils import PublicKeyCache
from .config import ConnectorSettings
from .errors import http_exception_handler
from .logging_config import REQUEST_ID_CTX, configure_logging

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware:
    """Tags each request with an id, visible in logs and echoed in the response."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = None
        for name, value in scope["headers"]:
            if name.decode("latin-1").lower() == REQUEST_ID_HEADER:
                request_id = value.decode("latin-1")
                break
        request_id = request_id or str(uuid.uuid4())
        token = REQUEST_ID_CTX.set(request_id)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            REQUEST_ID_CTX.reset(token)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error while serving %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


health_router = APIRouter()


@health_router.get("/health")
async def health() -> dict:
    return {"status": "UP"}


def create_connector_app(
    title: str,
    settings: ConnectorSettings,
    routers: Iterable[APIRouter],
    description: str = "",
    version: str = "1.0.0",
    public_key_cache: Optional[PublicKeyCache] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Assembles a connector service: health check, request ids, error
    rendering and the shared caches held on app.state.
    """
    app = FastAPI(title=title, description=description, version=version)

    app.state.settings = settings
    app.state.public_key_cache = public_key_cache or PublicKeyCache(
        settings.MF_JWT_PUB_KEY_URI,
        ttl_seconds=settings.PUBLIC_KEY_TTL_SECONDS,
    )
    app.state.http_transport = http_transport
    app.state.backend_timeout = settings.BACKEND_TIMEOUT_SECONDS

    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router)
    for router in routers:
        app.include_router(router)

    logger.info("%s configured, public key url: %s", title, settings.MF_JWT_PUB_KEY_URI)
    return app


def serve(
    app_factory: Callable[[ConnectorSettings], FastAPI],
    settings: ConnectorSettings,
    service_name: str,
) -> None:
    configure_logging(settings.LOG_LEVEL, service_name)
    logger.info("Connector listening on port %s.", settings.PORT)
    uvicorn.run(app_factory(settings), host=settings.HOST, port=settings.PORT, log_config=None)
