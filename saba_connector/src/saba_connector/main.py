# saba_connector/main.py

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx
from fastapi import APIRouter, Depends, FastAPI, Request

from connector_commons.app import create_connector_app, serve
from connector_commons.auth_utils import PublicKeyCache
from connector_commons.backend import BackendClient, backend_client
from connector_commons.context import ConnectorContext
from connector_commons.discovery import card_discovery
from connector_commons.errors import BackendError, BackendUnauthorizedError, prepare_error_response

from . import services
from .backend_auth import CertificateCache, get_saba_context, is_saba_unauthorized, saba_certificate
from .cards import IMAGE_URL, certification_card, curriculum_card, enrollment_card, learning_parts
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

CARDS_PATH = "/api/cards/requests"

get_backend = backend_client(unauthorized=is_saba_unauthorized)
get_certificate = saba_certificate(get_backend)

router = APIRouter()


async def _module_cards(
    backend: BackendClient,
    ctx: ConnectorContext,
    certificate: str,
    learnings: List[Dict[str, Any]],
    module_id,
    make_card,
) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Cards of curricula or certifications, plus the ids of the courses they contain."""
    modules = await asyncio.gather(
        *(
            services.retrieve_module_details(backend, ctx, certificate, module_id(learning))
            for learning in learnings
        )
    )
    parts = [part for module in modules for part in learning_parts(module)]
    return [make_card(learning, module) for learning, module in zip(learnings, modules)], parts


async def _enrollment_card(
    backend: BackendClient, ctx: ConnectorContext, certificate: str, enrollment: Dict[str, Any]
) -> Dict[str, Any]:
    module, details = await asyncio.gather(
        services.retrieve_module_details(
            backend, ctx, certificate, enrollment["offering_temp_id"]["id"]
        ),
        services.retrieve_enrollment_details(backend, ctx, certificate, enrollment["id"]),
    )
    return enrollment_card(enrollment, module, details)


@router.get("/")
async def discovery(request: Request) -> Dict[str, Any]:
    return card_discovery(request, IMAGE_URL, card_path=CARDS_PATH)


@router.post(CARDS_PATH)
async def card_requests(
    request: Request,
    ctx: ConnectorContext = Depends(get_saba_context),
    backend: BackendClient = Depends(get_backend),
    certificate: str = Depends(get_certificate),
) -> Dict[str, Any]:
    try:
        employees = await services.retrieve_employees(backend, ctx, certificate)
        if len(employees) != 1:
            # Unknown email, or more than one Saba user sharing it
            logger.info("Could not identify a unique Saba user. Found %d users", len(employees))
            return {"objects": []}

        employee_id = employees[0]["id"]
        logger.info("Retrieving learning for employee %s", employee_id)
        curricula, certifications, enrollments = await asyncio.gather(
            services.retrieve_curriculum(backend, ctx, certificate, employee_id),
            services.retrieve_certifications(backend, ctx, certificate, employee_id),
            services.retrieve_enrollments(backend, ctx, certificate, employee_id),
        )

        (curriculum_cards, curriculum_parts), (certification_cards, certification_parts) = (
            await asyncio.gather(
                _module_cards(
                    backend,
                    ctx,
                    certificate,
                    curricula,
                    lambda c: c["basicdetail"]["curriculum"]["id"],
                    curriculum_card,
                ),
                _module_cards(
                    backend,
                    ctx,
                    certificate,
                    certifications,
                    lambda c: c["basicdetail"]["certification_id"]["id"],
                    certification_card,
                ),
            )
        )

        # Courses taken as part of a curriculum or certification already have a card
        covered = set(curriculum_parts) | set(certification_parts)
        independent = [e for e in enrollments if e["offering_temp_id"]["id"] not in covered]
        logger.info("Number of independent courses to produce cards: %d", len(independent))
        enrollment_cards = await asyncio.gather(
            *(_enrollment_card(backend, ctx, certificate, e) for e in independent)
        )
    except BackendError as e:
        if isinstance(e, BackendUnauthorizedError):
            logger.info("Clearing cached Saba certificate for the tenant")
            request.app.state.certificate_cache.clear(ctx.tenant_id)
        raise prepare_error_response(e, "handleCardRequest") from e

    return {"objects": [*curriculum_cards, *certification_cards, *enrollment_cards]}


def create_app(
    settings: Settings,
    public_key_cache: Optional[PublicKeyCache] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
    certificate_cache: Optional[CertificateCache] = None,
) -> FastAPI:
    app = create_connector_app(
        title="Saba Connector",
        description="Curricula, certifications and courses the user is enrolled in on Saba Cloud.",
        settings=settings,
        routers=[router],
        public_key_cache=public_key_cache,
        http_transport=http_transport,
    )
    app.state.certificate_cache = certificate_cache or CertificateCache(
        settings.SABA_CERTIFICATE_TTL_SECONDS
    )
    return app


def run() -> None:
    serve(create_app, get_settings(), "saba-connector")


if __name__ == "__main__":
    run()
