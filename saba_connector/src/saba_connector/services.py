# saba_connector/services.py

import logging
from typing import Any, Dict, List

from connector_commons.backend import BackendClient
from connector_commons.context import ConnectorContext

logger = logging.getLogger(__name__)


def _headers(certificate: str) -> Dict[str, str]:
    return {"SabaCertificate": certificate}


async def retrieve_employees(
    backend: BackendClient, ctx: ConnectorContext, certificate: str
) -> List[Dict[str, Any]]:
    """Saba people whose username is the hub user's email."""
    body = await backend.get_json(
        f"{ctx.backend_base_url}/v1/people",
        params={"type": "internal", "q": f"(username=={ctx.email})"},
        headers=_headers(certificate),
    )
    return (body or {}).get("results") or []


async def _held_learning(
    backend: BackendClient,
    ctx: ConnectorContext,
    certificate: str,
    learning_type: str,
    query: str,
) -> List[Dict[str, Any]]:
    body = await backend.get_json(
        f"{ctx.backend_base_url}/v1/learning/heldlearningevent",
        params={
            "type": learning_type,
            "q": query,
            "includeDetails": "true",
            "count": 10,
            "startPage": 0,
        },
        headers=_headers(certificate),
    )
    return (body or {}).get("results") or []


async def retrieve_curriculum(
    backend: BackendClient, ctx: ConnectorContext, certificate: str, employee_id: str
) -> List[Dict[str, Any]]:
    query = f"(assignee=={employee_id},status_description_curr!=100)"
    return await _held_learning(backend, ctx, certificate, "curriculum", query)


async def retrieve_certifications(
    backend: BackendClient, ctx: ConnectorContext, certificate: str, employee_id: str
) -> List[Dict[str, Any]]:
    query = f"(assignee=={employee_id},status_description_cert!=100)"
    return await _held_learning(backend, ctx, certificate, "certification", query)


async def retrieve_enrollments(
    backend: BackendClient, ctx: ConnectorContext, certificate: str, employee_id: str
) -> List[Dict[str, Any]]:
    body = await backend.get_json(
        f"{ctx.backend_base_url}/v1/people/{employee_id}/enrollments/search",
        params={"type": "internal", "includeDetails": "TRUE", "count": 50},
        headers=_headers(certificate),
    )
    return (body or {}).get("results") or []


async def retrieve_module_details(
    backend: BackendClient, ctx: ConnectorContext, certificate: str, module_id: str
) -> Dict[str, Any]:
    """Every detail of a single curriculum, certification or course offering."""
    body = await backend.get_json(
        f"{ctx.backend_base_url}/v1/learningmodule/{module_id}", headers=_headers(certificate)
    )
    return body or {}


async def retrieve_enrollment_details(
    backend: BackendClient, ctx: ConnectorContext, certificate: str, enrollment_id: str
) -> Dict[str, Any]:
    body = await backend.get_json(
        f"{ctx.backend_base_url}/v1/enrollments/{enrollment_id}/sections:regdetail",
        headers=_headers(certificate),
    )
    return body or {}
