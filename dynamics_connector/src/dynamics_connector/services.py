# dynamics_connector/services.py

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from connector_commons.backend import BackendClient
from connector_commons.context import ConnectorContext

API_PATH = "/api/data/v9.0"

# Case resolution states of the Dynamics incident entity
STATUS_PROBLEM_SOLVED = 5
STATE_CANCELLED = 2


def _headers(ctx: ConnectorContext, **extra: str) -> Dict[str, str]:
    return {"Authorization": ctx.backend_authorization, "accept": "application/json", **extra}


def lookup_date(now: Optional[datetime] = None, hours: int = 1) -> str:
    now = now or datetime.now(timezone.utc)
    return (now - timedelta(hours=hours)).strftime("%Y-%m-%dT%H:%M:%SZ")


async def get_user_info(backend: BackendClient, ctx: ConnectorContext) -> Dict[str, Any]:
    return await backend.get_json(f"{ctx.backend_base_url}{API_PATH}/WhoAmI", headers=_headers(ctx)) or {}


async def _incidents(
    backend: BackendClient,
    ctx: ConnectorContext,
    odata_filter: str,
    orderby: Optional[str] = None,
) -> List[Dict[str, Any]]:
    params = {"$filter": odata_filter}
    if orderby:
        params["$orderby"] = orderby
    body = await backend.get_json(
        f"{ctx.backend_base_url}{API_PATH}/incidents",
        params=params,
        headers=_headers(ctx, Prefer="odata.include-annotations=*"),
    )
    return (body or {}).get("value") or []


async def get_active_cases(
    backend: BackendClient, ctx: ConnectorContext, user_id: str, since: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Active cases owned by the user and created during the last hour."""
    since = since or lookup_date()
    return await _incidents(
        backend, ctx, f"_ownerid_value eq {user_id} and statecode eq 0 and createdon gt {since}"
    )


async def get_pending_cases(
    backend: BackendClient, ctx: ConnectorContext, user_id: str
) -> List[Dict[str, Any]]:
    """Every active case owned by the user, newest first."""
    return await _incidents(
        backend,
        ctx,
        f"_ownerid_value eq {user_id} and statecode eq 0",
        orderby="createdon desc",
    )


async def add_notes_to_case(
    backend: BackendClient, ctx: ConnectorContext, incident_id: str, comments: str
) -> int:
    response = await backend.request(
        "POST",
        f"{ctx.backend_base_url}{API_PATH}/annotations",
        json={"notetext": comments, "objectid_incident@odata.bind": f"incidents({incident_id})"},
        headers=_headers(ctx),
    )
    return response.status_code


async def resolve_case(
    backend: BackendClient, ctx: ConnectorContext, incident_id: str, comments: str
) -> int:
    data = {
        "IncidentId": {
            "incidentid": incident_id,
            "@odata.type": "Microsoft.Dynamics.CRM.incident",
        },
        "Status": STATUS_PROBLEM_SOLVED,
        "BillableTime": 60,
        "Resolution": comments,
        "Remarks": "",
    }
    response = await backend.request(
        "POST",
        f"{ctx.backend_base_url}{API_PATH}/ResolveIncident",
        params={"tag": "abortbpf"},
        json=data,
        headers=_headers(ctx),
    )
    return response.status_code


async def cancel_case(backend: BackendClient, ctx: ConnectorContext, incident_id: str) -> int:
    response = await backend.request(
        "PATCH",
        f"{ctx.backend_base_url}{API_PATH}/incidents({incident_id})",
        json={"statecode": STATE_CANCELLED, "statuscode": -1},
        headers=_headers(ctx),
    )
    return response.status_code
