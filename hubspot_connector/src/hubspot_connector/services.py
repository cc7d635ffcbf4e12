# hubspot_connector/services.py

import logging
from typing import Any, Dict, List, Optional

import httpx

from connector_commons.backend import BackendClient
from connector_commons.context import ConnectorContext

logger = logging.getLogger(__name__)

EXPIRED_TOKEN_MESSAGE = "The access token is expired or invalid"
SUPPORT_PIPELINE = "Support Pipeline"
TICKET_PROPERTIES = (
    "content,subject,createddate,hs_pipeline,hs_pipeline_stage,"
    "hs_ticket_priority,last_reply_date,source_type,hubspot_owner_id"
)


def is_hubspot_unauthorized(response: httpx.Response) -> bool:
    """HubSpot reports a revoked token as a 404 with a specific message."""
    if response.status_code == 401:
        return True
    if response.status_code != 404:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    return isinstance(body, dict) and body.get("message") == EXPIRED_TOKEN_MESSAGE


def _headers(ctx: ConnectorContext) -> Dict[str, str]:
    return {"Authorization": ctx.backend_authorization}


async def get_user_info(backend: BackendClient, ctx: ConnectorContext) -> Dict[str, Any]:
    token = ctx.backend_authorization.replace("Bearer ", "", 1)
    return await backend.get_json(f"{ctx.backend_base_url}/oauth/v1/access-tokens/{token}")


async def get_owner_by_email(
    backend: BackendClient, ctx: ConnectorContext, email: str
) -> Optional[Dict[str, Any]]:
    body = await backend.get_json(f"{ctx.backend_base_url}/crm/v3/owners", headers=_headers(ctx))
    return next((o for o in body.get("results", []) if o.get("email") == email), None)


async def get_assigned_tickets(
    backend: BackendClient, ctx: ConnectorContext, owner_id: str
) -> List[Dict[str, Any]]:
    """Every ticket owned by owner_id, following HubSpot paging links."""
    url = f"{ctx.backend_base_url}/crm/v3/objects/tickets"
    params: Optional[Dict[str, Any]] = {
        "properties": TICKET_PROPERTIES,
        "associations": "Contact,Company",
        "limit": 100,
    }
    tickets: List[Dict[str, Any]] = []
    while url:
        body = await backend.get_json(url, params=params, headers=_headers(ctx))
        tickets.extend(body.get("results", []))
        url = ((body.get("paging") or {}).get("next") or {}).get("link")
        # Paging links already carry the query string
        params = None
    return [t for t in tickets if t.get("properties", {}).get("hubspot_owner_id") == owner_id]


async def get_ticket_stages(backend: BackendClient, ctx: ConnectorContext) -> Dict[str, Dict[str, str]]:
    body = await backend.get_json(
        f"{ctx.backend_base_url}/crm-pipelines/v1/pipelines/tickets", headers=_headers(ctx)
    )
    pipeline = next(
        (p for p in body.get("results", []) if p.get("label") == SUPPORT_PIPELINE), {"stages": []}
    )
    return {
        stage["stageId"]: {
            "label": stage.get("label"),
            "isClosed": str((stage.get("metadata") or {}).get("isClosed", "false")).lower(),
        }
        for stage in pipeline["stages"]
    }


async def get_company_name(backend: BackendClient, ctx: ConnectorContext, company_id: str) -> str:
    body = await backend.get_json(
        f"{ctx.backend_base_url}/companies/v2/companies/{company_id}", headers=_headers(ctx)
    )
    return body["properties"]["name"]["value"]


def _property(contact: Dict[str, Any], name: str) -> str:
    return ((contact.get("properties") or {}).get(name) or {}).get("value") or ""


async def get_ticket_contacts(
    backend: BackendClient, ctx: ConnectorContext, contact_ids: List[str]
) -> List[Dict[str, Any]]:
    params = [("vid", cid) for cid in contact_ids] + [
        ("property", name) for name in ("firstname", "lastname", "phone", "email")
    ]
    body = await backend.get_json(
        f"{ctx.backend_base_url}/contacts/v1/contact/vids/batch",
        params=params,
        headers=_headers(ctx),
    )
    return [
        {
            "vid": contact.get("vid"),
            "email": _property(contact, "email"),
            "phone": _property(contact, "phone"),
            "time": _property(contact, "lastmodifieddate"),
            "name": " ".join([_property(contact, "firstname"), _property(contact, "lastname")]),
        }
        for contact in (body or {}).values()
    ]


async def perform_action_on_ticket(
    backend: BackendClient,
    ctx: ConnectorContext,
    ticket_id: str,
    owner_id: str,
    source_id: str,
    comments: str,
    action_type: str,
    timestamp: int,
) -> int:
    """Adds a note or logs a call on the ticket."""
    data = {
        "associations": {
            "ownerIds": [],
            "companyIds": [],
            "contactIds": [],
            "dealIds": [],
            "ticketIds": [ticket_id],
            "engagementsV2UniversalAssociations": {},
        },
        "engagement": {
            "source": "CRM_UI",
            "sourceId": source_id,
            "type": action_type,
            "timestamp": timestamp,
            "ownerId": owner_id,
        },
        "metadata": {"body": f"<p>{comments}</p>"},
        "attachments": [],
        "scheduledTasks": [],
        "inviteeEmails": [],
    }
    response = await backend.request(
        "POST",
        f"{ctx.backend_base_url}/engagements/v1/engagements",
        json=data,
        headers={**_headers(ctx), "accept": "application/json"},
    )
    return response.status_code


async def update_ticket_status(
    backend: BackendClient, ctx: ConnectorContext, ticket_id: str, stage_id: str
) -> int:
    response = await backend.request(
        "PATCH",
        f"{ctx.backend_base_url}/crm/v3/objects/tickets/{ticket_id}",
        json={"properties": {"hs_pipeline_stage": stage_id}},
        headers=_headers(ctx),
    )
    return response.status_code
