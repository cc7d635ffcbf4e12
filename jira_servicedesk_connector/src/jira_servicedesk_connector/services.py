# jira_servicedesk_connector/services.py

import logging
from typing import Any, Dict, List, Optional

from connector_commons.backend import BackendClient
from connector_commons.context import ConnectorContext

logger = logging.getLogger(__name__)

REQUIRED_SCOPE = "read:servicedesk-request"


def _headers(ctx: ConnectorContext) -> Dict[str, str]:
    return {"Authorization": ctx.backend_authorization, "Accept": "application/json"}


async def get_cloud_id(
    backend: BackendClient, ctx: ConnectorContext, api_server: str
) -> Optional[str]:
    """First Atlassian site the token may read service desk requests from."""
    resources = await backend.get_json(
        f"{api_server.rstrip('/')}/oauth/token/accessible-resources", headers=_headers(ctx)
    )
    site = next((r for r in resources or [] if REQUIRED_SCOPE in (r.get("scopes") or [])), {})
    return site.get("id")


async def get_requests_pending_approval(
    backend: BackendClient, ctx: ConnectorContext, api: str, page_size: int = 50
) -> List[Dict[str, Any]]:
    params = {
        "requestOwnership": "APPROVER",
        "requestStatus": "OPEN_REQUESTS",
        "approvalStatus": "MY_PENDING_APPROVAL",
        "expand": "requestType",
        "limit": page_size,
    }
    requests: List[Dict[str, Any]] = []
    start = 0
    while True:
        page = await backend.get_json(
            f"{api}/request", params={**params, "start": start}, headers=_headers(ctx)
        )
        page = page or {}
        values = page.get("values") or []
        requests.extend(values)
        if page.get("isLastPage", True) or not values:
            return requests
        start += len(values)


async def get_approval_detail(
    backend: BackendClient, ctx: ConnectorContext, api: str, issue_key: str
) -> Optional[Dict[str, Any]]:
    body = await backend.get_json(f"{api}/request/{issue_key}/approval", headers=_headers(ctx))
    values = (body or {}).get("values") or []
    return values[0] if values else None


async def post_comment_on_request(
    backend: BackendClient, ctx: ConnectorContext, api: str, issue_key: str, comment: str
) -> Dict[str, Any]:
    return await backend.post_json(
        f"{api}/request/{issue_key}/comment",
        json={"body": comment, "public": True},
        headers=_headers(ctx),
    )


async def approve_or_deny(
    backend: BackendClient,
    ctx: ConnectorContext,
    api: str,
    issue_key: str,
    approval_id: str,
    decision: str,
) -> Optional[str]:
    """Posts the decision ("approve" or "decline") and returns the final decision."""
    body = await backend.post_json(
        f"{api}/request/{issue_key}/approval/{approval_id}",
        json={"decision": decision},
        headers=_headers(ctx),
    )
    return (body or {}).get("finalDecision")


async def create_customer_request(
    backend: BackendClient,
    ctx: ConnectorContext,
    api: str,
    service_desk_id: Any,
    request_type_id: Any,
    summary: str,
    description: str,
) -> Dict[str, Any]:
    data = {
        "serviceDeskId": service_desk_id,
        "requestTypeId": request_type_id,
        "requestFieldValues": {"summary": summary, "description": description},
    }
    return await backend.post_json(f"{api}/request", json=data, headers=_headers(ctx)) or {}


async def list_service_desks(
    backend: BackendClient, ctx: ConnectorContext, api: str
) -> List[Dict[str, Any]]:
    body = await backend.get_json(f"{api}/servicedesk", headers=_headers(ctx))
    return [
        {
            "id": desk.get("id"),
            "projectId": desk.get("projectId"),
            "projectName": desk.get("projectName"),
            "projectKey": desk.get("projectKey"),
        }
        for desk in (body or {}).get("values") or []
    ]


async def list_request_types(
    backend: BackendClient, ctx: ConnectorContext, api: str, service_desk_id: Any
) -> List[Dict[str, Any]]:
    body = await backend.get_json(
        f"{api}/servicedesk/{service_desk_id}/requesttype", headers=_headers(ctx)
    )
    return [
        {
            "id": request_type.get("id"),
            "name": request_type.get("name"),
            "issueTypeId": request_type.get("issueTypeId"),
            "serviceDeskId": request_type.get("serviceDeskId"),
        }
        for request_type in (body or {}).get("values") or []
    ]
