# zendesk_connector/services.py

import logging
from typing import Any, Dict, Iterable, List, Optional

from connector_commons.backend import BackendClient
from connector_commons.context import ConnectorContext

logger = logging.getLogger(__name__)


def _headers(ctx: ConnectorContext) -> Dict[str, str]:
    return {"Authorization": ctx.backend_authorization, "accept": "application/json"}


async def _search(backend: BackendClient, ctx: ConnectorContext, query: str) -> List[Dict[str, Any]]:
    body = await backend.get_json(
        f"{ctx.backend_base_url}/api/v2/search.json", params={"query": query}, headers=_headers(ctx)
    )
    return (body or {}).get("results") or []


async def get_user_info(backend: BackendClient, ctx: ConnectorContext) -> Optional[Dict[str, Any]]:
    """The Zendesk user behind the hub user's email, if any."""
    results = await _search(backend, ctx, f"type:user {ctx.email}")
    return results[0] if results else None


async def get_user_tickets(
    backend: BackendClient, ctx: ConnectorContext, assignee_id: Any
) -> List[Dict[str, Any]]:
    return await _search(
        backend, ctx, f"type:ticket assignee_id:{assignee_id} status:open ticket_type:problem"
    )


async def get_users(
    backend: BackendClient, ctx: ConnectorContext, user_ids: Iterable[Any]
) -> List[Dict[str, Any]]:
    ids = ",".join(str(i) for i in user_ids)
    if not ids:
        return []
    body = await backend.get_json(
        f"{ctx.backend_base_url}/api/v2/users/show_many.json",
        params={"ids": ids},
        headers=_headers(ctx),
    )
    return (body or {}).get("users") or []


async def get_groups(backend: BackendClient, ctx: ConnectorContext) -> List[Dict[str, Any]]:
    body = await backend.get_json(f"{ctx.backend_base_url}/api/v2/groups.json", headers=_headers(ctx))
    return (body or {}).get("groups") or []


async def get_ticket_comments(
    backend: BackendClient, ctx: ConnectorContext, ticket_id: Any
) -> List[Dict[str, Any]]:
    body = await backend.get_json(
        f"{ctx.backend_base_url}/api/v2/tickets/{ticket_id}/comments.json", headers=_headers(ctx)
    )
    return (body or {}).get("comments") or []


async def _update_ticket(
    backend: BackendClient, ctx: ConnectorContext, ticket_id: int, ticket: Dict[str, Any]
) -> Dict[str, Any]:
    body = await backend.put_json(
        f"{ctx.backend_base_url}/api/v2/tickets/{ticket_id}.json",
        json={"ticket": ticket},
        headers=_headers(ctx),
    )
    return body or {}


async def add_ticket_comment(
    backend: BackendClient, ctx: ConnectorContext, ticket_id: int, comment: str
) -> Dict[str, Any]:
    return await _update_ticket(backend, ctx, ticket_id, {"comment": {"body": comment}})


async def update_ticket_status(
    backend: BackendClient,
    ctx: ConnectorContext,
    ticket_id: int,
    status: str,
    comment: Optional[str] = None,
) -> Dict[str, Any]:
    ticket: Dict[str, Any] = {"status": status}
    if comment:
        ticket["comment"] = {"body": comment}
    return await _update_ticket(backend, ctx, ticket_id, ticket)
