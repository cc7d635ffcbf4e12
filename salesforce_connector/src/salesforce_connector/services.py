# salesforce_connector/services.py

import logging
from typing import Any, Dict, List, Optional

import httpx

from connector_commons.backend import BackendClient
from connector_commons.context import ConnectorContext

logger = logging.getLogger(__name__)

API_PATH = "/services/data/v47.0"
OAUTH_ERRORS = ("bad_oauth_token", "missing_oauth_token")
CASE_FIELDS = (
    "id,ownerid,contactid,accountid,priority,reason,origin,subject,status,"
    "type,casenumber,description,comments,CreatedDate"
)


def is_salesforce_unauthorized(response: httpx.Response) -> bool:
    """Salesforce answers a revoked or missing token with a 403 and a plain text code."""
    if response.status_code == 401:
        return True
    if response.status_code != 403:
        return False
    return response.text.strip().lower() in OAUTH_ERRORS


def _headers(ctx: ConnectorContext) -> Dict[str, str]:
    return {"Authorization": ctx.backend_authorization, "accept": "application/json"}


async def _query(backend: BackendClient, ctx: ConnectorContext, soql: str) -> List[Dict[str, Any]]:
    body = await backend.get_json(
        f"{ctx.backend_base_url}{API_PATH}/query", params={"q": soql}, headers=_headers(ctx)
    )
    return (body or {}).get("records") or []


async def get_user_info(backend: BackendClient, ctx: ConnectorContext) -> Dict[str, Any]:
    body = await backend.get_json(
        f"{ctx.backend_base_url}/services/oauth2/userinfo", headers=_headers(ctx)
    )
    return body or {}


async def get_my_open_cases(
    backend: BackendClient, ctx: ConnectorContext, user_id: str
) -> List[Dict[str, Any]]:
    return await _query(
        backend,
        ctx,
        f"select {CASE_FIELDS} from case where status = 'New' and OwnerId = '{user_id}'",
    )


async def get_contact_name(
    backend: BackendClient, ctx: ConnectorContext, contact_id: str
) -> Optional[str]:
    records = await _query(backend, ctx, f"select name from contact where id = '{contact_id}'")
    return records[0].get("Name") if records else None


async def get_account_name(
    backend: BackendClient, ctx: ConnectorContext, account_id: str
) -> Optional[str]:
    records = await _query(backend, ctx, f"select name from account where id = '{account_id}'")
    return records[0].get("Name") if records else None


async def update_case_status(
    backend: BackendClient, ctx: ConnectorContext, case_id: str, status: str
) -> int:
    response = await backend.request(
        "PATCH",
        f"{ctx.backend_base_url}{API_PATH}/sobjects/Case/{case_id}",
        json={"Status": status},
        headers=_headers(ctx),
    )
    return response.status_code


async def post_feed_item_to_case(
    backend: BackendClient, ctx: ConnectorContext, case_id: str, comments: str
) -> int:
    """Adds the comment to the case's Chatter feed."""
    data = {
        "body": {"messageSegments": [{"type": "Text", "text": comments}]},
        "feedElementType": "FeedItem",
        "subjectId": case_id,
    }
    response = await backend.request(
        "POST",
        f"{ctx.backend_base_url}{API_PATH}/chatter/feed-elements",
        json=data,
        headers=_headers(ctx),
    )
    return response.status_code
