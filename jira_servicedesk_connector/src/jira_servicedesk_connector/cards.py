# jira_servicedesk_connector/cards.py

import base64
import hashlib
import uuid
from typing import Any, Dict, List, Mapping, Optional

from connector_commons.discovery import connector_image_url

IMAGE_URL = connector_image_url("jira-service-desk.png")
DEFAULT_CREATE_CARD_HASH = "create_card"


def _sha256_b64(*parts: str) -> str:
    digest = hashlib.sha256()
    for part in parts:
        digest.update(part.encode("utf-8"))
    return base64.b64encode(digest.digest()).decode("ascii")


def field_value(request_field_values: List[Mapping[str, Any]], field_id: str, key: str = "value") -> str:
    match = next((f for f in request_field_values if f.get("fieldId") == field_id), None)
    if match is None:
        return ""
    return match.get(key) or ""


def _general(title: str, description: Any) -> Dict[str, str]:
    return {"type": "GENERAL", "title": title, "description": f"{description}"}


def customer_request_card(customer_request: Mapping[str, Any], action_url: str) -> Dict[str, Any]:
    issue_key = customer_request["issueKey"]
    fields = customer_request.get("requestFieldValues") or []
    current_status = customer_request.get("currentStatus") or {}
    status_date = (current_status.get("statusDate") or {}).get("iso8601") or ""

    return {
        "id": str(uuid.uuid4()),
        "backend_id": issue_key,
        "hash": _sha256_b64(issue_key, status_date),
        "image": {"href": IMAGE_URL},
        "header": {
            "title": field_value(fields, "summary"),
            "subtitle": [issue_key],
            "subtitle_hl": [
                {"name": issue_key, "href": (customer_request.get("_links") or {}).get("web", "")}
            ],
        },
        "body": {
            "fields": [
                _general("Description", field_value(fields, "description")),
                _general("Reporter", (customer_request.get("reporter") or {}).get("displayName", "")),
                _general("Request Type", (customer_request.get("requestType") or {}).get("name", "")),
                _general("Date Created", (customer_request.get("createdDate") or {}).get("friendly", "")),
                _general("Status", current_status.get("status", "")),
            ]
        },
        "actions": [
            {
                "id": str(uuid.uuid4()),
                "action_key": "DIRECT",
                "label": "Approve",
                "completed_label": "Approved",
                "type": "POST",
                "primary": True,
                "repeatable": False,
                "url": {"href": action_url},
                "request": {"decision": "approve", "issueKey": issue_key},
                "user_input": [],
            },
            {
                "id": str(uuid.uuid4()),
                "action_key": "USER_INPUT",
                "label": "Decline",
                "completed_label": "Declined",
                "type": "POST",
                "primary": False,
                "repeatable": False,
                "url": {"href": action_url},
                "request": {"decision": "decline", "issueKey": issue_key},
                "user_input": [
                    {
                        "id": "comment",
                        "label": "Please explain why the Request is being declined",
                        "min_length": 5,
                    }
                ],
            },
        ],
    }


def create_request_card(create_url: str, card_hash: Optional[str] = None) -> Dict[str, Any]:
    """
    Card that lets the user open a new customer request. Its backend id
    and hash follow the value set through /setHash so it can be re-pushed.
    """
    backend_id = card_hash or DEFAULT_CREATE_CARD_HASH
    return {
        "id": str(uuid.uuid4()),
        "backend_id": backend_id,
        "hash": _sha256_b64(backend_id),
        "image": {"href": IMAGE_URL},
        "header": {"title": "Create Customer Request"},
        "body": {"description": "Submit a Request", "fields": []},
        "actions": [
            {
                "id": str(uuid.uuid4()),
                "action_key": "USER_INPUT",
                "label": "Create Request",
                "completed_label": "Create Request",
                "type": "POST",
                "primary": True,
                "repeatable": True,
                "url": {"href": create_url},
                "request": {},
                "user_input": [
                    {"id": "summary", "label": "Summary", "min_length": 1},
                    {"id": "details", "label": "Details", "min_length": 1},
                ],
            }
        ],
    }
