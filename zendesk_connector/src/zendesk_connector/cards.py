# zendesk_connector/cards.py

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from connector_commons.cards import (
    CardTemplate,
    encode_backend_id,
    finalize_record,
    remove_empty_keys,
)

CARDS_CONFIG_PATH = Path(__file__).parent / "cards_config.json"


def _by_id(items: List[Mapping[str, Any]], item_id: Any) -> Mapping[str, Any]:
    return next((i for i in items if i.get("id") == item_id), {})


def _attachments(comments: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [
        remove_empty_keys({":att_name": a.get("file_name"), ":att-link": a.get("content_url")})
        for comment in comments
        for a in comment.get("attachments") or []
    ]


def linearize_ticket(
    ticket: Mapping[str, Any],
    email: str,
    assignee: Optional[str],
    users: List[Mapping[str, Any]],
    groups: List[Mapping[str, Any]],
) -> Dict[str, Any]:
    comments = ticket.get("comments") or []
    # The first comment is the ticket description
    follow_ups = [
        remove_empty_keys({":subject": c.get("plain_body")}) for c in comments[1:]
    ]
    record = {
        ":backend_id": encode_backend_id(email, ticket.get("id"), ticket.get("created_at")),
        ":ticket_type": ticket.get("type"),
        ":ticket_description": ticket.get("description"),
        ":ticket_subject": ticket.get("subject"),
        ":ticket_priority": ticket.get("priority"),
        ":ticket_status": ticket.get("status"),
        ":ticket_raw_subject": ticket.get("raw_subject"),
        ":ticket_tags": ", ".join(ticket.get("tags") or []),
        ":channel": (ticket.get("via") or {}).get("channel"),
        ":ticket_id": ticket.get("id"),
        ":ticket_requester": _by_id(users, ticket.get("requester_id")).get("email"),
        ":ticket_submitter": _by_id(users, ticket.get("submitter_id")).get("email"),
        ":ticket_assignee": assignee,
        ":ticket_group": _by_id(groups, ticket.get("group_id")).get("name"),
        ":comments-section": [c for c in follow_ups if c],
        ":attachments-section": _attachments(comments),
    }
    return finalize_record(record)


def generate_cards(
    template: CardTemplate,
    tickets: List[Mapping[str, Any]],
    email: str,
    assignee: Optional[str],
    users: List[Mapping[str, Any]],
    groups: List[Mapping[str, Any]],
    action_prefix: str,
) -> Dict[str, List[Dict[str, Any]]]:
    records = [linearize_ticket(t, email, assignee, users, groups) for t in tickets]
    return template.render(records, {"routing_prefix": action_prefix})
