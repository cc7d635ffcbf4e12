# hubspot_connector/cards.py

from pathlib import Path
from typing import Any, Dict, List, Mapping

from connector_commons.cards import CardTemplate, encode_backend_id, finalize_record

CARDS_CONFIG_PATH = Path(__file__).parent / "cards_config.json"


def capitalize(value: str) -> str:
    return value[:1].upper() + value[1:].lower() if value else ""


def linearize_ticket(
    ticket: Mapping[str, Any],
    email: str,
    user_info: Mapping[str, Any],
    stages: Mapping[str, Mapping[str, str]],
) -> Dict[str, Any]:
    props = ticket.get("properties") or {}
    contact = ticket.get("contact") or {}
    stage = stages.get(props.get("hs_pipeline_stage")) or {}
    record = {
        ":backend_id": encode_backend_id(email, ticket["id"]),
        ":ticket-link": f"https://app.hubspot.com/contacts/{user_info.get('hub_id')}/ticket/{ticket['id']}",
        ":ticket-id": ticket["id"],
        ":ticket-name": props.get("subject"),
        ":ticket-description": props.get("content"),
        ":ticket-owner-id": props.get("hubspot_owner_id"),
        ":ticket-source-id": user_info.get("user"),
        ":ticket-status": stage.get("label"),
        ":ticket-priority": capitalize(props.get("hs_ticket_priority") or ""),
        ":ticket-created-date": ticket.get("createdAt"),
        ":ticket-last-customer-reply": props.get("last_reply_date"),
        ":ticket-source-type": capitalize(props.get("source_type") or ""),
        ":ticket-contact-email": contact.get("email"),
        ":ticket-contact-phone": contact.get("phone"),
        ":ticket-contact-name": contact.get("name"),
        ":ticket-company": ticket.get("company"),
    }
    if ticket.get("contacts"):
        record[":ticket-all-contacts"] = ", ".join(ticket["contacts"])
    return finalize_record(record)


def generate_cards(
    template: CardTemplate,
    tickets: List[Mapping[str, Any]],
    email: str,
    user_info: Mapping[str, Any],
    stages: Mapping[str, Mapping[str, str]],
    action_prefix: str,
) -> Dict[str, List[Dict[str, Any]]]:
    records = [linearize_ticket(t, email, user_info, stages) for t in tickets]
    return template.render(records, {"routing_prefix": action_prefix})
