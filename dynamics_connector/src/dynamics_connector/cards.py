# dynamics_connector/cards.py

from pathlib import Path
from typing import Any, Dict, List, Mapping

from connector_commons.cards import CardTemplate, encode_backend_id, finalize_record

CARDS_CONFIG_PATH = Path(__file__).parent / "cards_config.json"

FORMATTED = "@OData.Community.Display.V1.FormattedValue"


def linearize_case(case: Mapping[str, Any], email: str) -> Dict[str, Any]:
    record = {
        ":backend_id": encode_backend_id(email, case.get("incidentid"), case.get("createdon")),
        ":case-title": case.get("title"),
        ":case-description": case.get("description"),
        ":case-customer": case.get(f"_customerid_value{FORMATTED}"),
        ":case-service-stage": case.get(f"servicestage{FORMATTED}"),
        ":case-subject": case.get(f"_subjectid_value{FORMATTED}"),
        ":case-contact": case.get(f"_primarycontactid_value{FORMATTED}"),
        ":case-priority": case.get(f"prioritycode{FORMATTED}"),
        ":case-status": case.get(f"statuscode{FORMATTED}"),
        ":case-id": case.get("ticketnumber"),
        ":incident-id": case.get("incidentid"),
    }
    return finalize_record(record)


def generate_cards(
    template: CardTemplate, cases: List[Mapping[str, Any]], email: str, action_prefix: str
) -> Dict[str, List[Dict[str, Any]]]:
    records = [linearize_case(case, email) for case in cases]
    return template.render(records, {"routing_prefix": action_prefix})
