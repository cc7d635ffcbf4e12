# salesforce_connector/cards.py

from pathlib import Path
from typing import Any, Dict, List, Mapping

from connector_commons.cards import CardTemplate, encode_backend_id, finalize_record

CARDS_CONFIG_PATH = Path(__file__).parent / "cards_config.json"


def linearize_case(case: Mapping[str, Any], email: str, base_url: str) -> Dict[str, Any]:
    record = {
        ":backend_id": encode_backend_id(email, case.get("Id"), case.get("CreatedDate")),
        ":case-id": case.get("Id"),
        ":subject": case.get("Subject"),
        ":type": case.get("Type"),
        ":status": case.get("Status"),
        ":account": case.get("account"),
        ":contact": case.get("contact"),
        ":priority": case.get("Priority"),
        ":reason": case.get("Reason"),
        ":description": case.get("Description"),
        ":case-num": case.get("CaseNumber"),
        ":date": case.get("CreatedDate"),
        ":case-link": f"{base_url}/{case.get('Id')}",
    }
    return finalize_record(record)


def generate_cards(
    template: CardTemplate,
    cases: List[Mapping[str, Any]],
    email: str,
    base_url: str,
    action_prefix: str,
) -> Dict[str, List[Dict[str, Any]]]:
    records = [linearize_case(case, email, base_url) for case in cases]
    return template.render(records, {"routing_prefix": action_prefix})
