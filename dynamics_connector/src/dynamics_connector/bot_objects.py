# dynamics_connector/bot_objects.py

import uuid
from typing import Any, Dict, List

from connector_commons.discovery import connector_image_url

WORKFLOW_PENDING_CASES = "vmw_MS_DYNAMICS_PENDING_CASES"

DYNAMICS_LOGO_URL = connector_image_url("hub-ms-dynamics.png")

BEGINNING_TITLE = "Here are the top cases I found"
NO_DESCRIPTION = "Not Available"


def case_url(base_url: str, case: Dict[str, Any]) -> str:
    """Dynamics 365 form of the incident."""
    return f"{base_url}/main.aspx?pagetype=entityrecord&etn=incident&id={case.get('incidentid')}"


def _text_item(title: str, workflow_id: str) -> Dict[str, Any]:
    return {
        "itemDetails": {
            "id": str(uuid.uuid4()),
            "title": title,
            "workflowId": workflow_id,
            "workflowStep": "Complete",
            "type": "text",
        }
    }


def no_result_item(base_url: str) -> Dict[str, Any]:
    return {
        "itemDetails": {
            "title": (
                "I’m sorry. I could not find any cases related to that search. "
                f"You can view more cases here: {base_url}/"
            ),
            "description": "Please try again with different search",
            "type": "text",
        }
    }


def case_item(case: Dict[str, Any], base_url: str, workflow_id: str) -> Dict[str, Any]:
    return {
        "itemDetails": {
            "id": str(uuid.uuid4()),
            "title": case.get("title"),
            "subtitle": "",
            "description": case.get("description") or NO_DESCRIPTION,
            "url": {"href": case_url(base_url, case)},
            "image": {"href": DYNAMICS_LOGO_URL},
            "workflowId": workflow_id,
            "workflowStep": "Complete",
            "type": "text",
        }
    }


def for_bot_objects(
    cases: List[Dict[str, Any]], base_url: str, workflow_id: str = WORKFLOW_PENDING_CASES
) -> List[Dict[str, Any]]:
    if not cases:
        return [no_result_item(base_url)]
    end_title = (
        "Did you find what you’re looking for? If not, "
        f"you can view more cases here: {base_url}/"
    )
    return [
        _text_item(BEGINNING_TITLE, workflow_id),
        *(case_item(case, base_url, workflow_id) for case in cases),
        _text_item(end_title, workflow_id),
    ]


def capabilities(routing_prefix: str) -> List[Dict[str, Any]]:
    return [
        {
            "children": [
                {
                    "itemDetails": {
                        "id": str(uuid.uuid4()),
                        "title": "What are my pending cases",
                        "description": "show active cases owned by the user",
                        "actions": [
                            {
                                "title": "What are my pending cases",
                                "description": "show active cases owned by the user",
                                "type": "GET",
                                "url": {"href": f"{routing_prefix}bot/actions/pendingCases"},
                                "headers": {},
                                "userInput": [],
                            }
                        ],
                        "workflowId": WORKFLOW_PENDING_CASES,
                    }
                }
            ]
        }
    ]
