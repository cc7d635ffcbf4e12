# salesforce_connector/bot_objects.py

"""Chatbot objects listing the Salesforce cases of the user."""

import uuid
from typing import Any, Dict, List

from connector_commons.discovery import connector_image_url

WORKFLOW_PENDING_CASES = "vmw_SALESFORCE_PENDING_CASES"

SALESFORCE_LOGO_URL = connector_image_url("hub-salesforce.png")

NO_RESULT_TITLE = "I’m sorry. I could not find any active Cases"
BEGINNING_TITLE = "Here are the top cases I found:"


def case_link(base_url: str, case: Dict[str, Any]) -> str:
    return f"{base_url}/{case.get('Id')}"


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


def no_result_item() -> Dict[str, Any]:
    return {
        "itemDetails": {
            "title": NO_RESULT_TITLE,
            "description": "Please try again After SomeTime",
            "type": "text",
        }
    }


def case_item(case: Dict[str, Any], base_url: str, workflow_id: str) -> Dict[str, Any]:
    return {
        "itemDetails": {
            "id": str(uuid.uuid4()),
            "title": case.get("Subject"),
            "subtitle": case.get("Id"),
            "description": case.get("Description"),
            "shortDescription": case.get("Type"),
            "url": {"href": case_link(base_url, case)},
            "image": {"href": SALESFORCE_LOGO_URL},
            "workflowId": workflow_id,
            "workflowStep": "Complete",
            "type": "status",
        }
    }


def for_bot_objects(
    cases: List[Dict[str, Any]], base_url: str, workflow_id: str = WORKFLOW_PENDING_CASES
) -> List[Dict[str, Any]]:
    if not cases:
        return [no_result_item()]
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
    """What the bot can do, as listed on the discovery document."""
    return [
        {
            "children": [
                {
                    "itemDetails": {
                        "id": str(uuid.uuid4()),
                        "title": "What are my pending cases",
                        "description": "show new cases assigned to the user",
                        "actions": [
                            {
                                "title": "What are my pending cases",
                                "description": "show new cases assigned to the user",
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
