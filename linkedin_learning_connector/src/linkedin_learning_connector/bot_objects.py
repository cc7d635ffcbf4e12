# linkedin_learning_connector/bot_objects.py

"""Chatbot objects built from LinkedIn Learning courses."""

import uuid
from typing import Any, Dict, List

LEARNING_HOME_URL = "https://www.linkedin.com/learning/"

WORKFLOW_USER_TOP_PICKS = "vmw_LINKEDIN_LEARNING_TOP_PICKS"
WORKFLOW_NEW_COURSES = "vmw_LINKEDIN_LEARNING_NEW_COURSES"
WORKFLOW_KEYWORD_SEARCH = "vmw_LINKEDIN_LEARNING_KEYWORD_SEARCH"

NO_RESULT_TITLE = (
    "I’m sorry. I could not find any courses related to that search. "
    f"You can view more courses here: {LEARNING_HOME_URL}"
)
BEGINNING_TITLE = "Here are the top courses I found:"
END_TITLE = (
    "Did you find what you’re looking for? If not, "
    f"you can view more courses here: {LEARNING_HOME_URL}"
)


def value_at(node: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def contributor_names(contributors: List[Dict[str, Any]]) -> str:
    return ", ".join(value_at(c, "name", "value") or "" for c in contributors or [])


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
            "description": "Please try again with different search",
            "type": "text",
        }
    }


def course_item(course: Dict[str, Any], workflow_id: str) -> Dict[str, Any]:
    details = course.get("details") or {}
    web_launch = value_at(details, "urls", "webLaunch")
    return {
        "itemDetails": {
            "id": str(uuid.uuid4()),
            "title": f"{value_at(course, 'title', 'value')} {web_launch}",
            "subtitle": contributor_names(details.get("contributors")),
            "description": value_at(details, "description", "value"),
            "shortDescription": value_at(details, "shortDescription", "value"),
            "url": {"href": web_launch},
            "image": {"href": value_at(details, "images", "primary")},
            "workflowId": workflow_id,
            "workflowStep": "Complete",
            "type": "text",
        }
    }


def for_bot_objects(courses: List[Dict[str, Any]], workflow_id: str) -> List[Dict[str, Any]]:
    if not courses:
        return [no_result_item()]
    objects = [course_item(course, workflow_id) for course in courses]
    return [_text_item(BEGINNING_TITLE, workflow_id), *objects, _text_item(END_TITLE, workflow_id)]


def _action(title: str, description: str, href: str, method: str = "GET") -> Dict[str, Any]:
    return {
        "title": title,
        "description": description,
        "type": method,
        "url": {"href": href},
        "headers": {},
        "userInput": [],
    }


def capabilities(routing_prefix: str) -> List[Dict[str, Any]]:
    """What the bot can do, as listed on the discovery document."""
    keyword_action = _action(
        "Are there any trainings available for keyword",
        "show trainings based on keyword search of skill, subject, or software",
        f"{routing_prefix}bot/actions/keyword-search",
        method="POST",
    )
    keyword_action["headers"] = {"Content-Type": "application/x-www-form-urlencoded"}
    keyword_action["userInput"] = [
        {
            "id": "description",
            "label": "What skill, subject, or software would you like me to search courses for?",
            "format": "textarea",
            "minLength": 1,
            "maxLength": 150,
        }
    ]
    return [
        {
            "children": [
                {
                    "itemDetails": {
                        "id": str(uuid.uuid4()),
                        "title": "What trainings are available to me",
                        "description": "show top picks for user",
                        "actions": [
                            _action(
                                "What trainings are available to me",
                                "show user top pick courses",
                                f"{routing_prefix}bot/actions/options-catalog",
                            )
                        ],
                        "workflowId": WORKFLOW_USER_TOP_PICKS,
                    }
                },
                {
                    "itemDetails": {
                        "id": str(uuid.uuid4()),
                        "title": "Are there any trainings available for keyword",
                        "description": "show trainings based on keyword search of skill, subject, or software",
                        "actions": [keyword_action],
                        "workflowId": WORKFLOW_KEYWORD_SEARCH,
                    }
                },
            ]
        }
    ]


def options_catalog(routing_template: str) -> List[Dict[str, Any]]:
    prefix = routing_template.replace("INSERT_OBJECT_TYPE", "botDiscovery")
    return [
        {
            "itemDetails": {
                "id": str(uuid.uuid4()),
                "title": "Currently Trending",
                "description": "Get top picks courses for users",
                "workflowStep": "Incomplete",
                "workflowId": WORKFLOW_USER_TOP_PICKS,
                "type": "button",
                "actions": [
                    _action(
                        "Currently Trending",
                        "Get top picks courses for users",
                        f"{prefix}bot/actions/top-picks",
                    )
                ],
            }
        },
        {
            "itemDetails": {
                "id": str(uuid.uuid4()),
                "title": "New Courses",
                "description": "Show Options to user",
                "workflowStep": "Incomplete",
                "workflowId": WORKFLOW_NEW_COURSES,
                "type": "button",
                "actions": [
                    _action(
                        "New Courses",
                        "Get the latest courses",
                        f"{prefix}bot/actions/new-courses",
                    )
                ],
            }
        },
    ]
