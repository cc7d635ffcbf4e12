# linkedin_learning_connector/card_objects.py

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from connector_commons.cards import sha1_hex
from connector_commons.discovery import connector_image_url

from .bot_objects import contributor_names, value_at

LINKEDIN_LOGO_URL = connector_image_url("hub-linkedin-learning.png")


def readable_duration(seconds: Optional[int]) -> str:
    """Formats a course duration the way the LinkedIn site does, e.g. "1 day, 2h 5m"."""
    seconds = int(seconds or 0)
    days, seconds = divmod(seconds, 24 * 60 * 60)
    hours, seconds = divmod(seconds, 60 * 60)
    minutes = seconds // 60
    prefix = f"{days} day, " if days > 0 else ""
    return f"{prefix}{hours}h {minutes}m"


def _iso_millis(millis: Optional[int]) -> Optional[str]:
    if millis is None:
        return None
    moment = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _categories(classifications: List[Dict[str, Any]]) -> str:
    return ", ".join(
        value_at(c, "associatedClassification", "name", "value") or "" for c in classifications or []
    )


def course_card(course: Dict[str, Any]) -> Dict[str, Any]:
    details = course.get("details") or {}
    web_launch = value_at(details, "urls", "webLaunch")
    backend_id = course.get("urn")
    return {
        "id": str(uuid.uuid4()),
        "name": "LinkedIn Learning",
        "creation_date": datetime.now(timezone.utc).isoformat(),
        "backend_id": backend_id,
        "hash": sha1_hex(backend_id),
        "header": {
            "title": "LinkedIn Learning: New course available",
            "subtitle": ["View course"],
            "links": {"title": web_launch, "subtitle": [web_launch]},
        },
        "image": {"href": LINKEDIN_LOGO_URL},
        "body": {
            "fields": [
                {"type": "GENERAL", "title": "Title", "description": value_at(course, "title", "value")},
                {
                    "type": "GENERAL",
                    "title": "Instructor",
                    "description": contributor_names(details.get("contributors")),
                },
                {
                    "type": "GENERAL",
                    "title": "Duration",
                    "description": readable_duration(value_at(details, "timeToComplete", "duration")),
                },
                {
                    "type": "SECTION",
                    "title": "About Course",
                    "items": [
                        {
                            "type": "GENERAL",
                            "title": "Description",
                            "description": value_at(details, "description", "value"),
                        },
                        {
                            "type": "GENERAL",
                            "title": "Category",
                            "description": _categories(details.get("classifications")),
                        },
                        {
                            "type": "GENERAL",
                            "title": "Released",
                            "description": _iso_millis(details.get("publishedAt")),
                        },
                        {
                            "type": "GENERAL",
                            "title": "Updated at",
                            "description": _iso_millis(details.get("lastUpdatedAt")),
                        },
                        {"type": "GENERAL", "title": "Difficulty", "description": details.get("level")},
                    ],
                },
            ]
        },
    }


def for_card_objects(courses: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [course_card(course) for course in courses]
