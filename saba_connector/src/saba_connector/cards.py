# saba_connector/cards.py

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from connector_commons.cards import sha1_hex
from connector_commons.discovery import connector_image_url

IMAGE_URL = connector_image_url("hub-saba.png")
CARD_TITLE = "Saba - New learning available"
NO_DUE_DATE = "---"


def display_due_date(due_date: Any) -> str:
    """Calendar day (UTC) of a Saba due date given as epoch millis or an ISO timestamp."""
    if not due_date:
        return NO_DUE_DATE
    if isinstance(due_date, (int, float)):
        return datetime.fromtimestamp(due_date / 1000, tz=timezone.utc).date().isoformat()
    text = str(due_date)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text[:10]
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def learning_parts(learning_module: Mapping[str, Any]) -> List[str]:
    """Ids of every course that belongs to a curriculum or certification."""
    return [
        intervention["part_id"]["id"]
        for path in learning_module.get("paths") or []
        for module in path.get("learningModules") or []
        for intervention in module.get("learningInterventions") or []
    ]


def _general(title: str, description: Any) -> Dict[str, Any]:
    return {"type": "GENERAL", "title": title, "description": description}


def _module_section(path_module: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    items = [
        _general("Course", intervention["part_id"].get("displayName"))
        for intervention in path_module.get("learningInterventions") or []
    ]
    if not items:
        return None
    return {"type": "SECTION", "title": path_module.get("name"), "items": items}


def _path_fields(learning_module: Mapping[str, Any]) -> List[Dict[str, Any]]:
    paths = learning_module.get("paths")
    if not paths:
        return []
    fields = [_general("Path Options", ", ".join(p.get("name") or "" for p in paths))]
    # Module sections only for single path learnings, to keep the card short
    if len(paths) == 1:
        sections = (_module_section(m) for m in paths[0].get("learningModules") or [])
        fields.extend(s for s in sections if s)
    return fields


def _deep_link(learning_module: Mapping[str, Any]) -> Optional[str]:
    links = learning_module.get("deepLinkUrls") or []
    return links[0] if links else None


def _card(
    backend_id: str,
    name_title: str,
    name: str,
    progress: str,
    due_date: Any,
    deep_link: Optional[str],
) -> Dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "backend_id": backend_id,
        "hash": sha1_hex(backend_id, name, progress, due_date, deep_link),
        "header": {"title": CARD_TITLE},
        "image": {"href": IMAGE_URL},
        "body": {
            "fields": [
                _general(name_title, name),
                _general("Progress", progress),
                _general("Due date", display_due_date(due_date)),
            ]
        },
        "actions": [
            {
                "id": str(uuid.uuid4()),
                "action_key": "OPEN_IN",
                "label": "Open learning",
                "completed_label": "Open learning",
                "type": "GET",
                "primary": True,
                "remove_card_on_completion": False,
                "allow_repeated": True,
                "url": {"href": deep_link},
            }
        ],
    }


def curriculum_card(curriculum: Mapping[str, Any], learning_module: Mapping[str, Any]) -> Dict[str, Any]:
    detail = curriculum["basicdetail"]
    card = _card(
        detail["curriculum"]["id"],
        "Curriculum Name",
        detail["curriculum"].get("displayName"),
        (detail.get("status") or {}).get("displayName"),
        detail.get("targetDate"),
        _deep_link(learning_module),
    )
    card["body"]["fields"].extend(_path_fields(learning_module))
    return card


def certification_card(
    certification: Mapping[str, Any], learning_module: Mapping[str, Any]
) -> Dict[str, Any]:
    detail = certification["basicdetail"]
    card = _card(
        detail["certification_id"]["id"],
        "Accreditation Name",
        detail["certification_id"].get("displayName"),
        (detail.get("status") or {}).get("displayName"),
        detail.get("targetDate"),
        _deep_link(learning_module),
    )
    card["body"]["fields"].extend(_path_fields(learning_module))
    return card


def enrollment_card(
    enrollment: Mapping[str, Any],
    learning_module: Mapping[str, Any],
    enrollment_details: Mapping[str, Any],
) -> Dict[str, Any]:
    return _card(
        enrollment["id"],
        "Course Name",
        (enrollment.get("class_id") or {}).get("displayName"),
        (enrollment_details.get("registrationInfo") or {}).get("statusDescription"),
        (enrollment_details.get("learningEventDetail") or {}).get("dueDate"),
        _deep_link(learning_module),
    )
