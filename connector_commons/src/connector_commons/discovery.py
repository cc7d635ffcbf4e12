# connector_commons/discovery.py

"""
URL helpers for discovery documents and card action links.

The connectors run behind the Mobile Flows proxy, so the externally
visible URL has to be rebuilt from the X-Forwarded-* headers.
"""

from typing import Dict, Optional

from fastapi import Request

CARD_SCHEMA_DOC_URL = (
    "https://vmwaresamples.github.io/card-connectors-guide/#schema/herocard-response-schema.json"
)
CONNECTOR_IMAGES_URL = "https://s3.amazonaws.com/vmw-mf-assets/connector-images"


def connector_image_url(image_name: str) -> str:
    return f"{CONNECTOR_IMAGES_URL}/{image_name}"


def derived_base_url(request: Request) -> str:
    headers = request.headers
    host = headers.get("x-forwarded-host") or headers.get("host") or request.url.netloc
    proto = headers.get("x-forwarded-proto") or request.url.scheme
    forwarded_port = headers.get("x-forwarded-port")
    forwarded_prefix = headers.get("x-forwarded-prefix") or ""

    if forwarded_port and forwarded_prefix:
        return f"{proto}://{host}:{forwarded_port}{forwarded_prefix}"
    return f"{proto}://{host}"


def url_join(*parts: str) -> str:
    """Joins URL fragments with exactly one slash between non-empty parts."""
    pieces = [p for p in parts if p]
    if not pieces:
        return ""
    joined = pieces[0].rstrip("/")
    for piece in pieces[1:]:
        joined = f"{joined}/{piece.strip('/')}" if piece.strip("/") else joined
    if parts[-1].endswith("/") and not joined.endswith("/"):
        joined += "/"
    return joined


def prepare_url(request: Request, path: str) -> str:
    """Builds the URL the hub should call back for a card action."""
    routing_prefix = request.headers.get("x-routing-prefix") or ""
    forwarded_prefix = request.headers.get("x-forwarded-prefix") or ""
    return url_join(routing_prefix, forwarded_prefix, path)


def card_discovery(
    request: Request,
    image_url: str,
    card_path: str = "/cards",
    actions: Optional[Dict] = None,
) -> Dict:
    """Discovery document of a card connector."""
    base_url = derived_base_url(request)
    document = {
        "image": {"href": image_url},
        "object_types": {
            "card": {
                "pollable": True,
                "doc": {"href": CARD_SCHEMA_DOC_URL},
                "endpoint": {"href": f"{base_url}{card_path}"},
            }
        },
    }
    if actions:
        document["actions"] = actions
    return document


def routing_prefix(request: Request) -> str:
    """Prefix for links the hub follows back into this connector, ending with a slash."""
    prefix = request.headers.get("x-routing-prefix")
    if prefix:
        return url_join(prefix, request.headers.get("x-forwarded-prefix") or "", "/")
    return url_join(derived_base_url(request), "/")
