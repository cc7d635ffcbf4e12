# connector_commons/payloads.py

from typing import Any, Dict

from fastapi import HTTPException, Request, status


async def read_payload(request: Request) -> Dict[str, Any]:
    """
    Body of a card action. The hub posts either JSON or url-encoded forms
    depending on the action definition, so both are accepted.
    """
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            body = await request.json()
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed JSON body",
            ) from e
        return body if isinstance(body, dict) else {}
    if "form" in content_type:
        form = await request.form()
        return {key: form.get(key) for key in form.keys()}
    return {}


def require_fields(payload: Dict[str, Any], *names: str) -> None:
    missing = [name for name in names if not payload.get(name)]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing required parameters ({', '.join(missing)})",
        )
