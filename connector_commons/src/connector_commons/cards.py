# connector_commons/cards.py

"""
Card building helpers.

Connectors flatten each backend record into a "linearised" dict whose
keys are placeholder tokens (":case-title", ":backend_id", ...). A JSON
card template refers to the same tokens; rendering substitutes them and
drops every optional element whose tokens the record does not provide.

Template conventions:

- A string holding only one token is replaced by the raw value, so a
  token may expand to a list.
- Elements of a list (body fields, actions, user inputs) that reference
  an unknown token are dropped; so are dict entries.
- A dict of the form {"$each": ":token", "$item": {...}} expands to one
  rendered item per element of the list stored under ":token". Each
  element is itself a linearised dict. A dict holding such an entry
  (a SECTION field with its items) is dropped when the list is absent or
  empty.
"""

import base64
import hashlib
import json
import logging
import os
import re
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r":[a-z][a-z0-9_\-]*")


class _Unresolved(Exception):
    pass


def remove_empty_keys(record: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if v is not None and v != "" and v != []}


def stringify_values(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: stringify_values(v) for k, v in value.items()}
    if isinstance(value, list):
        return [stringify_values(v) for v in value]
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return value
    return str(value)


def card_hash(record: Mapping[str, Any]) -> str:
    """SHA-256 of the compact JSON of a linearised record, key order preserved."""
    serialised = json.dumps(record, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(serialised.encode("utf-8")).hexdigest()


def sha1_hex(*parts: Any) -> str:
    digest = hashlib.sha1()
    for part in parts:
        digest.update(str(part if part is not None else "").encode("utf-8"))
    return digest.hexdigest()


def encode_backend_id(*parts: Any) -> str:
    raw = "-".join(str(p) for p in parts)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def finalize_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Prunes empty values, stamps the record with its hash and turns
    every scalar into a string, ready to be rendered.
    """
    filtered = remove_empty_keys(record)
    filtered[":card_hash"] = card_hash(filtered)
    return stringify_values(filtered)


def _lookup(token: str, record: Mapping[str, Any], request_map: Mapping[str, Any]) -> Any:
    if token in record:
        return record[token]
    key = token[1:]
    if key in request_map:
        return request_map[key]
    raise _Unresolved(token)


def _render_string(text: str, record: Mapping[str, Any], request_map: Mapping[str, Any]) -> Any:
    if TOKEN_PATTERN.fullmatch(text):
        return _lookup(text, record, request_map)
    return TOKEN_PATTERN.sub(lambda m: str(_lookup(m.group(0), record, request_map)), text)


def _render(node: Any, record: Mapping[str, Any], request_map: Mapping[str, Any]) -> Any:
    if isinstance(node, str):
        return _render_string(node, record, request_map)

    if isinstance(node, list):
        rendered = []
        for element in node:
            try:
                value = _render(element, record, request_map)
            except _Unresolved:
                continue
            if isinstance(element, dict) and "$each" in element:
                rendered.extend(value)
            else:
                rendered.append(value)
        return rendered

    if isinstance(node, dict):
        if "$each" in node:
            items = _lookup(node["$each"], record, request_map)
            if not items:
                raise _Unresolved(node["$each"])
            return [_render(node["$item"], {**record, **item}, request_map) for item in items]

        rendered = {}
        for key, value in node.items():
            try:
                rendered[key] = _render(value, record, request_map)
            except _Unresolved:
                if isinstance(value, dict) and "$each" in value:
                    raise
                continue
        return rendered

    return node


def render_card(
    template: Mapping[str, Any],
    record: Mapping[str, Any],
    request_map: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    card = _render(dict(template), record, request_map or {})
    card["id"] = str(uuid.uuid4())
    return card


class CardTemplate:
    """
    A card template file, parsed once and re-read only when it changes
    on disk.
    """

    def __init__(self, path: str):
        self.path = path
        self._mtime: Optional[int] = None
        self._template: Optional[Dict[str, Any]] = None

    def load(self) -> Dict[str, Any]:
        mtime = os.stat(self.path).st_mtime_ns
        if self._template is None or mtime != self._mtime:
            with open(self.path, encoding="utf-8") as f:
                self._template = json.load(f)
            self._mtime = mtime
            logger.info("Loaded card template %s", self.path)
        return self._template

    def render(
        self,
        records: Iterable[Mapping[str, Any]],
        request_map: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, List[Dict[str, Any]]]:
        template = self.load()
        return {"objects": [render_card(template, r, request_map) for r in records]}
