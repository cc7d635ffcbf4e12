"""Cards and case actions of the Microsoft Dynamics connector."""

import base64
import json
from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from dynamics_connector.config import Settings
from dynamics_connector.main import create_app
from dynamics_connector.services import lookup_date

INCIDENT = {
    "incidentid": "a72155ab-ae68-47a9-affa-d1132bd3081a",
    "ticketnumber": "CAS-01001",
    "title": "Printer jam",
    "description": "Tray 2 keeps jamming",
    "createdon": "2020-06-01T10:00:00Z",
    "_customerid_value@OData.Community.Display.V1.FormattedValue": "Acme",
    "prioritycode@OData.Community.Display.V1.FormattedValue": "High",
    "statuscode@OData.Community.Display.V1.FormattedValue": "In Progress",
}


class DynamicsBackend:
    def __init__(self):
        self.requests = []
        self.cases = [INCIDENT]
        self.fail_with = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            return httpx.Response(self.fail_with, json={"error": {"message": "nope"}})
        path = request.url.path
        if path.endswith("/WhoAmI"):
            return httpx.Response(200, json={"UserId": "user-1"})
        if path.endswith("/incidents"):
            return httpx.Response(200, json={"value": self.cases})
        return httpx.Response(204)


@pytest.fixture
def backend():
    return DynamicsBackend()


@pytest.fixture
def client(key_cache, backend):
    settings = Settings(MF_JWT_PUB_KEY_URI="https://mf.test/security/public-key")
    app = create_app(settings, public_key_cache=key_cache, http_transport=httpx.MockTransport(backend))
    return TestClient(app)


def test_cards_for_active_cases(client, connector_headers, backend):
    resp = client.post("/cards", headers=connector_headers)

    assert resp.status_code == 200
    [card] = resp.json()["objects"]
    assert card["header"] == {"title": "Printer jam", "subtitle": ["CAS-01001"]}
    expected_id = "jdoe@acme.com-a72155ab-ae68-47a9-affa-d1132bd3081a-2020-06-01T10:00:00Z"
    assert base64.b64decode(card["backend_id"]).decode() == expected_id
    assert [a["url"]["href"] for a in card["actions"]] == [
        "https://hero.test/connectors/abc123/action/addNotes",
        "https://hero.test/connectors/abc123/action/resolveCase",
        "https://hero.test/connectors/abc123/action/cancelCase",
    ]
    assert card["actions"][0]["request"] == {"caseId": INCIDENT["incidentid"]}

    query = backend.requests[1].url.params["$filter"]
    assert query.startswith("_ownerid_value eq user-1 and statecode eq 0 and createdon gt ")
    assert backend.requests[1].headers["Prefer"] == "odata.include-annotations=*"


def test_cards_without_cases(client, connector_headers, backend):
    backend.cases = []
    resp = client.post("/cards", headers=connector_headers)

    assert resp.status_code == 200
    assert resp.json() == {"objects": []}


def test_changed_case_gets_new_hash(client, connector_headers, backend):
    first = client.post("/cards", headers=connector_headers).json()["objects"][0]["hash"]
    backend.cases = [{**INCIDENT, "statuscode@OData.Community.Display.V1.FormattedValue": "On Hold"}]
    second = client.post("/cards", headers=connector_headers).json()["objects"][0]["hash"]

    assert first != second


def test_add_notes(client, connector_headers, backend):
    resp = client.post(
        "/action/addNotes",
        headers=connector_headers,
        data={"caseId": INCIDENT["incidentid"], "comments": "Adding new comment"},
    )

    assert resp.status_code == 200
    sent = json.loads(backend.requests[-1].content)
    assert sent == {
        "notetext": "Adding new comment",
        "objectid_incident@odata.bind": f"incidents({INCIDENT['incidentid']})",
    }


def test_resolve_case(client, connector_headers, backend):
    resp = client.post(
        "/action/resolveCase",
        headers=connector_headers,
        json={"caseId": INCIDENT["incidentid"], "comments": "Fixed"},
    )

    assert resp.status_code == 200
    sent = backend.requests[-1]
    assert sent.url.params["tag"] == "abortbpf"
    body = json.loads(sent.content)
    assert body["Status"] == 5
    assert body["Resolution"] == "Fixed"


def test_cancel_case(client, connector_headers, backend):
    resp = client.post("/action/cancelCase", headers=connector_headers, json={"caseId": "abc"})

    assert resp.status_code == 200
    sent = backend.requests[-1]
    assert sent.method == "PATCH"
    assert sent.url.path.endswith("/incidents(abc)")
    assert json.loads(sent.content) == {"statecode": 2, "statuscode": -1}


def test_add_notes_backend_401(client, connector_headers, backend):
    backend.fail_with = 401
    resp = client.post("/action/addNotes", headers=connector_headers, json={"caseId": "abc"})

    assert resp.status_code == 400
    assert resp.headers["X-Backend-Status"] == "401"
    assert resp.json()["method"] == "addNoteAboutCase"


def test_add_notes_backend_422(client, connector_headers, backend):
    backend.fail_with = 422
    resp = client.post("/action/addNotes", headers=connector_headers, json={"caseId": "abc"})

    assert resp.status_code == 500
    assert resp.headers["X-Backend-Status"] == "422"
    assert resp.json()["method"] == "addNoteAboutCase"


def test_lookup_date_is_one_hour_back():
    now = datetime(2020, 6, 1, 10, 30, tzinfo=timezone.utc)
    assert lookup_date(now) == "2020-06-01T09:30:00Z"
