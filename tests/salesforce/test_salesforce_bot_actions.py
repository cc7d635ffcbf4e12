"""Chatbot pending cases of the Salesforce connector."""

import httpx
import pytest
from fastapi.testclient import TestClient

from salesforce_connector.config import Settings
from salesforce_connector.main import create_app

BACKEND = "https://backend.test"


def new_case(case_id, subject):
    return {
        "Id": case_id,
        "Subject": subject,
        "Description": f"{subject}, details inside",
        "Type": "Mechanical",
        "Status": "New",
    }


class SalesforceBotBackend:
    def __init__(self):
        self.requests = []
        self.cases = [new_case("5006g00000AboHzAAJ", "Seeking guidance on electrical wiring")]
        self.status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(self.status, text="Session expired or invalid")
        if request.url.path == "/services/oauth2/userinfo":
            return httpx.Response(200, json={"user_id": "005-user"})
        return httpx.Response(200, json={"totalSize": len(self.cases), "records": self.cases})


@pytest.fixture
def backend():
    return SalesforceBotBackend()


@pytest.fixture
def client(key_cache, backend):
    settings = Settings(MF_JWT_PUB_KEY_URI="https://mf.test/security/public-key")
    app = create_app(settings, public_key_cache=key_cache, http_transport=httpx.MockTransport(backend))
    return TestClient(app)


def test_discovery_lists_pending_cases(client):
    resp = client.get("/", headers={"X-Routing-Prefix": "https://hero.test/connectors/abc123/"})

    [capability] = resp.json()["objects"][0]["children"]
    action = capability["itemDetails"]["actions"][0]
    assert action["url"]["href"] == "https://hero.test/connectors/abc123/bot/actions/pendingCases"
    assert action["type"] == "GET"


def test_single_case(client, connector_headers, backend):
    resp = client.get("/bot/actions/pendingCases", headers=connector_headers)

    assert resp.status_code == 200
    first, item, last = resp.json()["objects"]
    assert first["itemDetails"]["title"] == "Here are the top cases I found:"
    details = item["itemDetails"]
    assert details["title"] == "Seeking guidance on electrical wiring"
    assert details["subtitle"] == "5006g00000AboHzAAJ"
    assert details["shortDescription"] == "Mechanical"
    assert details["url"] == {"href": f"{BACKEND}/5006g00000AboHzAAJ"}
    assert details["type"] == "status"
    assert details["workflowStep"] == "Complete"
    assert last["itemDetails"]["title"].endswith(f"you can view more cases here: {BACKEND}/")

    soql = backend.requests[1].url.params["q"]
    assert "OwnerId = '005-user'" in soql


def test_multiple_cases(client, connector_headers, backend):
    backend.cases = [new_case("500-a", "First"), new_case("500-b", "Second"), new_case("500-c", "Third")]
    resp = client.post("/bot/actions/pendingCases", headers=connector_headers)

    objects = resp.json()["objects"]
    assert len(objects) == 5
    assert [o["itemDetails"]["url"]["href"] for o in objects[1:-1]] == [
        f"{BACKEND}/500-a",
        f"{BACKEND}/500-b",
        f"{BACKEND}/500-c",
    ]
    assert len({o["itemDetails"]["id"] for o in objects}) == 5
    # names of contacts and accounts are only needed by the hub cards
    assert len(backend.requests) == 2


def test_no_cases(client, connector_headers, backend):
    backend.cases = []
    resp = client.get("/bot/actions/pendingCases", headers=connector_headers)

    assert resp.status_code == 200
    assert resp.json() == {
        "objects": [
            {
                "itemDetails": {
                    "title": "I’m sorry. I could not find any active Cases",
                    "description": "Please try again After SomeTime",
                    "type": "text",
                }
            }
        ]
    }


def test_base_url_required(client, connector_headers):
    headers = {k: v for k, v in connector_headers.items() if k != "X-Connector-Base-Url"}
    resp = client.get("/bot/actions/pendingCases", headers=headers)

    assert resp.status_code == 400
    assert resp.json() == {"message": "The x-connector-base-url is required"}


def test_expired_token(client, connector_headers, backend):
    backend.status = 401
    resp = client.get("/bot/actions/pendingCases", headers=connector_headers)

    assert resp.status_code == 400
    assert resp.headers["X-Backend-Status"] == "401"
    assert resp.json()["method"] == "getPendingCases"
