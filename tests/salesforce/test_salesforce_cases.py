"""Cards and case actions of the Salesforce connector."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from salesforce_connector.config import Settings
from salesforce_connector.main import create_app
from salesforce_connector.services import is_salesforce_unauthorized

BACKEND = "https://backend.test"

CASE = {
    "Id": "5006g00000AboHzAAJ",
    "ContactId": "003-contact",
    "AccountId": "001-account",
    "Priority": "High",
    "Reason": "Installation",
    "Subject": "Generator won't start",
    "Status": "New",
    "Type": "Electrical",
    "CaseNumber": "00001026",
    "Description": "It hums but does nothing",
    "CreatedDate": "2020-06-01T10:00:00.000+0000",
}


class SalesforceBackend:
    def __init__(self):
        self.requests = []
        self.cases = [CASE, {**CASE, "Id": "5006g-no-links", "ContactId": None, "AccountId": None}]
        self.fail_with = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            status, text = self.fail_with
            return httpx.Response(status, text=text)
        path = request.url.path
        if path == "/services/oauth2/userinfo":
            return httpx.Response(200, json={"user_id": "005-user"})
        if path == "/services/data/v47.0/query":
            soql = request.url.params["q"]
            if "from case" in soql:
                return httpx.Response(200, json={"records": self.cases})
            if "from contact" in soql:
                return httpx.Response(200, json={"records": [{"Name": "Rose Gonzalez"}]})
            if "from account" in soql:
                return httpx.Response(200, json={"records": [{"Name": "Edge Communications"}]})
        return httpx.Response(204)


@pytest.fixture
def backend():
    return SalesforceBackend()


@pytest.fixture
def client(key_cache, backend):
    settings = Settings(MF_JWT_PUB_KEY_URI="https://mf.test/security/public-key")
    app = create_app(settings, public_key_cache=key_cache, http_transport=httpx.MockTransport(backend))
    return TestClient(app)


def _fields(card):
    return {f["title"]: f["description"] for f in card["body"]["fields"]}


def test_cards_for_new_cases(client, connector_headers, backend):
    resp = client.post("/cards", headers=connector_headers)

    assert resp.status_code == 200
    first, second = resp.json()["objects"]
    assert first["header"]["title"] == "Generator won't start"
    assert first["header"]["links"]["title"] == f"{BACKEND}/5006g00000AboHzAAJ"
    assert _fields(first)["Account"] == "Edge Communications"
    assert _fields(first)["Contact"] == "Rose Gonzalez"
    assert "Account" not in _fields(second)
    assert "Contact" not in _fields(second)
    assert first["actions"][1]["url"]["href"] == "https://hero.test/connectors/abc123/actions/updateStatus"
    assert first["actions"][2]["request"] == {"caseId": "5006g00000AboHzAAJ", "actionType": "Closed"}

    case_query = backend.requests[1].url.params["q"]
    assert "status = 'New'" in case_query
    assert "OwnerId = '005-user'" in case_query


def test_cards_without_new_cases(client, connector_headers, backend):
    backend.cases = []
    resp = client.post("/cards", headers=connector_headers)

    assert resp.status_code == 200
    assert resp.json() == {"objects": []}


def test_cards_bad_oauth_token(client, connector_headers, backend):
    backend.fail_with = (403, "Bad_OAuth_Token")
    resp = client.post("/cards", headers=connector_headers)

    assert resp.status_code == 400
    assert resp.headers["X-Backend-Status"] == "401"
    assert resp.json()["method"] == "cardsController"


def test_add_comment(client, connector_headers, backend):
    resp = client.post(
        "/actions/addComment",
        headers=connector_headers,
        data={"caseId": CASE["Id"], "comments": "Adding Test comment"},
    )

    assert resp.status_code == 200
    sent = backend.requests[-1]
    assert sent.url.path == "/services/data/v47.0/chatter/feed-elements"
    assert json.loads(sent.content) == {
        "body": {"messageSegments": [{"type": "Text", "text": "Adding Test comment"}]},
        "feedElementType": "FeedItem",
        "subjectId": CASE["Id"],
    }


def test_add_comment_backend_422(client, connector_headers, backend):
    backend.fail_with = (422, "nope")
    resp = client.post(
        "/actions/addComment", headers=connector_headers, json={"caseId": "x", "comments": "y"}
    )

    assert resp.status_code == 500
    assert resp.headers["X-Backend-Status"] == "422"
    assert resp.json()["method"] == "postComment"


def test_update_status(client, connector_headers, backend):
    resp = client.post(
        "/actions/updateStatus",
        headers=connector_headers,
        json={"caseId": CASE["Id"], "actionType": "On Hold"},
    )

    assert resp.status_code == 200
    sent = backend.requests[-1]
    assert sent.method == "PATCH"
    assert sent.url.path == f"/services/data/v47.0/sobjects/Case/{CASE['Id']}"
    assert json.loads(sent.content) == {"Status": "On Hold"}


def test_update_status_requires_action_type(client, connector_headers):
    resp = client.post("/actions/updateStatus", headers=connector_headers, json={"caseId": "x"})

    assert resp.status_code == 400


@pytest.mark.parametrize(
    "status, text, expected",
    [
        (401, "", True),
        (403, "Bad_OAuth_Token", True),
        (403, "MISSING_OAUTH_TOKEN", True),
        (403, "REQUEST_LIMIT_EXCEEDED", False),
        (404, "Bad_OAuth_Token", False),
    ],
)
def test_unauthorized_predicate(status, text, expected):
    assert is_salesforce_unauthorized(httpx.Response(status, text=text)) is expected
