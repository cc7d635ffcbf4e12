"""Approval cards and requests of the Jira Service Desk connector."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from jira_servicedesk_connector.cards import create_request_card, customer_request_card
from jira_servicedesk_connector.config import Settings
from jira_servicedesk_connector.main import create_app

ATLASSIAN = "https://atlassian.test"
API = f"{ATLASSIAN}/ex/jira/cloud-1/rest/servicedeskapi"


def customer_request(issue_key, status_date="2019-02-19T12:00:00-0800"):
    return {
        "issueId": "10069",
        "issueKey": issue_key,
        "requestType": {"name": "New mobile device"},
        "currentStatus": {"status": "Waiting for approval", "statusDate": {"iso8601": status_date}},
        "reporter": {"displayName": "Jane Doe"},
        "createdDate": {"friendly": "Today 12:00 PM"},
        "requestFieldValues": [
            {"fieldId": "summary", "value": "Need a new phone"},
            {"fieldId": "description", "value": "Dropped mine in the lake"},
        ],
        "_links": {"web": f"https://acme.atlassian.net/servicedesk/customer/portal/1/{issue_key}"},
    }


class JiraBackend:
    def __init__(self):
        self.requests = []
        self.resources = [
            {"id": "other", "scopes": ["read:jira-work"]},
            {"id": "cloud-1", "scopes": ["read:servicedesk-request", "write:servicedesk-request"]},
        ]
        self.pages = [
            {"isLastPage": False, "values": [customer_request("FSDP-68")]},
            {"isLastPage": True, "values": [customer_request("FSDP-69")]},
        ]
        self.approvals = [{"id": "7"}]
        self.fail_with = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        if url == f"{ATLASSIAN}/oauth/token/accessible-resources":
            return httpx.Response(200, json=self.resources)
        if self.fail_with:
            return httpx.Response(self.fail_with, json={"errorMessage": "nope"})
        if url == f"{API}/request" and request.method == "GET":
            start = int(request.url.params["start"])
            return httpx.Response(200, json=self.pages[0] if start == 0 else self.pages[1])
        if url == f"{API}/request" and request.method == "POST":
            return httpx.Response(201, json={"issueId": "10070", "issueKey": "FSDP-70"})
        if url == f"{API}/request/FSDP-68/approval":
            return httpx.Response(200, json={"values": self.approvals})
        if url == f"{API}/request/FSDP-68/approval/7":
            decision = json.loads(request.content)["decision"]
            return httpx.Response(200, json={"finalDecision": f"{decision}d"})
        if url == f"{API}/request/FSDP-68/comment":
            return httpx.Response(201, json={"id": "1000"})
        if url == f"{API}/servicedesk":
            return httpx.Response(
                200,
                json={"values": [{"id": "1", "projectId": "10000", "projectName": "IT", "projectKey": "IT", "extra": 1}]},
            )
        if url == f"{API}/servicedesk/3/requesttype":
            return httpx.Response(
                200,
                json={"values": [{"id": "14", "name": "New mobile device", "issueTypeId": "10102", "serviceDeskId": "3"}]},
            )
        return httpx.Response(404)


@pytest.fixture
def backend():
    return JiraBackend()


@pytest.fixture
def client(key_cache, backend):
    settings = Settings(
        MF_JWT_PUB_KEY_URI="https://mf.test/security/public-key", ATLASSIAN_API_SERVER=ATLASSIAN
    )
    app = create_app(settings, public_key_cache=key_cache, http_transport=httpx.MockTransport(backend))
    return TestClient(app)


@pytest.fixture
def jira_headers(auth_header):
    return {
        **auth_header,
        "X-Connector-Authorization": "Bearer jira-token",
        "X-Routing-Prefix": "https://hero.test/connectors/jira/",
    }


def test_cards_include_create_card_and_every_page(client, jira_headers):
    resp = client.post("/cards", headers=jira_headers)

    assert resp.status_code == 200
    create, first, second = resp.json()["objects"]
    assert create["header"]["title"] == "Create Customer Request"
    assert create["backend_id"] == "create_card"
    assert create["actions"][0]["url"]["href"] == "https://hero.test/connectors/jira/createCustomerRequest"
    assert first["backend_id"] == "FSDP-68"
    assert second["backend_id"] == "FSDP-69"
    assert first["header"]["title"] == "Need a new phone"
    assert [a["url"]["href"] for a in first["actions"]] == [
        "https://hero.test/connectors/jira/approvalAction",
        "https://hero.test/connectors/jira/approvalAction",
    ]


def test_no_cloud_id(client, jira_headers, backend):
    backend.resources = [{"id": "other", "scopes": ["read:jira-work"]}]
    resp = client.post("/cards", headers=jira_headers)

    assert resp.status_code == 500
    assert resp.json() == {"error": "Could not find a valid cloud ID for this account"}


def test_cards_backend_401(client, jira_headers, backend):
    backend.fail_with = 401
    resp = client.post("/cards", headers=jira_headers)

    assert resp.status_code == 400
    assert resp.headers["X-Backend-Status"] == "401"
    assert resp.json()["method"] == "handleCards"


def test_connector_authorization_required(client, auth_header):
    resp = client.post("/cards", headers=auth_header)

    assert resp.status_code == 400
    assert resp.json() == {"message": "The x-connector-authorization is required"}


def test_decline_posts_comment_first(client, jira_headers, backend):
    resp = client.post(
        "/approvalAction",
        headers=jira_headers,
        data={"issueKey": "FSDP-68", "decision": "decline", "comment": "Not in budget"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"status": "declined"}
    comment, decision = backend.requests[-2:]
    assert json.loads(comment.content) == {"body": "Not in budget", "public": True}
    assert json.loads(decision.content) == {"decision": "decline"}


def test_approval_not_found(client, jira_headers, backend):
    backend.approvals = []
    resp = client.post(
        "/approvalAction", headers=jira_headers, json={"issueKey": "FSDP-68", "decision": "approve"}
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "no approval found"}


def test_create_customer_request_defaults(client, jira_headers, backend):
    resp = client.post(
        "/createCustomerRequest", headers=jira_headers, data={"summary": "VPN down", "details": "Since 9am"}
    )

    assert resp.status_code == 200
    assert resp.json() == {"issueId": "10070", "issueKey": "FSDP-70"}
    assert json.loads(backend.requests[-1].content) == {
        "serviceDeskId": 1,
        "requestTypeId": 1,
        "requestFieldValues": {"summary": "VPN down", "description": "Since 9am"},
    }


def test_list_service_desks(client, jira_headers):
    resp = client.post("/listServiceDesks", headers=jira_headers)

    assert resp.json() == [{"id": "1", "projectId": "10000", "projectName": "IT", "projectKey": "IT"}]


def test_list_request_types(client, jira_headers):
    resp = client.post("/listRequestTypes", headers=jira_headers, json={"serviceDeskId": 3})

    assert resp.json() == [
        {"id": "14", "name": "New mobile device", "issueTypeId": "10102", "serviceDeskId": "3"}
    ]


def test_set_hash_changes_create_card(client, jira_headers, auth_header):
    before = client.post("/cards", headers=jira_headers).json()["objects"][0]

    resp = client.post("/setHash", headers=auth_header, json={"hash": "create_card_v2"})
    after = client.post("/cards", headers=jira_headers).json()["objects"][0]

    assert resp.json() == {"new_hash": "create_card_v2"}
    assert after["backend_id"] == "create_card_v2"
    assert after["hash"] != before["hash"]


def test_set_hash_requires_token(client):
    resp = client.post("/setHash", json={"hash": "x"})

    assert resp.status_code == 401


def test_card_hash_follows_status_date():
    first = customer_request_card(customer_request("FSDP-1"), "https://x")
    again = customer_request_card(customer_request("FSDP-1"), "https://x")
    moved = customer_request_card(customer_request("FSDP-1", "2019-02-20T08:00:00-0800"), "https://x")

    assert first["hash"] == again["hash"]
    assert first["id"] != again["id"]
    assert first["hash"] != moved["hash"]
    assert create_request_card("https://x")["hash"] == create_request_card("https://x", "create_card")["hash"]
