"""Learning cards and certificate handling of the Saba connector."""

import httpx
import pytest
from fastapi.testclient import TestClient

from saba_connector.backend_auth import (
    CertificateCache,
    InvalidServiceCredentials,
    read_service_credentials,
)
from saba_connector.cards import display_due_date
from saba_connector.config import Settings
from saba_connector.main import create_app

CERTIFICATE = "saba-cert-1"
EMPLOYEE_ID = "emplo000000000016551"

CURRICULUM_MODULE = {
    "deepLinkUrls": ["https://saba.test/curriculum/cur-1"],
    "paths": [
        {
            "name": "Default Path",
            "learningModules": [
                {
                    "name": "Module 1",
                    "learningInterventions": [
                        {"part_id": {"id": "cours-1", "displayName": "Safety Basics"}},
                        {"part_id": {"id": "cours-2", "displayName": "Fire Drills"}},
                    ],
                },
                {"name": "Empty Module", "learningInterventions": []},
            ],
        }
    ],
}

CERTIFICATION_MODULE = {
    "deepLinkUrls": ["https://saba.test/certification/cert-1"],
    "paths": [{"name": "Fast Track"}, {"name": "Full Track"}],
}

COURSE_MODULE = {"deepLinkUrls": ["https://saba.test/course/cours-9"]}


class SabaBackend:
    def __init__(self):
        self.requests = []
        self.logins = 0
        self.employees = [{"id": EMPLOYEE_ID}]
        self.revoked = False
        self.people_error = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/v1/login":
            if request.headers.get("user") != "svc" or request.headers.get("password") != "secret":
                return httpx.Response(500, json={"errorCode": -4, "errorMessage": "wrong credentials"})
            self.logins += 1
            return httpx.Response(200, json={"@type": "SabaCertificate", "certificate": CERTIFICATE})
        if self.revoked or request.headers.get("SabaCertificate") != CERTIFICATE:
            return httpx.Response(
                500, json={"errorCode": 123, "errorMessage": "(123) Invalid or expired Certificate"}
            )
        if path == "/v1/people":
            if self.people_error:
                return httpx.Response(500, json={"errorMessage": self.people_error})
            return httpx.Response(200, json={"results": self.employees})
        if path == "/v1/learning/heldlearningevent":
            if request.url.params["type"] == "curriculum":
                learning = {
                    "basicdetail": {
                        "curriculum": {"id": "cur-1", "displayName": "Onboarding"},
                        "status": {"displayName": "In Progress"},
                        "targetDate": "2020-07-01T00:00:00Z",
                    }
                }
            else:
                learning = {
                    "basicdetail": {
                        "certification_id": {"id": "cert-1", "displayName": "Forklift"},
                        "status": {"displayName": "Assigned"},
                    }
                }
            return httpx.Response(200, json={"results": [learning]})
        if path == f"/v1/people/{EMPLOYEE_ID}/enrollments/search":
            return httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "id": "regdw-1",
                            "offering_temp_id": {"id": "cours-1"},
                            "class_id": {"displayName": "Safety Basics"},
                        },
                        {
                            "id": "regdw-9",
                            "offering_temp_id": {"id": "cours-9"},
                            "class_id": {"displayName": "Excel"},
                        },
                    ]
                },
            )
        if path == "/v1/learningmodule/cur-1":
            return httpx.Response(200, json=CURRICULUM_MODULE)
        if path == "/v1/learningmodule/cert-1":
            return httpx.Response(200, json=CERTIFICATION_MODULE)
        if path == "/v1/learningmodule/cours-9":
            return httpx.Response(200, json=COURSE_MODULE)
        if path == "/v1/enrollments/regdw-9/sections:regdetail":
            return httpx.Response(
                200,
                json={
                    "registrationInfo": {"statusDescription": "Registered"},
                    "learningEventDetail": {"dueDate": 1593561600000},
                },
            )
        return httpx.Response(404, json={"errorMessage": "Cannot find component"})


@pytest.fixture
def backend():
    return SabaBackend()


@pytest.fixture
def cert_cache():
    return CertificateCache()


@pytest.fixture
def client(key_cache, backend, cert_cache):
    settings = Settings(MF_JWT_PUB_KEY_URI="https://mf.test/security/public-key")
    app = create_app(
        settings,
        public_key_cache=key_cache,
        http_transport=httpx.MockTransport(backend),
        certificate_cache=cert_cache,
    )
    return TestClient(app)


@pytest.fixture
def saba_headers(auth_header):
    return {
        **auth_header,
        "X-Connector-Base-Url": "https://saba.test",
        "X-Connector-Authorization": "svc:secret",
    }


def _fields(card):
    return {f["title"]: f for f in card["body"]["fields"]}


def test_discovery_points_to_card_requests(client):
    resp = client.get("/", headers={"x-forwarded-proto": "https", "x-forwarded-host": "saba.hero.test"})

    endpoint = resp.json()["object_types"]["card"]["endpoint"]["href"]
    assert endpoint == "https://saba.hero.test/api/cards/requests"


def test_cards_for_curriculum_certification_and_course(client, saba_headers, backend):
    resp = client.post("/api/cards/requests", headers=saba_headers)

    assert resp.status_code == 200
    curriculum, certification, course = resp.json()["objects"]

    fields = _fields(curriculum)
    assert curriculum["backend_id"] == "cur-1"
    assert fields["Curriculum Name"]["description"] == "Onboarding"
    assert fields["Due date"]["description"] == "2020-07-01"
    assert fields["Path Options"]["description"] == "Default Path"
    assert fields["Module 1"]["items"] == [
        {"type": "GENERAL", "title": "Course", "description": "Safety Basics"},
        {"type": "GENERAL", "title": "Course", "description": "Fire Drills"},
    ]
    assert "Empty Module" not in fields
    assert curriculum["actions"][0]["url"]["href"] == "https://saba.test/curriculum/cur-1"

    fields = _fields(certification)
    assert fields["Accreditation Name"]["description"] == "Forklift"
    assert fields["Due date"]["description"] == "---"
    assert fields["Path Options"]["description"] == "Fast Track, Full Track"
    assert "Module 1" not in fields

    # regdw-1 is part of the curriculum, so only regdw-9 gets its own card
    assert course["backend_id"] == "regdw-9"
    assert _fields(course)["Course Name"]["description"] == "Excel"
    assert _fields(course)["Progress"]["description"] == "Registered"
    assert _fields(course)["Due date"]["description"] == "2020-07-01"

    assert all(r.headers["SabaCertificate"] == CERTIFICATE for r in backend.requests[1:])
    assert backend.requests[1].url.params["q"] == "(username==jdoe@acme.com)"


def test_certificate_cached_per_tenant(client, saba_headers, backend):
    client.post("/api/cards/requests", headers=saba_headers)
    client.post("/api/cards/requests", headers=saba_headers)

    assert backend.logins == 1


def test_no_unique_employee(client, saba_headers, backend):
    backend.employees = [{"id": "a"}, {"id": "b"}]
    resp = client.post("/api/cards/requests", headers=saba_headers)

    assert resp.status_code == 200
    assert resp.json() == {"objects": []}


def test_revoked_certificate_is_cleared(client, saba_headers, backend, cert_cache):
    client.post("/api/cards/requests", headers=saba_headers)
    backend.revoked = True

    resp = client.post("/api/cards/requests", headers=saba_headers)

    assert resp.status_code == 400
    assert resp.headers["X-Backend-Status"] == "401"
    assert resp.json()["method"] == "handleCardRequest"
    assert cert_cache.get("acme") is None


def test_other_backend_failure(client, saba_headers, backend):
    backend.people_error = "something went wrong while processing"
    resp = client.post("/api/cards/requests", headers=saba_headers)

    assert resp.status_code == 500
    assert resp.headers["X-Backend-Status"] == "500"


def test_login_on_wrong_host(client, saba_headers):
    resp = client.post(
        "/api/cards/requests", headers={**saba_headers, "X-Connector-Base-Url": "https://saba.test/broken"}
    )

    assert resp.status_code == 400
    assert resp.json() == {
        "message": "Failed to acquire Saba certificate. Please Confirm service credentials are correct"
    }


def test_base_url_required(client, auth_header):
    resp = client.post(
        "/api/cards/requests", headers={**auth_header, "X-Connector-Authorization": "svc:secret"}
    )

    assert resp.status_code == 400
    assert resp.json() == {"message": "Backend API base URL is required"}


def test_malformed_credentials(client, saba_headers):
    resp = client.post(
        "/api/cards/requests", headers={**saba_headers, "X-Connector-Authorization": "Bearer abc"}
    )

    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Failed to acquire Saba certificate")


def test_wrong_credentials(client, saba_headers):
    resp = client.post(
        "/api/cards/requests", headers={**saba_headers, "X-Connector-Authorization": "svc:wrong"}
    )

    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Failed to acquire Saba certificate")


def test_jwt_checked_before_headers(client):
    resp = client.post("/api/cards/requests")

    assert resp.status_code == 401


def test_certificate_cache_expiry():
    now = [1000.0]
    cache = CertificateCache(ttl_seconds=60, clock=lambda: now[0])
    cache.put("acme", "cert")

    assert cache.get("acme") == "cert"
    now[0] += 61
    assert cache.get("acme") is None


def test_read_service_credentials():
    assert read_service_credentials("svc:secret") == ("svc", "secret")
    with pytest.raises(InvalidServiceCredentials):
        read_service_credentials("a:b:c")
    with pytest.raises(InvalidServiceCredentials):
        read_service_credentials(None)


def test_display_due_date():
    assert display_due_date(None) == "---"
    assert display_due_date(1593561600000) == "2020-07-01"
    assert display_due_date("2020-07-01T00:00:00Z") == "2020-07-01"
