"""Shared fixtures for the connector test suites."""

import time

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from connector_commons.auth_utils import PublicKeyCache

PUBLIC_KEY_URL = "https://mf.test/security/public-key"
BACKEND_URL = "https://backend.test"


@pytest.fixture(scope="session")
def rsa_keys():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture
def make_token(rsa_keys):
    def _make(
        prn="jdoe@acme",
        eml="jdoe@acme.com",
        tenant="acme",
        expires_in=3600,
        algorithm="RS256",
        **extra,
    ):
        now = int(time.time())
        claims = {
            "prn": prn,
            "eml": eml,
            "tenant": tenant,
            "domain": "acme.com",
            "iat": now,
            "exp": now + expires_in,
            **extra,
        }
        return jwt.encode(claims, rsa_keys[0], algorithm=algorithm)

    return _make


@pytest.fixture
def key_cache(rsa_keys):
    return PublicKeyCache(PUBLIC_KEY_URL, fetcher=lambda url: rsa_keys[1])


@pytest.fixture
def auth_header(make_token):
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def connector_headers(auth_header):
    return {
        **auth_header,
        "X-Connector-Base-Url": BACKEND_URL,
        "X-Connector-Authorization": "Bearer backend-token",
        "X-Routing-Prefix": "https://hero.test/connectors/abc123/",
    }
