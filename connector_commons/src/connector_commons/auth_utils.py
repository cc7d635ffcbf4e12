# connector_commons/auth_utils.py

import logging
import time
from typing import Callable, Dict, Optional, Tuple

import requests
from fastapi import HTTPException, Request, status
from jose import jwt  # python-jose
from jose.exceptions import JOSEError, JWKError
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

PUBLIC_KEY_TTL_SECONDS = 3600
CLOCK_SKEW_SECONDS = 60

# Asymmetric algorithms only: no "none" and no HMAC with the public key as secret
ALLOWED_ALGORITHMS = ["RS256", "RS384", "RS512", "ES256", "ES384", "ES512"]


class PublicKeyFetchError(Exception):
    pass


class MfTokenClaims(BaseModel):
    prn: str
    tenant: Optional[str] = None
    eml: Optional[str] = None
    domain: Optional[str] = None
    sub: Optional[str] = None

    @property
    def username(self) -> str:
        index = self.prn.rfind("@")
        return self.prn[:index] if index >= 0 else self.prn

    @property
    def email(self) -> Optional[str]:
        return self.eml

    @property
    def tenant_id(self) -> Optional[str]:
        return self.tenant


def fetch_public_key(url: str) -> str:
    """Downloads the PEM encoded Mobile Flows public key."""
    response = requests.get(url, timeout=10)
    response.raise_for_status()
    return response.text


class PublicKeyCache:
    """
    Caches public keys per URL for a fixed time to live.

    Concurrent callers hitting an expired entry may each fetch the key;
    the last write wins and every fetched value is equally valid.
    """

    def __init__(
        self,
        url: str,
        ttl_seconds: int = PUBLIC_KEY_TTL_SECONDS,
        fetcher: Callable[[str], str] = fetch_public_key,
        clock: Callable[[], float] = time.time,
    ):
        self.url = url
        self.ttl_seconds = ttl_seconds
        self._fetcher = fetcher
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    def get(self, url: Optional[str] = None) -> str:
        url = url or self.url
        now = self._clock()
        entry = self._entries.get(url)
        if entry and entry[1] > now:
            return entry[0]

        try:
            key = self._fetcher(url)
        except requests.exceptions.RequestException as e:
            raise PublicKeyFetchError(f"Unable to retrieve public key: {e}") from e

        expires_at = now + self.ttl_seconds
        self._entries[url] = (key, expires_at)
        logger.info(
            "Updating pub key cache for url: %s, set to expire around: %s",
            url,
            time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(expires_at)),
        )
        return key

    def clear(self, url: Optional[str] = None) -> None:
        if url is None:
            self._entries.clear()
        else:
            self._entries.pop(url, None)


def verify_mf_jwt(token: str, public_key: str) -> MfTokenClaims:
    payload = jwt.decode(
        token,
        public_key,
        algorithms=ALLOWED_ALGORITHMS,
        options={"verify_aud": False, "leeway": CLOCK_SKEW_SECONDS},
    )
    return MfTokenClaims(**payload)


def get_mf_claims(request: Request) -> MfTokenClaims:
    """
    Dependency that validates the Mobile Flows JWT of the request.

    Declared sync so FastAPI runs it in the threadpool while the
    public key is being downloaded.
    """
    authorization = request.headers.get("authorization")
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
        )

    token = authorization.replace("Bearer ", "", 1).strip()
    cache: PublicKeyCache = request.app.state.public_key_cache
    try:
        claims = verify_mf_jwt(token, cache.get())
    except (JOSEError, ValidationError, PublicKeyFetchError) as e:
        if isinstance(e, JWKError):
            # Not a usable key (an error page served with 200), fetch it again next time
            logger.error("Public key from %s could not be loaded: %s", cache.url, e)
            cache.clear(cache.url)
        else:
            logger.warning("validate error %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Identity verification failed: {e}",
        ) from e

    request.state.mf_claims = claims
    return claims
