# connector_commons/errors.py

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class BackendError(Exception):
    """A backend API answered with a non-success status."""

    def __init__(self, status_code: Optional[int], message: str, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.body = body

    @property
    def backend_status(self) -> str:
        return str(self.status_code) if self.status_code else "unknown"


class BackendUnauthorizedError(BackendError):
    """The backend rejected the connector credentials (revoked or expired token)."""

    def __init__(self, message: str = "Unauthorized", body: Any = None):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, body)


class UnknownBackendError(BackendError):
    """The backend could not be reached or answered something unusable."""

    def __init__(self, message: str, body: Any = None):
        super().__init__(None, message, body)


def prepare_error_response(error: BackendError, method: str) -> HTTPException:
    """
    Maps a backend failure onto the response the hub expects.

    A backend 401 means the connector credentials must be renewed, which
    the hub recognises as a 400 carrying X-Backend-Status 401. Anything
    else is reported as a 500 with the backend status passed through.
    """
    if isinstance(error, BackendUnauthorizedError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(
        status_code=status_code,
        detail={"method": method, "error": error.message},
        headers={"X-Backend-Status": error.backend_status},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, (dict, list)):
        content = exc.detail
    else:
        content = {"message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)
