"""Service error normalization helpers."""
from __future__ import annotations

from panelfiles.core.exceptions import (
    BadGatewayError,
    BadRequestError,
    ConflictError,
    DomainError,
    NotFoundError,
    ServiceUnavailableError,
)
from panelfiles.services.remote_client import (
    RemoteAlreadyExistsError,
    RemoteAuthError,
    RemoteConnectionError,
    RemoteNotFoundError,
    RemoteResponseError,
)


def normalize_remote_error(exc: Exception, *, fallback: str = "File operation failed") -> DomainError:
    if isinstance(exc, DomainError):
        return exc
    message = str(exc) or fallback
    if isinstance(exc, RemoteAlreadyExistsError):
        return ConflictError(message)
    if isinstance(exc, RemoteNotFoundError):
        return NotFoundError(message)
    if isinstance(exc, RemoteAuthError):
        return BadGatewayError(f"Panel backend rejected credentials: {message}")
    if isinstance(exc, RemoteConnectionError):
        return ServiceUnavailableError(message)
    if isinstance(exc, RemoteResponseError):
        if 400 <= exc.status < 500:
            return BadRequestError(exc.message or fallback)
        return BadGatewayError(exc.message or fallback)
    return ServiceUnavailableError(message)
