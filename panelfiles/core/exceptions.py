"""Common exception helpers for the gateway services."""
from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base exception for application specific errors."""

    status_code = 500
    error_code = "app_error"
    default_detail = "An unexpected error occurred."

    def __init__(self, detail: str | None = None, *, extra: dict[str, Any] | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail
        self.extra = extra or {}


class DomainError(AppError):
    """Normalized domain error surfaced to API handlers."""


class BadRequestError(DomainError):
    status_code = 400
    error_code = "bad_request"
    default_detail = "Invalid request."


class NotFoundError(DomainError):
    status_code = 404
    error_code = "not_found"
    default_detail = "Resource not found."


class ConflictError(DomainError):
    status_code = 409
    error_code = "conflict"
    default_detail = "Request conflict."


class EditorBusyError(ConflictError):
    error_code = "editor_busy"
    default_detail = "A save is already in progress."


class EditorStateError(ConflictError):
    error_code = "editor_state"
    default_detail = "Editor session is not in a state that allows this action."


class TransferBusyError(ConflictError):
    error_code = "transfer_busy"
    default_detail = "Another transfer batch is still running."


class ServiceUnavailableError(DomainError):
    status_code = 503
    error_code = "service_unavailable"
    default_detail = "Service unavailable."


class BadGatewayError(DomainError):
    status_code = 502
    error_code = "bad_gateway"
    default_detail = "Upstream service failed."
