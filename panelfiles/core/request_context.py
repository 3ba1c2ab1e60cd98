"""Request context helpers for logging."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_server_id: ContextVar[str | None] = ContextVar("server_id", default=None)


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str | None:
    return _request_id.get()


def set_server_id(server_id: str) -> None:
    _server_id.set(server_id)


def get_server_id() -> str | None:
    return _server_id.get()


def clear_request_context() -> None:
    _request_id.set(None)
    _server_id.set(None)


@contextmanager
def request_context(request_id: str) -> Iterator[None]:
    token = _request_id.set(request_id)
    try:
        yield
    finally:
        _request_id.reset(token)


@contextmanager
def server_context(server_id: str) -> Iterator[None]:
    token = _server_id.set(server_id)
    try:
        yield
    finally:
        _server_id.reset(token)
