"""Schemas shared by several endpoint groups."""
from typing import Optional

from pydantic import BaseModel


class SimpleMessage(BaseModel):
    success: bool
    message: str


class ErrorResponse(BaseModel):
    detail: str
    error: Optional[str] = None
