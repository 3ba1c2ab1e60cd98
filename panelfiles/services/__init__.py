"""Service layer of the panel file gateway."""
from .registry import ServiceRegistry

__all__ = ["ServiceRegistry"]
