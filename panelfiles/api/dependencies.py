"""FastAPI dependency providers."""
from fastapi import Depends, Path, Request

from panelfiles.core.request_context import set_server_id
from panelfiles.services.file_manager import FileManagerController
from panelfiles.services.health_service import HealthService
from panelfiles.services.registry import ServiceRegistry


def get_service_registry(request: Request) -> ServiceRegistry:
    """Return the service registry stored on the FastAPI application state."""

    registry = getattr(request.app.state, "services", None)
    if not isinstance(registry, ServiceRegistry):
        raise RuntimeError("Service registry not initialised")
    return registry


async def get_controller(
    server_id: str = Path(..., min_length=1, max_length=128, description="Game server identifier"),
    registry: ServiceRegistry = Depends(get_service_registry),
) -> FileManagerController:
    set_server_id(server_id)
    controller = registry.controller(server_id)
    if not controller.loaded:
        await controller.refresh()
    return controller


def get_health_service(registry: ServiceRegistry = Depends(get_service_registry)) -> HealthService:
    return HealthService(registry)
