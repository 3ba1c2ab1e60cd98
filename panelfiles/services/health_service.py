"""Health check service."""
from datetime import datetime, timezone

from panelfiles.services.registry import ServiceRegistry


class HealthService:
    """Encapsulates health probe logic for the API layer."""

    def __init__(self, registry: ServiceRegistry) -> None:
        self._registry = registry

    async def check(self) -> dict:
        panel_online = await self._registry.remote_client.ping()
        return {
            "status": "healthy" if panel_online else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "panel_online": panel_online,
            "active_servers": self._registry.server_ids,
        }
