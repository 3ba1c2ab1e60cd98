"""Root API router that aggregates all endpoint modules."""
from fastapi import APIRouter

from panelfiles.api.routes import files, health, metrics

api_router = APIRouter(prefix="/api")
api_router.include_router(files.router, prefix="/servers/{server_id}/files", tags=["files"])
api_router.include_router(health.router, tags=["health"])
api_router.include_router(metrics.router, tags=["metrics"])
