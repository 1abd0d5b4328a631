"""Router registration and the Prometheus scrape endpoint."""

from __future__ import annotations

from fastapi import APIRouter, FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from notification_service.features.notifications.router import router as notifications_router

metrics_router = APIRouter(tags=["observability"])


@metrics_router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose Prometheus metrics for scraping."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )


def setup_routers(app: FastAPI) -> None:
    """Mount every router on ``app``."""
    app.include_router(notifications_router)
    app.include_router(metrics_router)


__all__ = ["setup_routers"]
