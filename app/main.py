"""FastAPI app entrypoint."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi_pagination import add_pagination

from app.config import get_settings
from app.infra.logging_config import LoggingConfig
from app.routers.rooms_router import rooms_router
from app.routers.sessions_router import sessions_router
from app.routers.summaries_router import summaries_router
from app.routers.webhooks import router as webhooks_router


def create_app(testing: bool = False) -> FastAPI:
    settings = get_settings()
    LoggingConfig()

    app = FastAPI(
        title=settings.app_name,
        description="Chat ingestion, per-room sessions and AI summaries",
        debug=testing,
    )

    app.include_router(webhooks_router)
    app.include_router(sessions_router)
    app.include_router(rooms_router)
    app.include_router(summaries_router)

    @app.get("/health", tags=["system"])
    def health() -> dict[str, str]:
        return {"status": "ok", "environment": settings.environment}

    add_pagination(app)
    return app


app = create_app()
