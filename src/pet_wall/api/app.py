"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pet_wall.api.admin import router as admin_router
from pet_wall.api.live import router as live_router
from pet_wall.api.submissions import router as submissions_router
from pet_wall.app_logging import configure_logging
from pet_wall.containers import AppContainer
from pet_wall.domain.errors import PetWallError, Unauthorized


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        if state_container.settings.live_wall_enabled:
            try:
                await state_container.rotation_queue.start()
            except Exception:
                logger.exception("Failed to start live wall rotation")
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(submissions_router)
    app.include_router(admin_router)
    app.include_router(live_router)

    @app.exception_handler(PetWallError)
    async def pet_wall_error_handler(
        request: Request, exc: PetWallError
    ) -> JSONResponse:
        """Map domain errors to JSON responses."""
        state_container: AppContainer = request.app.state.container
        if exc.status_code >= 500:
            logger.warning("Request failed: %s", type(exc).__name__)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": _format_error(state_container, exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def _format_error(state_container: AppContainer, exc: PetWallError) -> str:
    """Return a user-facing error message with local debug info."""
    message = exc.public_detail()
    if isinstance(exc, Unauthorized):
        return message
    cause = exc.__cause__
    if state_container.settings.environment == "local" and cause is not None:
        detail = f"{type(cause).__name__}: {cause}".strip()
        if detail:
            return f"{message} (debug: {detail})"
    return message
