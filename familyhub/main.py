"""FamilyHub Server - FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from familyhub import __version__
from familyhub.config import settings
from familyhub.errors import FamilyHubError
from familyhub.services.assistant_service import AssistantGateway
from familyhub.services.directory_service import DirectoryService
from familyhub.services.family_service import FamilyRegistry
from familyhub.services.planner_service import PlannerService
from familyhub.store import DocumentStore, create_store

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def store_from_settings() -> DocumentStore:
    return create_store(
        settings.store_backend,
        path=settings.resolved_store_path,
        db_path=settings.resolved_db_path,
    )


def create_app(
    store: DocumentStore | None = None,
    assistant: AssistantGateway | None = None,
) -> FastAPI:
    """Build the application around an injected document store."""
    store = store or store_from_settings()
    assistant = assistant or AssistantGateway()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the store on startup, flush and close it on shutdown."""
        store.open()
        logger.info("Store opened: %s", type(store).__name__)
        yield
        store.close()
        logger.info("Store closed")

    app = FastAPI(
        title="FamilyHub",
        description="Family coordination: planner, shared reminders, family chat",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.store = store
    app.state.directory = DirectoryService(store)
    app.state.registry = FamilyRegistry(store, app.state.directory)
    app.state.planner = PlannerService(store, app.state.directory)
    app.state.assistant = assistant

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FamilyHubError)
    async def familyhub_error_handler(request: Request, exc: FamilyHubError):
        if exc.status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": exc.code},
        )

    # --- Register API routers ---
    from familyhub.api.assistant import router as assistant_router
    from familyhub.api.families import router as families_router
    from familyhub.api.planner import router as planner_router
    from familyhub.api.system import router as system_router
    from familyhub.api.users import router as users_router

    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(families_router, prefix=API_PREFIX)
    app.include_router(planner_router, prefix=API_PREFIX)
    app.include_router(assistant_router, prefix=API_PREFIX)
    app.include_router(system_router, prefix=API_PREFIX)

    @app.get("/")
    def root():
        """Server info."""
        return {
            "name": settings.server_name,
            "version": __version__,
            "status": "running",
        }

    @app.get(f"{API_PREFIX}/health")
    def health():
        return {"status": "ok"}

    return app
