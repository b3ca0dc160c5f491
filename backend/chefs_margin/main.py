"""Chef's Margin - FastAPI Application.

Restaurant margin dashboard: inventory, recipes, bookings, sales and
LLM-assisted margin analysis.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chefs_margin.api import analysis, bookings, dashboard, ingredients, invoices, menu
from chefs_margin.core.config import Settings, get_settings
from chefs_margin.core.exceptions import ChefsMarginError
from chefs_margin.db.session import init_db, make_engine
from chefs_margin.services.analysis import AnalysisService
from chefs_margin.services.blobstore import SqlBlobStore
from chefs_margin.services.gateway import AIGateway
from chefs_margin.services.store import EntityStore

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def build_store(settings: Settings) -> EntityStore:
    """Entity store on the configured database, loaded and ready."""
    session_factory = init_db(make_engine(settings.DATABASE_URL))
    store = EntityStore(
        SqlBlobStore(session_factory),
        seed_defaults=settings.SEED_DEFAULTS,
        strict_updates=settings.STRICT_UPDATES,
        history_max_entries=settings.HISTORY_MAX_ENTRIES,
    )
    return store.load()


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[EntityStore] = None,
    gateway: Optional[AIGateway] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "store", None) is None:
            app.state.store = await asyncio.to_thread(build_store, settings)
        yield

    app = FastAPI(
        title=settings.APP_NAME,
        description="Chef's Margin - restaurant margin & demand dashboard",
        version=VERSION,
        debug=settings.DEBUG,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.analysis_service = AnalysisService(gateway or AIGateway.from_settings(settings))

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChefsMarginError)
    async def handle_domain_error(request: Request, exc: ChefsMarginError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    # Include routers
    app.include_router(ingredients.router)
    app.include_router(menu.router)
    app.include_router(bookings.reservations_router)
    app.include_router(bookings.sales_router)
    app.include_router(dashboard.router)
    app.include_router(analysis.router)
    app.include_router(invoices.router)

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "service": settings.APP_NAME,
            "version": VERSION,
            "status": "operational",
        }

    @app.get("/health")
    async def health(request: Request):
        """Detailed health check."""
        store: Optional[EntityStore] = request.app.state.store
        return {
            "status": "healthy" if store is not None else "starting",
            "ai_gateway": "configured" if request.app.state.analysis_service.gateway.configured else "not configured",
            "analysis_running": request.app.state.analysis_service.running,
        }

    return app


app = create_app()
