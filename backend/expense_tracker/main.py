import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from expense_tracker import __version__
from expense_tracker.config import settings
from expense_tracker.db import get_session, init_db
from expense_tracker.errors import ConflictError, RecordNotFoundError, ValidationError
from expense_tracker.routers import backups, categories, expenses, health, imports, reports, subcategories, users
from expense_tracker.routers import settings as settings_router
from expense_tracker.services.store import LocalStore


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.seed_on_startup:
        with get_session() as session:
            LocalStore(session).initialize_default_data()
    logger.info("Expense tracker API %s ready (store: %s)", __version__, settings.db_url)
    yield


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.info("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Expense Tracker Backend",
        description="Household expense tracking: users, categories, expenses, reports, and backup/restore of the local store.",
        version=__version__,
        lifespan=lifespan,
    )

    # Allow local frontend dev (Vite on 5173 by default) to call the API.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Domain errors raised from services
    app.add_exception_handler(RecordNotFoundError, _error_handler(status.HTTP_404_NOT_FOUND))
    app.add_exception_handler(ConflictError, _error_handler(status.HTTP_409_CONFLICT))
    app.add_exception_handler(ValidationError, _error_handler(status.HTTP_400_BAD_REQUEST))

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
    app.include_router(subcategories.router, prefix="/api/subcategories", tags=["subcategories"])
    app.include_router(expenses.router, prefix="/api", tags=["expenses"])
    app.include_router(backups.router, prefix="/api/backups", tags=["backups"])
    app.include_router(imports.router, prefix="/api", tags=["imports"])
    app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
    app.include_router(settings_router.router, prefix="/api/settings", tags=["settings"])

    return app


app = create_app()
