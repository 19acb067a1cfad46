"""
FastAPI application factory
"""
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from pilotage.config import get_settings
from pilotage.infrastructure.db.session import check_db_connection
from pilotage.infrastructure.remote.gateway import RemoteAPIError, RemoteNotFoundError
from pilotage.application.accounting import AccountingValidationError
from pilotage.application.comparison import ComparisonValidationError
from pilotage.application.events import EventValidationError
from pilotage.application.filters import FilterValidationError
from pilotage.application.notes import NoteValidationError
from pilotage.application.organizations import OrganizationValidationError
from pilotage.application.tasks import TaskValidationError
from pilotage.api.v1 import accounting, categories, events, notes, organizations, pages, tasks, transactions, weather

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

VALIDATION_ERRORS = (
    AccountingValidationError,
    ComparisonValidationError,
    EventValidationError,
    FilterValidationError,
    NoteValidationError,
    OrganizationValidationError,
    TaskValidationError,
)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Catches every exception the routes let through, sync routes included"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            tb_str = traceback.format_exc()
            logger.error(f"\n{'='*60}\nERROR on {request.method} {request.url.path}\n{tb_str}{'='*60}")
            return Response(content=f"Internal Server Error: {exc}", status_code=500)


def create_app() -> FastAPI:
    """
    Application factory - crée et configure l'application FastAPI

    Returns:
        Application FastAPI configurée
    """
    settings = get_settings()

    app = FastAPI(
        title="Pilotage",
        debug=settings.DEBUG,
    )

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )

    # Error mapping
    @app.exception_handler(RemoteNotFoundError)
    async def not_found_handler(request: Request, exc: RemoteNotFoundError):
        return JSONResponse(status_code=404, content={"detail": "Élément introuvable"})

    @app.exception_handler(RemoteAPIError)
    async def remote_error_handler(request: Request, exc: RemoteAPIError):
        logger.warning("Remote backend error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=502,
            content={"detail": "Le service de données est indisponible, réessayez plus tard"},
        )

    for error_class in VALIDATION_ERRORS:
        @app.exception_handler(error_class)
        async def validation_error_handler(request: Request, exc: ValueError):
            return JSONResponse(status_code=400, content={"detail": str(exc)})

    # Routers
    app.include_router(organizations.router)
    app.include_router(accounting.router)
    app.include_router(categories.router)
    app.include_router(transactions.router)
    app.include_router(tasks.router)
    app.include_router(notes.router)
    app.include_router(events.router)
    app.include_router(pages.router)
    app.include_router(weather.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (vérifie l'accès à la base distante)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pilotage.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
