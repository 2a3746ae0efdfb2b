import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from taskminder.config import Settings, settings as default_settings
from taskminder.context import AppContext
from taskminder.exceptions import AppError, Unauthenticated
from taskminder.logging_config import setup_logging
from taskminder.routers.auth import router as auth_router
from taskminder.routers.tasks import router as tasks_router
from taskminder.services.notifier import Notifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    context: AppContext = app.state.context
    setup_logging(context.settings.LOG_LEVEL)
    await context.startup()

    yield

    # Pending reminders are dropped here; nothing is persisted
    await context.shutdown()


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(Unauthenticated)
    async def unauthenticated_handler(request: Request, exc: Unauthenticated):
        if _wants_html(request):
            return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        fields = ", ".join(str(e["loc"][-1]) for e in errors) if errors else "request"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": f"Invalid value for: {fields}"},
        )

    # Last line of defence, anything unexpected becomes a generic 500
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )


def create_app(settings: Settings | None = None, notifier: Notifier | None = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        lifespan=lifespan,
        title="Taskminder",
        description="Tasks with deadlines and email reminders an hour before they are due",
        version="1.0.0",
    )
    app.state.context = AppContext.from_settings(settings, notifier=notifier)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
        https_only=settings.COOKIE_SECURE,
        same_site="lax",
    )

    register_exception_handlers(app)
    app.include_router(auth_router)
    app.include_router(tasks_router)
    return app


app = create_app()
