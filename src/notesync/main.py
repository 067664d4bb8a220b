# Main application entry point
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import auth_router, health_router, notes_router
from .config import Settings, get_settings
from .core.exceptions import AppError, InternalError
from .core.logging import LoggingMiddleware, get_logger, setup_logging
from .core.schemas.common import ErrorResponse
from .database import build_engine, build_session_factory, create_tables
from .realtime import CollaborationManager, RedisRelay, RoomRegistry, session_repositories
from .realtime.handler import websocket_endpoint

logger = get_logger("main")


def _error_body(exc: AppError, details: Optional[dict] = None) -> dict:
    return ErrorResponse(
        error=type(exc).__name__, message=exc.message, details=details
    ).model_dump(mode="json")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    details = {"detail": exc.extra_detail} if exc.extra_detail else None
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc, details))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    message = errors[0]["msg"] if errors else "Invalid request"
    body = ErrorResponse(error="ValidationError", message=message, details={"errors": errors})
    return JSONResponse(status_code=400, content=body.model_dump(mode="json"))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        exc_info=exc,
        extra={"method": request.method, "path": request.url.path},
    )
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=_error_body(error))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; the engine is created in the lifespan."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        setup_logging(settings)
        logger.info(
            "Starting NoteSync application",
            extra={
                "version": settings.app_version,
                "environment": settings.environment,
                "debug": settings.debug,
            },
        )

        engine = build_engine(settings)
        session_factory = build_session_factory(engine)
        if settings.create_tables_on_startup:
            try:
                await create_tables(engine)
                logger.info("Database tables created/verified")
            except Exception as e:
                logger.error("Failed to create database tables", exc_info=e)
                await engine.dispose()
                raise

        rooms = RoomRegistry()
        collaboration = CollaborationManager(
            rooms, session_repositories(session_factory), settings=settings
        )

        relay = None
        if settings.realtime_relay_enabled:
            relay = RedisRelay(settings)
            await relay.start(collaboration.deliver_local)
            collaboration.relay = relay

        app.state.engine = engine
        app.state.session_factory = session_factory
        app.state.rooms = rooms
        app.state.collaboration = collaboration
        app.state.relay = relay

        yield

        # Shutdown
        logger.info("Shutting down NoteSync application")
        if relay is not None:
            await relay.stop()
        await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="Collaborative notes with realtime sharing",
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Add logging middleware
    app.add_middleware(LoggingMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers
    app.include_router(auth_router, prefix="/api")
    app.include_router(notes_router, prefix="/api")
    app.include_router(health_router, prefix="/api")
    app.add_api_websocket_route(settings.ws_path, websocket_endpoint)

    @app.get("/api/")
    async def api_root():
        return {
            "message": settings.app_name,
            "version": settings.app_version,
            "endpoints": {
                "authentication": "/api/auth/",
                "notes": "/api/notes/",
                "health": "/api/health/",
                "realtime": settings.ws_path,
            },
        }

    # Basic unprefixed health endpoint for load balancers
    @app.get("/health")
    async def basic_health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("notesync.main:app", host=settings.host, port=settings.port, reload=settings.reload)
