"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from cueleague.api.admin import router as admin_router
from cueleague.api.announcements import router as announcements_router
from cueleague.api.config import router as config_router
from cueleague.api.matches import router as matches_router
from cueleague.api.seasons import router as seasons_router
from cueleague.api.standings import router as standings_router
from cueleague.api.teams import router as teams_router
from cueleague.api.users import router as users_router
from cueleague.api.venues import router as venues_router
from cueleague.config import Settings
from cueleague.core.errors import LeagueError
from cueleague.db.engine import create_engine, init_schema

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: create the engine and bring the schema up to date."""
    settings: Settings = app.state.settings
    engine = create_engine(settings.database_url)
    await init_schema(engine)
    app.state.engine = engine
    logger.info("app_started env=%s", settings.cueleague_env)

    yield

    await engine.dispose()
    logger.info("app_stopped")


async def _league_error_handler(request: Request, exc: LeagueError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("league_error path=%s error=%s", request.url.path, exc.message)
    else:
        logger.info(
            "request_rejected path=%s status=%d code=%s",
            request.url.path,
            exc.status_code,
            exc.code,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("integrity_error path=%s error=%s", request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content={"error": "A record with this value already exists", "code": "conflict"},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the Cue League FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.cueleague_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.league_name,
        version="0.1.0",
        description="Pool league management: schedules, scores and standings",
        docs_url="/docs" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_exception_handler(LeagueError, _league_error_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)

    app.include_router(config_router)
    app.include_router(users_router)
    app.include_router(seasons_router)
    app.include_router(teams_router)
    app.include_router(venues_router)
    app.include_router(matches_router)
    app.include_router(standings_router)
    app.include_router(announcements_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "env": settings.cueleague_env}

    return app


app = create_app()
