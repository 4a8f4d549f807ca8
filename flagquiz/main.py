import logging
import sys
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from flagquiz.api import game, leaderboard, users
from flagquiz.core.cache import cache
from flagquiz.core.config import settings
from flagquiz.core.db import create_tables, dispose_engine, get_session, wait_for_database
from flagquiz.core.errors import GameError


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Flag Quiz API starting up")
    await wait_for_database()
    if settings.AUTO_CREATE_TABLES:
        # для локального запуска без alembic
        await create_tables()
        logger.info("Tables created from metadata")

    yield

    await cache.close()
    await dispose_engine()
    logger.info("Flag Quiz API shut down")


app = FastAPI(
    title="Flag Quiz Backend",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.kind)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "validation_error",
            "message": "Invalid request data",
            "details": [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in exc.errors()
            ],
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    kinds = {
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": kinds.get(exc.status_code, "http_error"), "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "message": "An unexpected error occurred"},
    )


app.include_router(game.router)
app.include_router(leaderboard.router)
app.include_router(users.router)


@app.get("/")
async def root():
    return {"message": "Hello, Flag Quiz!"}


@app.get("/health")
async def health(session: AsyncSession = Depends(get_session)):
    try:
        await session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error("Health check: database unavailable: %s", e)
        database = "unavailable"

    if not cache.redis_client:
        redis_status = "disabled"
    else:
        redis_status = "ok" if await cache.ping() else "unavailable"

    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "cache": redis_status,
    }
