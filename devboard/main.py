import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from devboard.api import auth, challenges, github, health, stackoverflow, streaks, todos
from devboard.core.config import cors_origins, settings, validate_config
from devboard.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from devboard.core.logging import configure_logging
from devboard.core.middleware.request_id import RequestIdMiddleware
from devboard.features.external.cache import ExternalProfileCache

API_PREFIX = "/api/v1"

configure_logging(settings.ENV)
validate_config(strict=settings.CONFIG_STRICT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("devboard")
    logger.info("Starting DevBoard backend...")
    app.state.startup_time = time.time()
    # One cache per process, shared by every provider client
    app.state.profile_cache = ExternalProfileCache()
    try:
        yield
    finally:
        logger.info("Stopping DevBoard backend...")


app = FastAPI(title="DevBoard API", version="1.0.0", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix=API_PREFIX, tags=["auth"])
app.include_router(todos.router, prefix=API_PREFIX, tags=["todos"])
app.include_router(streaks.router, prefix=API_PREFIX, tags=["streaks"])
app.include_router(challenges.router, prefix=API_PREFIX, tags=["challenges"])
app.include_router(github.router, prefix=API_PREFIX, tags=["github"])
app.include_router(stackoverflow.router, prefix=API_PREFIX, tags=["stackoverflow"])
app.include_router(health.router)
