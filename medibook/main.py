import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medibook.api.routes import appointments, doctor, notifications, slots
from medibook.core.config import _ENV_FILE, settings
from medibook.core.db import init_db
from medibook.core.errors import BookingError

JSON_LOG_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
ALLOWED_HEADERS = ["Authorization", "Content-Type"]


def configure_logging() -> None:
    if os.getenv("ENV") == "production":
        logging.basicConfig(level=logging.INFO, format=JSON_LOG_FORMAT)
    else:
        logging.basicConfig(level=logging.DEBUG)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Settings file %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info(
        "Booking rules: clinic timezone %s, default duration %d min, slot stride %d min, max duration %d min",
        settings.clinic_timezone,
        settings.default_duration_minutes,
        settings.slot_stride_minutes,
        settings.max_duration_minutes,
    )
    if settings.create_tables_on_startup:
        await init_db()
        logger.info("Tables created from model metadata")
    yield


app = FastAPI(
    title="MediBook API",
    description="Doctor availability, appointment booking and in-app notifications",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=ALLOWED_METHODS,
    allow_headers=ALLOWED_HEADERS,
)

for router in (slots.router, appointments.router, doctor.router, notifications.router):
    app.include_router(router, prefix="/api/v1")


def _error_response(request: Request, status_code: int, content: dict) -> JSONResponse:
    """JSON error with CORS headers, so browsers see the body instead of a CORS failure."""
    origins = settings.cors_origins_list
    origin = request.headers.get("origin")
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
        "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
    }
    if origins:
        headers["Access-Control-Allow-Origin"] = origin if origin in origins else origins[0]
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return _error_response(request, exc.status_code, {"detail": exc.message, "error": exc.kind})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, HTTPException):
        return _error_response(request, exc.status_code, {"detail": exc.detail})
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(request, 500, {"detail": f"{type(exc).__name__}: {exc}"})


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
