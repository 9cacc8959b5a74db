import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app.api.routes import availability, health, lessons, schedule_requests
from app.core.config import get_settings
from app.core.exceptions import AppError, ReasonCode, StorageUnavailableError
from app.core.logging_config import setup_logging
from app.core.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from app.db.bootstrap import ensure_runtime_schema_compatibility
from app.schemas.common import ErrorResponse

settings = get_settings()
setup_logging(level=settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.auto_create_schema:
        ensure_runtime_schema_compatibility()
    yield


def _failure(status_code: int, code: ReasonCode, message: str, details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, code=code, details=jsonable_encoder(details or {}))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def app_error_handler(request: Request, exc: AppError):
    return _failure(exc.status_code, exc.code, exc.message, exc.details)


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _failure(422, ReasonCode.validation_error, first, {"errors": errors})


async def operational_error_handler(request: Request, exc: OperationalError):
    logger.exception("Storage unavailable while handling %s %s", request.method, request.url.path)
    error = StorageUnavailableError()
    return _failure(error.status_code, error.code, error.message)


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_exception_handler(OperationalError, operational_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(SecurityHeadersMiddleware, settings=settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(lessons.router, prefix=settings.api_prefix, tags=["lessons"])
app.include_router(availability.router, prefix=settings.api_prefix, tags=["availability"])
app.include_router(schedule_requests.router, prefix=settings.api_prefix, tags=["schedule-requests"])
