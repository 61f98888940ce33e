"""FastAPI web application for taskroster."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError

from taskroster import __version__
from taskroster.api import tasks, users
from taskroster.api.responses import send_response
from taskroster.database.database import init_db
from taskroster.errors import (
    ApiError,
    DocumentCastError,
    DocumentValidationError,
    DuplicateKeyError,
    InternalError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="taskroster API",
    description="Users, tasks and the assignments between them",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(users.router, prefix="/api")
app.include_router(tasks.router, prefix="/api")


@app.exception_handler(ApiError)
async def handle_api_error(request: Request, exc: ApiError):
    return send_response(exc.status_code, exc.message, exc.data)


@app.exception_handler(DocumentValidationError)
async def handle_validation_error(request: Request, exc: DocumentValidationError):
    return send_response(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(DocumentCastError)
async def handle_cast_error(request: Request, exc: DocumentCastError):
    return send_response(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(DuplicateKeyError)
async def handle_duplicate_key(request: Request, exc: DuplicateKeyError):
    if exc.field == "email":
        return send_response(status.HTTP_400_BAD_REQUEST, "Email already exists")
    return send_response(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    return send_response(status.HTTP_400_BAD_REQUEST, "Request body must be a JSON object")


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}")
    error = InternalError()
    return send_response(error.status_code, error.message, error.data)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
