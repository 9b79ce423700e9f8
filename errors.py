"""Error taxonomy shared by the three services.

Handlers raise these (or let pymongo/bson errors escape); the exception
handlers registered by ``register_error_handlers`` turn every failure into
a status code plus ``{"error": message}``.
"""

from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError


class ServiceError(Exception):
    """Base class for all service errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Required fields are missing or malformed."""

    status_code = 400


class NotFoundError(ServiceError):
    """No record matches the requested id, session or order number."""

    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class StoreError(ServiceError):
    """The document store failed."""


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _describe_validation(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error(request: Request, exc: ServiceError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return _error(400, _describe_validation(exc))

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_error(request: Request, exc: DuplicateKeyError):
        return _error(409, str(exc))

    @app.exception_handler(PyMongoError)
    async def store_error(request: Request, exc: PyMongoError):
        return _error(500, str(exc))

    @app.exception_handler(InvalidId)
    async def invalid_id(request: Request, exc: InvalidId):
        return _error(500, str(exc))
