import logging
from typing import Optional

from fastapi.exceptions import RequestValidationError
from fastapi import Request
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class RecordNotFound(Exception):
    """Raised when a project, child record or job id does not exist."""

    def __init__(self, kind: str, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class DuplicateRole(Exception):
    """A second hours row was submitted for a role that already has one."""

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"Hours for role {role} already exist")


class CompletionError(Exception):
    pass


class ProviderNotConfigured(CompletionError):
    pass


class UpstreamError(CompletionError):
    """Failed answer from the completion provider; its status is forwarded.

    A 2xx body that is not a chat completion is reported as 502.
    """

    def __init__(self, status_code: int, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Completion provider returned {status_code}")


class UnsupportedDocument(Exception):
    def __init__(self, content_type: Optional[str]):
        self.content_type = content_type
        super().__init__(f"Unsupported document type: {content_type}")


def register_exception_handlers(app):
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.info("HTTP exception", extra={"status_code": exc.status_code})
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info("Validation error", extra={"errors": exc.errors()})
        return JSONResponse(
            {"error": "Validation error", "details": jsonable_errors(exc)},
            status_code=422,
        )

    @app.exception_handler(RecordNotFound)
    async def not_found_handler(request: Request, exc: RecordNotFound):
        return JSONResponse({"error": str(exc)}, status_code=404)

    @app.exception_handler(DuplicateRole)
    async def duplicate_role_handler(request: Request, exc: DuplicateRole):
        return JSONResponse({"error": str(exc)}, status_code=409)

    @app.exception_handler(ProviderNotConfigured)
    async def provider_not_configured_handler(request: Request, exc: ProviderNotConfigured):
        logger.error("Completion provider not configured")
        return JSONResponse({"error": str(exc)}, status_code=500)

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        logger.warning("Completion provider error", extra={"status_code": exc.status_code})
        return JSONResponse({"error": "Completion provider error"}, status_code=exc.status_code)

    @app.exception_handler(UnsupportedDocument)
    async def unsupported_document_handler(request: Request, exc: UnsupportedDocument):
        return JSONResponse({"error": str(exc)}, status_code=415)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error")
        return JSONResponse({"error": "Database error"}, status_code=500)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse({"error": "Internal server error"}, status_code=500)


def jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic v2 puts the raw exception under "ctx"; keep only its message
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors
