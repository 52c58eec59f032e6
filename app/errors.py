import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """HTTPException carrying a ``{code, message}`` detail payload."""

    http_status = 400
    default_code = "bad_request"

    def __init__(self, message: str, code: str | None = None, details=None):
        detail = {"code": code or self.default_code, "message": message}
        if details is not None:
            detail["details"] = details
        super().__init__(status_code=self.http_status, detail=detail)

    @property
    def code(self) -> str:
        return self.detail["code"]


class NotFoundError(AppError):
    http_status = 404
    default_code = "RES_NOT_FOUND"


class ValidationFailedError(AppError):
    http_status = 400
    default_code = "VALIDATION_FAILED"


class VersionConflictError(AppError):
    http_status = 409
    default_code = "RES_VERSION_MISMATCH"

    def __init__(self, message: str | None = None):
        super().__init__(
            message or "Data has been modified. Please refresh and try again."
        )


class UnauthorizedError(AppError):
    http_status = 401
    default_code = "AUTH_REQUIRED"


class DomainRuleError(AppError):
    http_status = 400
    default_code = "DOMAIN_RULE_VIOLATION"


def _error_payload(code: str, message: str, details):
    return {"code": code, "message": message, "details": details}


def register_error_handlers(app) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # exc.errors() ctx may contain raw Exception objects (not JSON-serialisable).
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items()}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload("validation_error", "Validation error", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_payload("internal_error", "Internal server error", None),
        )
