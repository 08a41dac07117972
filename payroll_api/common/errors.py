# payroll_api/common/errors.py
from flask import current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from payroll_api.common.http import fail

GENERIC_RETRIEVAL_MESSAGE = "Could not load data from the store."
GENERIC_PERSISTENCE_MESSAGE = "Could not save data to the store."


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


class ValidationError(APIError):
    def __init__(self, message, payload=None):
        super().__init__("VALIDATION_ERROR", message, status_code=422, payload=payload)


class NotFoundError(APIError):
    def __init__(self, message, payload=None):
        super().__init__("NOT_FOUND", message, status_code=404, payload=payload)


def _describe(exc, fallback):
    text = str(exc).strip() if exc is not None else ""
    return text or fallback


class RetrievalError(APIError):
    """Time-log or employee store could not be read; the operation was aborted."""
    def __init__(self, cause=None, message=None):
        super().__init__(
            "RETRIEVAL_FAILED",
            message or _describe(cause, GENERIC_RETRIEVAL_MESSAGE),
            status_code=502,
        )
        self.cause = cause


class PersistenceError(APIError):
    """Payroll write failed; nothing was stored."""
    def __init__(self, cause=None, message=None):
        super().__init__(
            "PERSISTENCE_FAILED",
            message or _describe(cause, GENERIC_PERSISTENCE_MESSAGE),
            status_code=502,
        )
        self.cause = cause


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _dup(e: IntegrityError):
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR",
                    detail=str(e.orig) if getattr(e, "orig", None) else None)

    @app.errorhandler(Exception)
    def _500(e: Exception):
        current_app.logger.exception(e)
        return fail("Internal server error", status=500)
