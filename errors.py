"""
Error types for the storefront API

Handlers and repositories raise these; the exception handlers registered in
main.py turn them into HTTP responses with a short fixed message.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Oops... our bad."


class StoreError(Exception):
    status_code = 500
    detail = GENERIC_ERROR

    def __init__(self, detail: str = None):
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail

    @property
    def headers(self):
        return None


class BadRequestError(StoreError):
    status_code = 400
    detail = "Bad request"


class UnauthorizedError(StoreError):
    status_code = 401
    detail = "Not authenticated"

    @property
    def headers(self):
        return {"WWW-Authenticate": "Basic"}


class ForbiddenError(StoreError):
    status_code = 403
    detail = "Forbidden"


class NotFoundError(StoreError):
    status_code = 404
    detail = "Not found"


class ConflictError(StoreError):
    status_code = 409
    detail = "Conflict"


def store_error_handler(request: Request, exc: StoreError):
    logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)


def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": GENERIC_ERROR})


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
