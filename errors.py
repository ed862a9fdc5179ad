"""
Error taxonomy and the handlers that render it.

Every error leaves the API as ``{"message": ...}`` with the matching status
code. Messages are meant for direct display in the client.
"""

import logging
from functools import wraps
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "الرجاء ملء جميع الحقول المطلوبة"
SERVER_ERROR_MESSAGE = "حدث خطأ في الخادم"


class AppError(Exception):
    status_code = 500
    default_message = SERVER_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, **self.extra}


class ValidationError(AppError):
    status_code = 400
    default_message = MISSING_FIELDS_MESSAGE


class AuthError(AppError):
    status_code = 401
    default_message = "غير مصرح"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "غير مصرح بهذا الإجراء"


class NotFoundError(AppError):
    status_code = 404
    default_message = "غير موجود"


class ConflictError(AppError):
    status_code = 409
    default_message = "تعارض في البيانات"


class InternalError(AppError):
    status_code = 500


def handle_errors(message: str):
    """Turn unexpected failures in a route into an ``InternalError``.

    Errors from the taxonomy (and ``HTTPException``) pass through untouched,
    anything else is logged with its traceback and reported with ``message``.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (AppError, HTTPException):
                raise
            except Exception:
                logger.exception("%s failed", func.__name__)
                raise InternalError(message)
        return wrapper
    return decorator


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"message": MISSING_FIELDS_MESSAGE})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": SERVER_ERROR_MESSAGE})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
