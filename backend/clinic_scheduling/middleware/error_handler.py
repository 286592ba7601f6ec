import logging
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import ValidationError
from clinic_scheduling.errors import ScheduleRequestError

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    503: "SERVICE_UNAVAILABLE",
}

def error_response(status_code: int, code: str, message, details=None, headers=None) -> JSONResponse:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": False, "error": error}),
        headers=headers,
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """HTTPExceptions from routes, dependencies and routing, in the common error envelope."""
    return error_response(
        exc.status_code,
        HTTP_ERROR_CODES.get(exc.status_code, "HTTP_EXCEPTION"),
        exc.detail,
        headers=getattr(exc, "headers", None),
    )

async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return error_response(
        422,
        "VALIDATION_ERROR",
        "Request body or parameters are invalid",
        details=exc.errors(),
    )

class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)

        except ScheduleRequestError as se:
            return JSONResponse(
                status_code=se.status_code,
                content={"success": False, "error": se.to_dict()},
            )

        except ValidationError as ve:
            return error_response(
                422,
                "VALIDATION_ERROR",
                str(ve),
                details=ve.errors(include_url=False, include_context=False),
            )

        except Exception:
            logger.exception(f"Unhandled error on {request.method} {request.url.path}")
            return error_response(500, "INTERNAL_ERROR", "An internal error occurred.")
