from typing import Any

from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse

from bloodwise.middleware.tracing import TRACE_ID_CTX_VAR


class PipelinePreconditionError(Exception):
    """Analysis cannot start; nothing has been parsed or classified."""

    code = "PRECONDITION_FAILED"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingProfileError(PipelinePreconditionError):
    code = "PROFILE_REQUIRED"

    def __init__(self, message: str = "User profile information is needed for accurate analysis."):
        super().__init__(message)


class MissingExtractedDataError(PipelinePreconditionError):
    code = "EXTRACTED_DATA_REQUIRED"

    def __init__(self, message: str = "No results data found. Please upload your blood test results first."):
        super().__init__(message)


def status_to_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        413: "PAYLOAD_TOO_LARGE",
        415: "UNSUPPORTED_MEDIA_TYPE",
        422: "UNPROCESSABLE_ENTITY",
        500: "INTERNAL_SERVER_ERROR",
    }
    return mapping.get(status_code, f"HTTP_{status_code}")


async def handle_http_exception(request: Request, exc: HTTPException):
    trace_id = TRACE_ID_CTX_VAR.get()
    detail: Any = exc.detail
    message = detail if isinstance(detail, str) else "HTTP error"
    body = {"code": status_to_code(exc.status_code), "message": message, "trace_id": trace_id}
    if detail is not None:
        body["details"] = detail
    return JSONResponse(status_code=exc.status_code, content=body)


async def handle_precondition_error(request: Request, exc: PipelinePreconditionError):
    body = {"code": exc.code, "message": exc.message, "trace_id": TRACE_ID_CTX_VAR.get()}
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def handle_unhandled_exception(request: Request, exc: Exception):
    trace_id = TRACE_ID_CTX_VAR.get()
    body = {
        "code": "INTERNAL_SERVER_ERROR",
        "message": "An unexpected error occurred",
        "details": str(exc),
        "trace_id": trace_id,
    }
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
