from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class ValidationFailedError(ApiError):
    """Caller error; retrying the same request will fail again."""

    def __init__(self, code: str, message: str):
        super().__init__(status_code=422, code=code, message=message)


class InvalidDateError(ValidationFailedError):
    def __init__(self, message: str = "Dates must use the YYYY-MM-DD format."):
        super().__init__(code="INVALID_DATE", message=message)


class PolicyConflictError(ApiError):
    """Rejected by current state (closed window, exhausted quota, expired grace period)."""

    def __init__(self, code: str, message: str):
        super().__init__(status_code=409, code=code, message=message)


class RecordConflictError(ApiError):
    """A row with the same natural key already exists."""

    def __init__(self, message: str = "A record already exists for this date.", code: str = "RECORD_EXISTS"):
        super().__init__(status_code=409, code=code, message=message)


class NotFoundError(ApiError):
    def __init__(self, code: str, message: str):
        super().__init__(status_code=404, code=code, message=message)


class ForbiddenError(ApiError):
    def __init__(self, message: str = "Insufficient permissions."):
        super().__init__(status_code=403, code="FORBIDDEN", message=message)


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
