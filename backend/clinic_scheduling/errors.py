from typing import List, Optional


class ScheduleRequestError(Exception):
    """Base class for errors raised by the request lifecycle.

    Carries the HTTP status and error code the error handler middleware
    renders for it.
    """

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(ScheduleRequestError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, errors: List[str], message: str = "Request validation failed"):
        super().__init__(message)
        self.errors = list(errors)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["details"] = self.errors
        return data


class Forbidden(ScheduleRequestError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


class NotFound(ScheduleRequestError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, request_id: str, message: Optional[str] = None):
        super().__init__(message or f"Request {request_id} not found")
        self.request_id = request_id


class InvalidStateTransition(ScheduleRequestError):
    status_code = 409
    code = "INVALID_STATE_TRANSITION"

    def __init__(self, current: str, target: Optional[str] = None):
        if target:
            message = f"Cannot move request from '{current}' to '{target}'"
        else:
            message = f"Request is already '{current}'"
        super().__init__(message)
        self.current = current
        self.target = target


class EditNotAllowed(ScheduleRequestError):
    status_code = 409
    code = "EDIT_NOT_ALLOWED"

    def __init__(self, status: str, action: str = "edited"):
        super().__init__(f"Only pending requests can be {action} (current status: {status})")
        self.status = status


class NotifierFailure(ScheduleRequestError):
    """Raised inside the notification path only; never reaches API callers."""

    code = "NOTIFIER_FAILURE"
