# returncheck/errors.py
from __future__ import annotations
from typing import Any

class ApiError(Exception):
    """
    Error rendered to the caller as:
      {"error": <message>, "code": <code>, ...context}
    """
    status_code = 400
    code = "BAD_REQUEST"
    message = "Bad request"

    def __init__(self, message: str | None = None, **context: Any):
        self.message = message or self.message
        self.context = {k: v for k, v in context.items() if v is not None}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code, **self.context}

# ---- client input (400)
class InvalidJson(ApiError):
    code = "INVALID_JSON"
    message = "Invalid JSON in request body"

class MissingPhone(ApiError):
    code = "MISSING_PHONE"
    message = "Phone number is required"

class MissingFields(ApiError):
    code = "MISSING_FIELDS"
    message = "Phone number and reason are required"

class InvalidPhoneError(ApiError):
    code = "INVALID_PHONE"
    message = "Invalid Algerian mobile phone number format. Expected format: 0XXXXXXXXX"

class InvalidReason(ApiError):
    code = "INVALID_REASON"
    message = "Invalid reason provided"

# ---- policy rejections
class RateLimited(ApiError):
    status_code = 429
    code = "RATE_LIMITED"
    message = "Too many reports. Please try again later."

class CheckRateLimited(RateLimited):
    code = "RATE_LIMITED_CHECK"
    message = "Too many check requests. Please try again later."

class DuplicateReportError(ApiError):
    status_code = 409
    code = "DUPLICATE_REPORT"
    message = "This phone number has already been reported recently"

# ---- infrastructure (500)
class InternalError(ApiError):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal server error"
