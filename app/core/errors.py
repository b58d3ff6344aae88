"""
Error types and the JSON error envelope returned by the intake endpoints.

Every failure the intake flow can report to a caller is an ``IntakeError``
carrying a human-readable message and a machine-readable ``stage``:

    {"error": "This link has expired", "stage": "link"}

Persistence failures may also carry ``clientId`` and ``details``.
"""
import logging
from typing import Any, Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class IntakeError(Exception):
    """Base error for the intake flow."""

    status_code = 500
    default_stage = "unknown"

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        status_code: Optional[int] = None,
        client_id: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage
        if status_code is not None:
            self.status_code = status_code
        self.client_id = client_id
        self.details = details

    def to_envelope(self) -> dict:
        body = {"error": self.message, "stage": self.stage}
        if self.details is not None:
            body["details"] = self.details
        if self.client_id is not None:
            body["clientId"] = self.client_id
        return body


class LinkError(IntakeError):
    """Invalid, expired or already-used intake link."""
    status_code = 400
    default_stage = "link"


class SubmissionValidationError(IntakeError):
    """Submitted intake data breaks a required-field rule."""
    status_code = 400
    default_stage = "validation"


class PersistenceError(IntakeError):
    """A datastore write failed."""
    status_code = 500
    default_stage = "persistence"


class UploadError(IntakeError):
    """Uploaded file rejected or could not be stored."""
    status_code = 400
    default_stage = "upload"


async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed at stage '{exc.stage}': {exc.message}")
    else:
        logger.info(f"{request.url.path} rejected at stage '{exc.stage}': {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=400,
        content={
            "error": message,
            "stage": "validation",
            "details": [
                {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg")}
                for err in errors
            ],
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IntakeError, intake_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
