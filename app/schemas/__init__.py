"""
Pydantic schemas for request/response validation
"""
from app.schemas.client import ClientResponse, RevealSsnRequest, RevealSsnResponse
from app.schemas.checklist import ChecklistResponse, DocumentSuggestion
from app.schemas.intake import SubmissionRequest, SubmissionResponse, UploadResponse
from app.schemas.intake_link import (
    IntakeLinkCreate,
    IntakeLinkCreated,
    IntakeLinkSummary,
    IntakeLinkValidation,
)

__all__ = [
    "ClientResponse",
    "RevealSsnRequest",
    "RevealSsnResponse",
    "ChecklistResponse",
    "DocumentSuggestion",
    "SubmissionRequest",
    "SubmissionResponse",
    "UploadResponse",
    "IntakeLinkCreate",
    "IntakeLinkCreated",
    "IntakeLinkSummary",
    "IntakeLinkValidation",
]
