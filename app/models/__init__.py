"""
Database models package
"""
from app.models.enums import (
    FilingStatus,
    ClientStatus,
    TaskStatus,
    TaskPriority,
    ResponseType,
    DocumentPriority,
)
from app.models.client import Client
from app.models.dependent import Dependent
from app.models.document import Document
from app.models.intake import IntakeLink, IntakeResponse, IntakeSubmission
from app.models.activity import Task, ActivityLog

__all__ = [
    "FilingStatus",
    "ClientStatus",
    "TaskStatus",
    "TaskPriority",
    "ResponseType",
    "DocumentPriority",
    "Client",
    "Dependent",
    "Document",
    "IntakeLink",
    "IntakeResponse",
    "IntakeSubmission",
    "Task",
    "ActivityLog",
]
