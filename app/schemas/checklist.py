"""
Document checklist Pydantic schemas
"""
from typing import List
from pydantic import Field
from app.models.enums import DocumentPriority
from app.schemas.common import CamelModel


class DocumentSuggestion(CamelModel):
    """One document the client is expected to provide"""
    id: str
    name: str
    description: str
    category: str = Field(..., description="Upload category the document is filed under")
    priority: DocumentPriority
    reason: str = Field(..., description="Intake answer that triggered the suggestion")


class CategoryProgress(CamelModel):
    category: str
    label: str
    expected: int = Field(..., description="Suggested documents filed under this category")
    received: int = Field(..., description="Uploaded documents in this category")


class ChecklistResponse(CamelModel):
    """Schema for the full document checklist of a client"""
    client_id: str
    tax_year: int
    suggestions: List[DocumentSuggestion]
    categories: List[CategoryProgress]
    required_total: int
    required_received: int
    overall_progress: float = Field(..., ge=0.0, le=100.0, description="Completion percentage over required items")
