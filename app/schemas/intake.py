"""
Intake submission and upload Pydantic schemas
"""
from typing import Optional
from pydantic import Field
from app.intake.draft import IntakeDraft
from app.schemas.common import CamelModel


class SubmissionRequest(CamelModel):
    """Body of ``POST /api/intake/submit``"""
    token: str = Field(..., min_length=1, description="Intake link token or the self-service sentinel")
    link_id: str = Field(..., min_length=1, description="Intake link id or the self-service sentinel")
    client_id: Optional[str] = Field(None, description="Existing client bound to the link, if any")
    request_id: Optional[str] = Field(None, max_length=64, description="Client-generated id making retries idempotent")
    form_data: IntakeDraft


class SubmissionResponse(CamelModel):
    success: bool = True
    client_id: str
    message: str = "Intake form submitted successfully"


class UploadResponse(CamelModel):
    """Result of storing one intake upload"""
    success: bool = True
    temp_id: Optional[str] = None
    file_path: str = Field(..., description="Bucket-relative storage path")
    file_name: str
    file_type: str
    file_size: int
    category: str
