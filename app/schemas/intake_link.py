"""
Intake link Pydantic schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import EmailStr, Field
from app.schemas.common import CamelModel


class IntakeLinkCreate(CamelModel):
    """Schema for issuing a new intake link"""
    email: Optional[EmailStr] = None
    prefill_first_name: Optional[str] = Field(None, max_length=255)
    prefill_last_name: Optional[str] = Field(None, max_length=255)
    expires_in_days: int = Field(30, ge=1, le=365, description="Days until the link expires")
    created_by: Optional[str] = Field(None, description="Preparer issuing the link")
    client_id: Optional[str] = Field(None, description="Existing client the intake should update")


class IntakeLinkCreated(CamelModel):
    success: bool = True
    url: str
    token: str
    link_id: str


class IntakeLinkValidation(CamelModel):
    """Result of checking a link token; ``error`` is set whenever ``valid`` is false"""
    valid: bool
    link_id: Optional[str] = None
    client_id: Optional[str] = None
    email: Optional[str] = None
    prefill_first_name: Optional[str] = None
    prefill_last_name: Optional[str] = None
    error: Optional[str] = None


class IntakeLinkSummary(CamelModel):
    id: str
    token: str
    email: Optional[str] = None
    prefill_first_name: Optional[str] = None
    prefill_last_name: Optional[str] = None
    client_id: Optional[str] = None
    created_by: Optional[str] = None
    state: str = Field(..., description="active, used or expired")
    expires_at: datetime
    used_at: Optional[datetime] = None
    created_at: datetime
