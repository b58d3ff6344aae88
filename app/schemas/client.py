"""
Client Pydantic schemas
"""
from datetime import date, datetime
from typing import Any, List, Optional
from pydantic import Field
from app.models.enums import ClientStatus, FilingStatus, ResponseType
from app.schemas.common import CamelModel


class DependentResponse(CamelModel):
    id: str
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    ssn_last_four: Optional[str] = None
    relationship: Optional[str] = Field(None, validation_alias="relationship_type")
    months_lived_with: int


class DocumentResponse(CamelModel):
    id: str
    name: str
    file_path: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    category: str
    tax_year: int
    uploaded_at: datetime


class IntakeAnswerResponse(CamelModel):
    step_number: int
    question_key: str
    response_value: Any = None
    response_type: ResponseType
    tax_year: int


class ClientResponse(CamelModel):
    """Schema for a client with everything collected at intake (SSNs masked)"""
    id: str = Field(..., description="Client UUID")
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    ssn_last_four: Optional[str] = None
    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_zip: Optional[str] = None
    filing_status: Optional[FilingStatus] = None
    has_spouse: bool
    spouse_first_name: Optional[str] = None
    spouse_last_name: Optional[str] = None
    spouse_dob: Optional[date] = None
    status: ClientStatus
    pipeline_status: str
    intake_completed: bool
    intake_completed_at: Optional[datetime] = None
    created_at: datetime
    dependents: List[DependentResponse] = []
    documents: List[DocumentResponse] = []
    intake_responses: List[IntakeAnswerResponse] = []


class RevealSsnRequest(CamelModel):
    target: str = Field("client", pattern="^(client|spouse)$", description="Whose SSN to decrypt")


class RevealSsnResponse(CamelModel):
    ssn: Optional[str] = Field(None, description="Formatted SSN, or null when none is on file")
