"""
Intake link, answer and submission database models
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Enum, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.enums import ResponseType


class IntakeLink(Base):
    """
    One-time link that lets a client submit a single intake form.

    Lifecycle: active → used (``used_at`` set on submission) or expired
    (``expires_at`` in the past). A link may be pre-bound to an existing client.
    """
    __tablename__ = "intake_links"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    token = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String, nullable=True)
    prefill_first_name = Column(String, nullable=True)
    prefill_last_name = Column(String, nullable=True)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = Column(String(36), nullable=True)
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    client = relationship("Client")

    def __repr__(self):
        return f"<IntakeLink(id={self.id}, state={self.state})>"

    @property
    def is_expired(self) -> bool:
        return self.expires_at < datetime.utcnow()

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    @property
    def state(self) -> str:
        if self.is_used:
            return "used"
        if self.is_expired:
            return "expired"
        return "active"


class IntakeResponse(Base):
    """
    One normalized intake answer (income and deduction questions, notes).

    ``response_value`` keeps the raw JSON value; ``response_type`` says how to read it.
    """
    __tablename__ = "intake_responses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    tax_year = Column(Integer, nullable=False)
    step_number = Column(Integer, nullable=False)
    question_key = Column(String, nullable=False)
    response_value = Column(JSON, nullable=True)
    response_type = Column(Enum(ResponseType), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="intake_responses")

    def __repr__(self):
        return f"<IntakeResponse(client_id={self.client_id}, key={self.question_key}, value={self.response_value})>"


class IntakeSubmission(Base):
    """
    Record of a processed submission request id.

    Lets the submission endpoint answer a retried request with the original
    result instead of creating a second client.
    """
    __tablename__ = "intake_submissions"

    request_id = Column(String(64), primary_key=True)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    link_id = Column(String(36), nullable=True)
    token = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
