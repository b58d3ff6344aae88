"""
Client database model
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Enum, DateTime, Boolean, Date
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.enums import ClientStatus, FilingStatus


class Client(Base):
    """
    Client model holding the personal, address and filing details collected at intake.

    SSNs are only stored encrypted (``iv_hex:cipher_hex``) with the last four
    digits kept in clear for display.
    """
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    user_id = Column(String(36), nullable=True, index=True)  # Preparer who owns the client
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    ssn_encrypted = Column(String, nullable=True)
    ssn_last_four = Column(String(4), nullable=True)

    address_street = Column(String, nullable=True)
    address_city = Column(String, nullable=True)
    address_state = Column(String(2), nullable=True)
    address_zip = Column(String(5), nullable=True)

    filing_status = Column(Enum(FilingStatus), nullable=True)
    has_spouse = Column(Boolean, default=False, nullable=False)
    spouse_first_name = Column(String, nullable=True)
    spouse_last_name = Column(String, nullable=True)
    spouse_dob = Column(Date, nullable=True)
    spouse_ssn_encrypted = Column(String, nullable=True)

    status = Column(Enum(ClientStatus), default=ClientStatus.PROSPECT, nullable=False)
    pipeline_status = Column(String, default="new_intake", nullable=False)
    intake_completed = Column(Boolean, default=False, nullable=False)
    intake_completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    dependents = relationship("Dependent", back_populates="client", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="client", cascade="all, delete-orphan")
    intake_responses = relationship("IntakeResponse", back_populates="client", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Client(id={self.id}, name={self.full_name}, status={self.status.value})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
