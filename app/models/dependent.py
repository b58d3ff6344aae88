"""
Dependent database model
"""
import uuid
from sqlalchemy import Column, String, Integer, Date, ForeignKey
from sqlalchemy.orm import relationship
from app.core.database import Base


class Dependent(Base):
    """
    Dependent claimed by a client.

    Rows are replaced wholesale whenever the client submits an intake form.
    """
    __tablename__ = "dependents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    date_of_birth = Column(Date, nullable=True)
    ssn_encrypted = Column(String, nullable=True)
    ssn_last_four = Column(String(4), nullable=True)
    relationship_type = Column("relationship", String, nullable=True)
    months_lived_with = Column(Integer, default=12, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="dependents")

    def __repr__(self):
        return f"<Dependent(id={self.id}, name={self.first_name} {self.last_name}, relationship={self.relationship_type})>"
