"""
Document database model
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.core.database import Base


class Document(Base):
    """
    Document model referencing a file already stored in the upload bucket.

    Features:
    - Category tag from the intake documents step (w2, 1099, 1098, prior_return, id, other)
    - Tax year the document belongs to
    - Only files that reached storage get a row (``file_path`` is never empty)
    """
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    file_type = Column(String, nullable=True)
    file_size = Column(Integer, nullable=True)
    category = Column(String, default="other", nullable=False, index=True)
    tax_year = Column(Integer, nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="documents")

    def __repr__(self):
        return f"<Document(id={self.id}, name={self.name}, category={self.category})>"

    @property
    def file_extension(self) -> str:
        """Get file extension from name"""
        return self.name.split('.')[-1].lower() if '.' in self.name else ''
