"""
Enum definitions for database models
"""
import enum


class FilingStatus(str, enum.Enum):
    """Federal filing status selected during intake"""
    SINGLE = "single"
    MARRIED_JOINT = "married_joint"
    MARRIED_SEPARATE = "married_separate"
    HEAD_OF_HOUSEHOLD = "head_of_household"
    QUALIFYING_WIDOW = "qualifying_widow"

    @property
    def implies_spouse(self) -> bool:
        return self in (FilingStatus.MARRIED_JOINT, FilingStatus.MARRIED_SEPARATE)


class ClientStatus(str, enum.Enum):
    """Client relationship status"""
    PROSPECT = "prospect"  # Self-service intake, no preparer yet
    ACTIVE = "active"      # Invited through an intake link


class TaskStatus(str, enum.Enum):
    """Follow-up task status"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    """Follow-up task priority"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResponseType(str, enum.Enum):
    """Value type of a stored intake answer"""
    BOOLEAN = "boolean"
    NUMBER = "number"
    ARRAY = "array"
    TEXT = "text"


class DocumentPriority(str, enum.Enum):
    """How strongly a checklist document is requested"""
    REQUIRED = "required"
    RECOMMENDED = "recommended"
    OPTIONAL = "optional"
