"""
Intake draft model and the typed patches that mutate it.

The draft is the client-held, unsaved state of an intake form. It is frozen:
every change goes through :func:`apply_patch`, which validates a patch
(tagged by field group) and returns a new draft. Python attribute names are
snake_case; the JSON wire format uses camelCase (``firstName``,
``hasW2Income``, ``uploadedDocuments``).
"""
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Tuple, Union
from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel
from app.models.enums import FilingStatus


# ============================================================================
# FIXED CHOICE LISTS
# ============================================================================

RELATIONSHIPS: Tuple[str, ...] = (
    "Son", "Daughter", "Stepson", "Stepdaughter", "Foster Child",
    "Brother", "Sister", "Half Brother", "Half Sister", "Stepbrother", "Stepsister",
    "Grandchild", "Niece", "Nephew", "Parent", "Grandparent", "Other",
)

INCOME_TYPES: Dict[str, str] = {
    "wages": "W-2 Wages (Employment Income)",
    "self_employment": "Self-Employment / 1099-NEC Income",
    "interest": "Interest Income (1099-INT)",
    "dividends": "Dividend Income (1099-DIV)",
    "retirement": "Retirement Distributions (1099-R)",
    "social_security": "Social Security Benefits (SSA-1099)",
    "unemployment": "Unemployment Compensation (1099-G)",
    "gambling": "Gambling Winnings (W-2G)",
}

SPECIAL_SITUATIONS: Dict[str, str] = {
    "has_stock_sales": "Stock/Investment Sales",
    "has_crypto_transactions": "Cryptocurrency Transactions",
    "has_rental_income": "Rental Income",
    "has_foreign_income": "Foreign Income/Accounts",
}

DOCUMENT_CATEGORIES: Dict[str, str] = {
    "w2": "W-2 Forms",
    "1099": "1099 Forms",
    "1098": "1098 Forms",
    "prior_return": "Prior Year Return",
    "id": "Photo ID",
    "other": "Other Documents",
}


class _WireModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True
        extra = "ignore"


# ============================================================================
# DRAFT
# ============================================================================

class Dependent(_WireModel):
    """Dependent being claimed; all fields except months are required at submit."""
    id: str
    first_name: str = ""
    last_name: str = ""
    date_of_birth: str = ""
    ssn: str = ""
    relationship: str = ""
    months_lived_with: int = Field(12, ge=0, le=12)

    def missing_fields(self) -> List[str]:
        labels = {
            "first_name": "first name",
            "last_name": "last name",
            "date_of_birth": "date of birth",
            "ssn": "SSN",
            "relationship": "relationship",
        }
        return [label for name, label in labels.items() if not getattr(self, name)]


class DraftDocument(_WireModel):
    """Reference to a file the client attached; ``file_path`` is set once storage confirms it."""
    id: str
    name: str
    category: str = "other"
    uploaded: bool = False
    file_path: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None

    def to_submission(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "filePath": self.file_path,
            "fileType": self.file_type,
            "fileSize": self.file_size,
        }


class IntakeDraft(_WireModel):
    """Flat form state for the whole intake wizard."""
    # Personal Info
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    date_of_birth: str = ""
    ssn: str = ""

    # Address
    address_street: str = ""
    address_city: str = ""
    address_state: str = Field("", max_length=2)
    address_zip: str = Field("", max_length=5)

    # Filing Status
    filing_status: Optional[FilingStatus] = None
    has_spouse: bool = False
    spouse_first_name: str = ""
    spouse_last_name: str = ""
    spouse_dob: str = ""
    spouse_ssn: str = ""

    # Dependents
    dependents: List[Dependent] = Field(default_factory=list)

    # Income
    has_w2_income: bool = False
    w2_employer_count: int = Field(0, ge=0, le=10)
    has_1099_income: bool = False
    income_types: List[str] = Field(default_factory=list)
    has_crypto_transactions: bool = False
    has_stock_sales: bool = False
    has_rental_income: bool = False
    has_foreign_income: bool = False

    # Deductions
    itemize_deductions: bool = False
    has_mortgage_interest: bool = False
    has_charitable_donations: bool = False
    has_student_loan_interest: bool = False
    has_medical_expenses: bool = False
    has_business_expenses: bool = False
    has_childcare: bool = False
    has_education_expenses: bool = False
    other_deductions: str = ""

    # Documents
    uploaded_documents: List[DraftDocument] = Field(default_factory=list)

    # Notes
    additional_notes: str = ""

    @field_validator("filing_status", mode="before")
    @classmethod
    def blank_status_is_unselected(cls, v):
        return v or None

    @model_validator(mode="after")
    def w2_count_matches_selection(self) -> "IntakeDraft":
        if self.has_w2_income and self.w2_employer_count < 1:
            raise ValueError("W-2 employer count must be between 1 and 10 when W-2 income is selected")
        return self

    @classmethod
    def from_prefill(cls, prefill: Optional[Mapping[str, Optional[str]]] = None) -> "IntakeDraft":
        """Start an empty draft, optionally pre-filled from an intake link."""
        prefill = prefill or {}
        return cls(
            email=prefill.get("email") or "",
            first_name=prefill.get("first_name") or "",
            last_name=prefill.get("last_name") or "",
        )

    @property
    def spouse_required(self) -> bool:
        return self.filing_status is not None and self.filing_status.implies_spouse

    def income_summary(self) -> List[str]:
        """Readable income sources, as listed on the review step and in staff emails."""
        lines = []
        if self.has_w2_income:
            plural = "s" if self.w2_employer_count > 1 else ""
            lines.append(f"W-2 Income ({self.w2_employer_count} employer{plural})")
        if self.has_1099_income:
            lines.append("1099/Self-Employment Income")
        lines.extend(label for name, label in SPECIAL_SITUATIONS.items() if getattr(self, name))
        lines.extend(INCOME_TYPES.get(t, t) for t in self.income_types)
        return lines

    def submission_problems(self, require_upload_paths: bool = True) -> List[str]:
        """
        Required-field rules checked once, right before submission.

        Returns human-readable messages; an empty list means the draft may be submitted.
        """
        problems = []
        if self.filing_status is None:
            problems.append("Please select a filing status")
        if self.spouse_required:
            spouse_labels = {
                "spouse_first_name": "first name",
                "spouse_last_name": "last name",
                "spouse_dob": "date of birth",
                "spouse_ssn": "SSN",
            }
            missing = [label for name, label in spouse_labels.items() if not getattr(self, name)]
            if missing:
                problems.append(f"Spouse information is missing: {', '.join(missing)}")
        for index, dependent in enumerate(self.dependents, start=1):
            missing = dependent.missing_fields()
            if missing:
                problems.append(f"Dependent {index} is missing: {', '.join(missing)}")
        if require_upload_paths:
            for doc in self.uploaded_documents:
                if doc.uploaded and not doc.file_path:
                    problems.append(f"Document {doc.name} has not finished uploading")
        return problems

    def to_submission(self) -> Dict[str, Any]:
        """JSON body for the submission endpoint's ``formData`` field."""
        data = self.model_dump(mode="json", by_alias=True)
        data["uploadedDocuments"] = [doc.to_submission() for doc in self.uploaded_documents]
        return data


# ============================================================================
# TYPED PATCHES
# ============================================================================

class BasePatch(BaseModel):
    """Partial update of one field group; only explicitly set fields are applied."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True
        extra = "forbid"

    def updates(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set if name != "group"}


class PersonalPatch(BasePatch):
    group: Literal["personal"] = "personal"
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    ssn: Optional[str] = None


class AddressPatch(BasePatch):
    group: Literal["address"] = "address"
    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_zip: Optional[str] = None


class FilingPatch(BasePatch):
    group: Literal["filing"] = "filing"
    filing_status: Optional[FilingStatus] = None
    spouse_first_name: Optional[str] = None
    spouse_last_name: Optional[str] = None
    spouse_dob: Optional[str] = None
    spouse_ssn: Optional[str] = None


class DependentsPatch(BasePatch):
    group: Literal["dependents"] = "dependents"
    dependents: List[Dependent]


class IncomePatch(BasePatch):
    group: Literal["income"] = "income"
    has_w2_income: Optional[bool] = None
    w2_employer_count: Optional[int] = Field(None, ge=0, le=10)
    has_1099_income: Optional[bool] = None
    income_types: Optional[List[str]] = None
    has_crypto_transactions: Optional[bool] = None
    has_stock_sales: Optional[bool] = None
    has_rental_income: Optional[bool] = None
    has_foreign_income: Optional[bool] = None


class DeductionsPatch(BasePatch):
    group: Literal["deductions"] = "deductions"
    itemize_deductions: Optional[bool] = None
    has_mortgage_interest: Optional[bool] = None
    has_charitable_donations: Optional[bool] = None
    has_student_loan_interest: Optional[bool] = None
    has_medical_expenses: Optional[bool] = None
    has_business_expenses: Optional[bool] = None
    has_childcare: Optional[bool] = None
    has_education_expenses: Optional[bool] = None
    other_deductions: Optional[str] = None


class DocumentsPatch(BasePatch):
    group: Literal["documents"] = "documents"
    uploaded_documents: List[DraftDocument]


class NotesPatch(BasePatch):
    group: Literal["notes"] = "notes"
    additional_notes: str


DraftPatch = Annotated[
    Union[
        PersonalPatch,
        AddressPatch,
        FilingPatch,
        DependentsPatch,
        IncomePatch,
        DeductionsPatch,
        DocumentsPatch,
        NotesPatch,
    ],
    Field(discriminator="group"),
]

_patch_adapter = TypeAdapter(DraftPatch)

PATCH_TYPES = {
    "personal": PersonalPatch,
    "address": AddressPatch,
    "filing": FilingPatch,
    "dependents": DependentsPatch,
    "income": IncomePatch,
    "deductions": DeductionsPatch,
    "documents": DocumentsPatch,
    "notes": NotesPatch,
}


def group_fields(group: str) -> Tuple[str, ...]:
    """Draft field names owned by a field group."""
    return tuple(name for name in PATCH_TYPES[group].model_fields if name != "group")


def coerce_patch(patch: Union[BasePatch, Mapping[str, Any]]) -> BasePatch:
    """Validate a raw mapping against the patch union; patch instances pass through."""
    if isinstance(patch, BasePatch):
        return patch
    return _patch_adapter.validate_python(dict(patch))


def apply_patch(draft: IntakeDraft, patch: Union[BasePatch, Mapping[str, Any]]) -> IntakeDraft:
    """
    Return a new draft with the patch merged in.

    Selecting a filing status also sets ``has_spouse``. The merged record is
    re-validated, so a patch that breaks a draft field type raises
    ``pydantic.ValidationError`` and leaves the original draft untouched.
    """
    patch = coerce_patch(patch)
    updates = patch.updates()
    if "filing_status" in updates:
        status = updates["filing_status"]
        updates["has_spouse"] = status is not None and FilingStatus(status).implies_spouse
    data = draft.model_dump()
    data.update(updates)
    return IntakeDraft.model_validate(data)
