"""
Per-step editors for the intake wizard.

An editor sees a read-only slice of the current draft and changes it only by
handing typed patches to the wizard's update callback. Each editor also
reports the fields it marks as required, which the wizard uses for hints
but never to block navigation.
"""
import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Mapping, Optional, Tuple
from app.intake.draft import (
    DOCUMENT_CATEGORIES,
    INCOME_TYPES,
    RELATIONSHIPS,
    SPECIAL_SITUATIONS,
    AddressPatch,
    BasePatch,
    DeductionsPatch,
    Dependent,
    DependentsPatch,
    DocumentsPatch,
    DraftDocument,
    FilingPatch,
    IncomePatch,
    IntakeDraft,
    NotesPatch,
    PersonalPatch,
)
from app.intake.steps import IntakeStep, get_step
from app.models.enums import FilingStatus
from app.utils.formatters import (
    date_to_display,
    date_to_storage,
    format_date_input,
    format_file_size,
    format_phone,
    format_ssn,
    format_zip,
    mask_ssn,
)

if TYPE_CHECKING:
    from app.intake.uploads import DocumentUploader, LocalFile

DraftSource = Callable[[], IntakeDraft]
PatchSink = Callable[[BasePatch], None]

US_STATES = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas", "CA": "California",
    "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware", "FL": "Florida", "GA": "Georgia",
    "HI": "Hawaii", "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi", "MO": "Missouri",
    "MT": "Montana", "NE": "Nebraska", "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey",
    "NM": "New Mexico", "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah", "VT": "Vermont",
    "VA": "Virginia", "WA": "Washington", "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
    "DC": "District of Columbia",
}

FILING_STATUS_OPTIONS = {
    FilingStatus.SINGLE: ("Single", "Unmarried or legally separated"),
    FilingStatus.MARRIED_JOINT: ("Married Filing Jointly", "Married couples filing one return together"),
    FilingStatus.MARRIED_SEPARATE: ("Married Filing Separately", "Married couples each filing their own return"),
    FilingStatus.HEAD_OF_HOUSEHOLD: ("Head of Household", "Unmarried with a qualifying dependent"),
    FilingStatus.QUALIFYING_WIDOW: ("Qualifying Surviving Spouse", "Spouse died in the past 2 years with a dependent child"),
}

DEDUCTION_CATEGORIES = {
    "has_mortgage_interest": "Mortgage interest paid",
    "has_charitable_donations": "Charitable donations",
    "has_student_loan_interest": "Student loan interest",
    "has_medical_expenses": "Significant medical expenses",
    "has_business_expenses": "Business expenses",
    "has_childcare": "Childcare expenses",
    "has_education_expenses": "Education expenses",
}

class StepEditor:
    """Base editor bound to one wizard step."""

    step_number: int = 0
    required: Tuple[str, ...] = ()

    def __init__(self, source: DraftSource, update: PatchSink):
        self._source = source
        self._update = update

    @property
    def step(self) -> IntakeStep:
        return get_step(self.step_number)

    @property
    def draft(self) -> IntakeDraft:
        return self._source()

    @property
    def values(self) -> Mapping[str, Any]:
        """Read-only view of the fields this step owns."""
        draft = self.draft
        return MappingProxyType({name: getattr(draft, name) for name in self.step.fields})

    def required_fields(self) -> List[str]:
        return list(self.required)

    def missing_fields(self) -> List[str]:
        draft = self.draft
        return [name for name in self.required_fields() if not getattr(draft, name)]


class PersonalInfoEditor(StepEditor):
    step_number = 1
    required = ("first_name", "last_name", "email", "phone", "date_of_birth", "ssn")

    def set_first_name(self, value: str) -> None:
        self._update(PersonalPatch(first_name=value))

    def set_last_name(self, value: str) -> None:
        self._update(PersonalPatch(last_name=value))

    def set_email(self, value: str) -> None:
        self._update(PersonalPatch(email=value.strip()))

    def set_phone(self, raw: str) -> str:
        phone = format_phone(raw)
        self._update(PersonalPatch(phone=phone))
        return phone

    def set_ssn(self, raw: str) -> str:
        ssn = format_ssn(raw)
        self._update(PersonalPatch(ssn=ssn))
        return ssn

    def set_date_of_birth(self, display: str) -> str:
        """Accepts MM/DD/YYYY (slashes optional); the draft keeps YYYY-MM-DD and ignores incomplete dates."""
        iso = date_to_storage(format_date_input(display))
        if iso or display == "":
            self._update(PersonalPatch(date_of_birth=iso))
        return iso


class AddressEditor(StepEditor):
    step_number = 2
    required = ("address_street", "address_city", "address_state", "address_zip")

    def set_street(self, value: str) -> None:
        self._update(AddressPatch(address_street=value))

    def set_city(self, value: str) -> None:
        self._update(AddressPatch(address_city=value))

    def set_state(self, code: str) -> None:
        code = (code or "").strip().upper()
        if code and code not in US_STATES:
            raise ValueError(f"Unknown state code: {code}")
        self._update(AddressPatch(address_state=code))

    def set_zip(self, raw: str) -> str:
        zip_code = format_zip(raw)
        self._update(AddressPatch(address_zip=zip_code))
        return zip_code


class FilingStatusEditor(StepEditor):
    step_number = 3
    spouse_fields = ("spouse_first_name", "spouse_last_name", "spouse_dob", "spouse_ssn")

    @property
    def spouse_required(self) -> bool:
        return self.draft.spouse_required

    def required_fields(self) -> List[str]:
        fields = ["filing_status"]
        if self.spouse_required:
            fields.extend(self.spouse_fields)
        return fields

    def select_status(self, status) -> None:
        self._update(FilingPatch(filing_status=FilingStatus(status)))

    def set_spouse_first_name(self, value: str) -> None:
        self._update(FilingPatch(spouse_first_name=value))

    def set_spouse_last_name(self, value: str) -> None:
        self._update(FilingPatch(spouse_last_name=value))

    def set_spouse_dob(self, display: str) -> str:
        iso = date_to_storage(format_date_input(display))
        if iso or display == "":
            self._update(FilingPatch(spouse_dob=iso))
        return iso

    def set_spouse_ssn(self, raw: str) -> str:
        ssn = format_ssn(raw)
        self._update(FilingPatch(spouse_ssn=ssn))
        return ssn


class DependentsEditor(StepEditor):
    step_number = 4
    editable_fields = ("first_name", "last_name", "date_of_birth", "ssn", "relationship", "months_lived_with")

    def missing_fields(self) -> List[str]:
        missing = []
        for index, dependent in enumerate(self.draft.dependents):
            missing.extend(f"dependents[{index}].{label}" for label in dependent.missing_fields())
        return missing

    def add_dependent(self) -> str:
        dependent = Dependent(id=f"dep-{uuid.uuid4().hex[:12]}", months_lived_with=12)
        self._update(DependentsPatch(dependents=[*self.draft.dependents, dependent]))
        return dependent.id

    def remove_dependent(self, dependent_id: str) -> None:
        self._update(DependentsPatch(dependents=[d for d in self.draft.dependents if d.id != dependent_id]))

    def update_dependent(self, dependent_id: str, field: str, value: Any) -> None:
        if field not in self.editable_fields:
            raise ValueError(f"Dependent field '{field}' cannot be edited")
        if field == "ssn":
            value = format_ssn(value)
        elif field == "date_of_birth" and "/" in str(value):
            value = date_to_storage(value)
        elif field == "relationship" and value and value not in RELATIONSHIPS:
            raise ValueError(f"Unknown relationship: {value}")

        dependents = self.draft.dependents
        if not any(d.id == dependent_id for d in dependents):
            raise KeyError(dependent_id)
        updated = [
            Dependent.model_validate({**d.model_dump(), field: value}) if d.id == dependent_id else d
            for d in dependents
        ]
        self._update(DependentsPatch(dependents=updated))


class IncomeEditor(StepEditor):
    step_number = 5

    def set_w2_income(self, enabled: bool) -> None:
        count = self.draft.w2_employer_count
        if enabled:
            count = count or 1
        else:
            count = 0
        self._update(IncomePatch(has_w2_income=enabled, w2_employer_count=count))

    def set_w2_employer_count(self, count: int) -> None:
        if not 1 <= count <= 10:
            raise ValueError("W-2 employer count must be between 1 and 10")
        self._update(IncomePatch(w2_employer_count=count))

    def set_1099_income(self, enabled: bool) -> None:
        self._update(IncomePatch(has_1099_income=enabled))

    def toggle_income_type(self, type_id: str) -> None:
        if type_id not in INCOME_TYPES:
            raise ValueError(f"Unknown income type: {type_id}")
        current = self.draft.income_types
        if type_id in current:
            self._update(IncomePatch(income_types=[t for t in current if t != type_id]))
        else:
            self._update(IncomePatch(income_types=[*current, type_id]))

    def set_special_situation(self, field: str, enabled: bool) -> None:
        if field not in SPECIAL_SITUATIONS:
            raise ValueError(f"Unknown income question: {field}")
        self._update(IncomePatch(**{field: enabled}))


class DeductionsEditor(StepEditor):
    step_number = 6

    def set_itemize(self, enabled: bool) -> None:
        self._update(DeductionsPatch(itemize_deductions=enabled))

    def set_category(self, field: str, enabled: bool) -> None:
        if field not in DEDUCTION_CATEGORIES:
            raise ValueError(f"Unknown deduction category: {field}")
        self._update(DeductionsPatch(**{field: enabled}))

    def set_other_deductions(self, text: str) -> None:
        self._update(DeductionsPatch(other_deductions=text))


class DocumentsEditor(StepEditor):
    step_number = 7

    def __init__(self, source: DraftSource, update: PatchSink, uploader: Optional["DocumentUploader"] = None):
        super().__init__(source, update)
        self._uploader = uploader

    def documents_in(self, category: str) -> List[DraftDocument]:
        return [doc for doc in self.draft.uploaded_documents if doc.category == category]

    def remove_document(self, document_id: str) -> None:
        self._update(DocumentsPatch(
            uploaded_documents=[d for d in self.draft.uploaded_documents if d.id != document_id]
        ))

    async def add_files(self, category: str, files: Iterable["LocalFile"]) -> List[DraftDocument]:
        if category not in DOCUMENT_CATEGORIES:
            raise ValueError(f"Unknown document category: {category}")
        if self._uploader is None:
            raise RuntimeError("Documents editor has no uploader")
        return await self._uploader.upload(category, list(files))


def _document_line(doc: DraftDocument) -> str:
    line = f"{doc.name} ({DOCUMENT_CATEGORIES.get(doc.category, doc.category)})"
    if doc.file_size:
        line += f", {format_file_size(doc.file_size)}"
    return line


@dataclass
class ReviewSection:
    step: int
    title: str
    lines: List[str]


class ReviewEditor(StepEditor):
    step_number = 8

    def __init__(self, source: DraftSource, update: PatchSink, jump_to: Callable[[int], bool]):
        super().__init__(source, update)
        self._jump_to = jump_to

    def edit(self, step: int) -> bool:
        """Jump back to an earlier step to change its answers."""
        return self._jump_to(step)

    def set_notes(self, text: str) -> None:
        self._update(NotesPatch(additional_notes=text))

    def sections(self) -> List[ReviewSection]:
        draft = self.draft
        status_label = FILING_STATUS_OPTIONS[draft.filing_status][0] if draft.filing_status else "-"
        filing_lines = [status_label]
        if draft.has_spouse and draft.spouse_first_name:
            filing_lines.append(f"Spouse: {draft.spouse_first_name} {draft.spouse_last_name}")
        address = "-"
        if draft.address_street:
            address = f"{draft.address_street}, {draft.address_city}, {draft.address_state} {draft.address_zip}"
        deductions = ["Itemize deductions"] if draft.itemize_deductions else []
        deductions.extend(label for field, label in DEDUCTION_CATEGORIES.items() if getattr(draft, field))
        return [
            ReviewSection(1, "Personal Information", [
                f"{draft.first_name} {draft.last_name}".strip() or "-",
                draft.email or "-",
                draft.phone or "-",
                date_to_display(draft.date_of_birth) or "-",
                mask_ssn(draft.ssn),
            ]),
            ReviewSection(2, "Address", [address]),
            ReviewSection(3, "Filing Status", filing_lines),
            ReviewSection(4, "Dependents", [
                f"{i}. {d.first_name} {d.last_name} ({d.relationship})"
                for i, d in enumerate(draft.dependents, start=1)
            ] or ["No dependents"]),
            ReviewSection(5, "Income", draft.income_summary() or ["No income sources selected"]),
            ReviewSection(6, "Deductions", deductions or ["Standard deduction"]),
            ReviewSection(7, "Documents", [
                _document_line(doc) for doc in draft.uploaded_documents
            ] or ["No documents uploaded"]),
        ]
