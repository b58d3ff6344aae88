"""
Client-side intake core: draft, steps, editors, wizard and uploads
"""
from app.intake.draft import (
    DOCUMENT_CATEGORIES,
    INCOME_TYPES,
    RELATIONSHIPS,
    Dependent,
    DraftDocument,
    DraftPatch,
    IntakeDraft,
    apply_patch,
)
from app.intake.steps import STEPS, IntakeStep, get_step
from app.intake.uploads import DocumentUploader, LocalFile, PendingUpload
from app.intake.wizard import IntakeWizard, WizardClosedError

__all__ = [
    "DOCUMENT_CATEGORIES",
    "INCOME_TYPES",
    "RELATIONSHIPS",
    "Dependent",
    "DraftDocument",
    "DraftPatch",
    "IntakeDraft",
    "apply_patch",
    "STEPS",
    "IntakeStep",
    "get_step",
    "DocumentUploader",
    "LocalFile",
    "PendingUpload",
    "IntakeWizard",
    "WizardClosedError",
]
